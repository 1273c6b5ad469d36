"""Expense and tag dependency providers."""

from __future__ import annotations

from sqlalchemy.orm import joinedload, selectinload

from expense_tracker.db import models as m
from expense_tracker.domain.expenses.services import ExpenseService, TagService
from expense_tracker.lib.deps import create_service_provider

provide_expense_service = create_service_provider(
    ExpenseService,
    load=[
        selectinload(m.Expense.expense_tags).options(
            joinedload(m.ExpenseTag.tag, innerjoin=True)),
    ],
    error_messages={"duplicate_key": "This expense already exists.",
                    "integrity": "Expense operation failed."},
)

provide_tag_service = create_service_provider(
    TagService,
    error_messages={"duplicate_key": "This tag already exists.",
                    "integrity": "Tag operation failed."},
)
