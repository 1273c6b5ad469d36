"""Expense Controllers."""

from __future__ import annotations

from typing import Annotated

import structlog
from advanced_alchemy.filters import FilterTypes
from advanced_alchemy.service import OffsetPagination
from litestar import Controller, delete, get, post, put
from litestar.di import Provide
from litestar.params import Dependency

from expense_tracker.db import models as m
from expense_tracker.domain.accounts.schemas import AuthenticatedUser
from expense_tracker.domain.expenses import urls
from expense_tracker.domain.expenses.deps import provide_expense_service, provide_tag_service
from expense_tracker.domain.expenses.schemas import ExpenseCreate, ExpenseModel, ExpenseUpdate
from expense_tracker.domain.expenses.services import ExpenseService, TagService
from expense_tracker.lib.deps import create_filter_dependencies

logger = structlog.get_logger()


class ExpenseController(Controller):
    """Controller for managing expenses."""

    tags = ["Expenses"]

    dependencies = {
        "expense_service": Provide(provide_expense_service),
        "tag_service": Provide(provide_tag_service),
    } | create_filter_dependencies(
        {
            "id_filter": int,
            "search": "title",
            "pagination_type": "limit_offset",
            "pagination_size": 40,
            "created_at": True,
            "updated_at": True,
            "sort_field": "created_at",
            "sort_order": "desc",
        },
    )

    @get(path=urls.EXPENSES_BASE, operation_id="list_expenses")
    async def list_expenses(
        self,
        current_user: AuthenticatedUser,
        expense_service: ExpenseService,
        filters: Annotated[list[FilterTypes], Dependency(skip_validation=True)],
    ) -> OffsetPagination[ExpenseModel]:
        """List the caller's expenses, newest first, with their tags."""
        user_filter = m.Expense.user_id == current_user.id
        results, total = await expense_service.list_and_count(user_filter, *filters)
        return expense_service.to_schema(data=results, total=total, schema_type=ExpenseModel, filters=filters)

    @get(path=urls.EXPENSE_DETAIL, operation_id="get_expense")
    async def get_expense(
        self,
        current_user: AuthenticatedUser,
        expense_id: int,
        expense_service: ExpenseService,
    ) -> ExpenseModel:
        """Get a specific expense by ID."""
        expense = await expense_service.get_owned_expense(expense_id, current_user.id)
        return expense_service.to_schema(expense, schema_type=ExpenseModel)

    @post(path=urls.EXPENSES_BASE, operation_id="create_expense")
    async def create_expense(
        self,
        current_user: AuthenticatedUser,
        data: ExpenseCreate,
        expense_service: ExpenseService,
        tag_service: TagService,
    ) -> ExpenseModel:
        """Create a new expense linked to tags the caller owns."""
        expense, _ = await expense_service.create_expense_with_tags(
            user_id=current_user.id,
            title=data.title,
            amount=data.amount,
            tag_service=tag_service,
            tag_ids=data.tag_ids,
            created_at=data.created_at,
        )
        logger.info("Created expense", expense_id=expense.id, user_id=current_user.id)
        return expense_service.to_schema(expense, schema_type=ExpenseModel)

    @put(path=urls.EXPENSE_DETAIL, operation_id="update_expense")
    async def update_expense(
        self,
        current_user: AuthenticatedUser,
        expense_id: int,
        data: ExpenseUpdate,
        expense_service: ExpenseService,
        tag_service: TagService,
    ) -> ExpenseModel:
        """Update an expense; a given ``tagIds`` list replaces its tag links."""
        expense = await expense_service.update_expense(
            expense_id,
            current_user.id,
            tag_service,
            title=data.title,
            amount=data.amount,
            tag_ids=data.tag_ids,
            created_at=data.created_at,
        )
        return expense_service.to_schema(expense, schema_type=ExpenseModel)

    @delete(path=urls.EXPENSE_DETAIL, operation_id="delete_expense", status_code=200)
    async def delete_expense(
        self,
        current_user: AuthenticatedUser,
        expense_id: int,
        expense_service: ExpenseService,
    ) -> ExpenseModel:
        """Delete an expense and its tag links."""
        expense = await expense_service.get_owned_expense(expense_id, current_user.id)
        deleted = expense_service.to_schema(expense, schema_type=ExpenseModel)
        await expense_service.delete_expense_for_user(expense_id, current_user.id)
        logger.info("Deleted expense", expense_id=expense_id, user_id=current_user.id)
        return deleted
