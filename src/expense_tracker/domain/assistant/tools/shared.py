"""Shared utility functions for expense assistant tools."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from expense_tracker.lib.money import to_dollars

if TYPE_CHECKING:
    from expense_tracker.db import models as m

__all__ = ["format_dollars", "preprocess_args", "serialize_expense", "serialize_tag"]


def preprocess_args(args: str) -> str:
    """Preprocess tool arguments to handle double-encoded JSON arrays.

    Some LLMs may send array fields as stringified JSON within the JSON string,
    e.g., tagNames: '["food"]' instead of tagNames: ["food"].

    Args:
        args: JSON string containing tool arguments

    Returns:
        Preprocessed JSON string with proper array encoding
    """
    try:
        data = json.loads(args)
    except (json.JSONDecodeError, ValueError):
        return args
    if not isinstance(data, dict):
        return args

    for key, value in data.items():
        if isinstance(value, str) and value.startswith("[") and value.endswith("]"):
            try:
                parsed_array = json.loads(value)
            except (json.JSONDecodeError, ValueError):
                continue
            if isinstance(parsed_array, list):
                data[key] = parsed_array

    return json.dumps(data)


def format_dollars(cents: int | float) -> str:
    return f"${to_dollars(cents):.2f}"


def serialize_tag(tag: m.Tag) -> dict[str, Any]:
    return {"id": tag.id, "name": tag.tag_name, "createdAt": tag.created_at.isoformat()}


def serialize_expense(expense: m.Expense, tag_names: list[str] | None = None) -> dict[str, Any]:
    """Expense as the assistant sees it, with the amount in dollars."""
    if tag_names is None:
        tag_names = [expense_tag.tag.tag_name for expense_tag in expense.expense_tags]
    return {
        "id": expense.id,
        "title": expense.title,
        "amount": to_dollars(expense.amount),
        "createdAt": expense.created_at.isoformat(),
        "tags": tag_names,
    }
