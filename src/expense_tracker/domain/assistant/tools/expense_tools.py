"""Expense tool implementations.

Each handler runs against the services bound in the agent context and
returns a JSON-serialisable payload with a human readable ``message``.
Monetary values cross this boundary in dollars.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from expense_tracker.lib.exceptions import DuplicateTagError
from expense_tracker.lib.money import to_cents, to_dollars

from .shared import format_dollars, serialize_expense, serialize_tag

if TYPE_CHECKING:
    from .argument_models import (
        CreateExpenseArgs,
        CreateTagArgs,
        DeleteExpenseArgs,
        GetAllTagsArgs,
        GetExpenseInsightsArgs,
        GetExpenseSummaryArgs,
        SearchExpensesArgs,
    )
    from .tool_context import AgentContext

__all__ = [
    "create_expense_impl",
    "create_tag_impl",
    "delete_expense_impl",
    "get_all_tags_impl",
    "get_expense_insights_impl",
    "get_expense_summary_impl",
    "search_expenses_impl",
]

logger = structlog.get_logger()

_PERIOD_LABELS = {"week": "7 days", "month": "month", "year": "year"}


async def create_expense_impl(context: AgentContext, args: CreateExpenseArgs) -> dict[str, Any]:
    """Create an expense and link its tags, creating missing ones by name."""
    expense, tag_names = await context.expense_service.create_expense_with_tags(
        user_id=context.user_id,
        title=args.title,
        amount=to_cents(args.amount),
        tag_service=context.tag_service,
        tag_names=args.tag_names,
        created_at=args.date,
    )
    logger.info("Assistant created expense", expense_id=expense.id, user_id=context.user_id, tags=tag_names)

    message = f'Successfully created expense "{expense.title}" for {format_dollars(expense.amount)}'
    if tag_names:
        message += f" with tags: {', '.join(tag_names)}"
    return {
        "success": True,
        "message": message,
        "expense": serialize_expense(expense, tag_names),
    }


async def get_all_tags_impl(context: AgentContext, args: GetAllTagsArgs) -> dict[str, Any]:
    tags = await context.tag_service.list_tags(context.user_id)
    return {
        "success": True,
        "message": f"Found {len(tags)} existing tags.",
        "tags": [serialize_tag(tag) for tag in tags],
    }


async def get_expense_summary_impl(context: AgentContext, args: GetExpenseSummaryArgs) -> dict[str, Any]:
    summary = await context.expense_service.get_summary(context.user_id)
    return {
        "success": True,
        "message": (
            f"You have {summary.count} expenses totaling {format_dollars(summary.total_amount)}. "
            f"Average expense: {format_dollars(summary.average_amount)}."
        ),
        "summary": {
            "totalAmount": to_dollars(summary.total_amount),
            "count": summary.count,
            "averageAmount": round(to_dollars(summary.average_amount), 2),
            "recentExpenses": [serialize_expense(expense) for expense in summary.recent_expenses],
        },
    }


async def search_expenses_impl(context: AgentContext, args: SearchExpensesArgs) -> dict[str, Any]:
    """Search by title substring, dollar range and tag name."""
    results = await context.expense_service.search_expenses(
        context.user_id,
        query=args.query,
        min_amount=to_cents(args.min_amount) if args.min_amount is not None else None,
        max_amount=to_cents(args.max_amount) if args.max_amount is not None else None,
        tag_name=args.tag_name,
        limit=args.limit,
    )
    return {
        "success": True,
        "message": f"Found {len(results)} expenses matching your criteria.",
        "results": [serialize_expense(expense) for expense in results],
        "count": len(results),
    }


async def create_tag_impl(context: AgentContext, args: CreateTagArgs) -> dict[str, Any]:
    try:
        tag = await context.tag_service.create_tag(context.user_id, args.tag_name)
    except DuplicateTagError as e:
        return {
            "success": False,
            "message": (
                f'Tag "{args.tag_name}" already exists. '
                "You can use the existing tag when creating expenses."
            ),
            "error": e.detail,
            "errorCode": "DUPLICATE_TAG",
            "existingTag": serialize_tag(e.tag),
        }
    return {
        "success": True,
        "message": f'Successfully created tag "{tag.tag_name}".',
        "tag": serialize_tag(tag),
    }


async def get_expense_insights_impl(context: AgentContext, args: GetExpenseInsightsArgs) -> dict[str, Any]:
    insights = await context.expense_service.get_insights(context.user_id, args.period)
    return {
        "success": True,
        "message": (
            f"In the last {_PERIOD_LABELS[args.period]}, you spent {format_dollars(insights.total_amount)} "
            f"across {insights.count} expenses. Daily average: {format_dollars(insights.daily_average)}."
        ),
        "insights": {
            "period": insights.period,
            "startDate": insights.start_date.isoformat(),
            "totalAmount": to_dollars(insights.total_amount),
            "numberOfExpenses": insights.count,
            "averageAmount": round(to_dollars(insights.average_amount), 2),
            "dailyAverage": round(to_dollars(insights.daily_average), 2),
            "daysInPeriod": insights.days_in_period,
        },
    }


async def delete_expense_impl(context: AgentContext, args: DeleteExpenseArgs) -> dict[str, Any]:
    """Delete one of the caller's expenses along with its tag links."""
    expense = await context.expense_service.get_owned_expense(args.expense_id, context.user_id)
    snapshot = serialize_expense(expense)
    amount = expense.amount
    await context.expense_service.delete_expense_for_user(args.expense_id, context.user_id)
    logger.info("Assistant deleted expense", expense_id=args.expense_id, user_id=context.user_id)
    return {
        "success": True,
        "message": f'Successfully deleted expense "{snapshot["title"]}" ({format_dollars(amount)}).',
        "deletedExpense": snapshot,
    }
