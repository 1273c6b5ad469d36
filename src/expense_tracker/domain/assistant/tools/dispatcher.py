"""Name-to-handler dispatch for assistant tool calls.

Every call goes through the same steps: validate the arguments, charge one
``function_call`` credit when a ledger is bound, run the handler, then commit
on success or roll back on failure. Failures are returned as
``{"success": False, ...}`` payloads and never raised to the agent loop.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from advanced_alchemy.exceptions import RepositoryError
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from expense_tracker.db.models import CreditTransactionType
from expense_tracker.lib.exceptions import (
    ApplicationError,
    InsufficientCreditsException,
    StorageFailureError,
    ToolArgumentError,
)

from .argument_models import (
    CreateExpenseArgs,
    CreateTagArgs,
    DeleteExpenseArgs,
    GetAllTagsArgs,
    GetExpenseInsightsArgs,
    GetExpenseSummaryArgs,
    SearchExpensesArgs,
)
from .expense_tools import (
    create_expense_impl,
    create_tag_impl,
    delete_expense_impl,
    get_all_tags_impl,
    get_expense_insights_impl,
    get_expense_summary_impl,
    search_expenses_impl,
)
from .shared import preprocess_args
from .tool_context import get_agent_context

if TYPE_CHECKING:
    from agents import RunContextWrapper

    from .tool_context import AgentContext

__all__ = ["TOOL_REGISTRY", "ToolSpec", "dispatch_tool", "make_tool_invoker"]

logger = structlog.get_logger()

ToolHandler = Callable[["AgentContext", Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler
    failure_message: str


TOOL_REGISTRY: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name="create_expense",
            description=(
                "Create a new expense for the user. Amount is in dollars. "
                "Pass tagNames to categorise it; existing tags are reused and missing ones are created."
            ),
            args_model=CreateExpenseArgs,
            handler=create_expense_impl,
            failure_message="Failed to create expense. Please try again.",
        ),
        ToolSpec(
            name="get_all_tags",
            description="Get all tags the user has created. Call this before creating a tag to reuse existing ones.",
            args_model=GetAllTagsArgs,
            handler=get_all_tags_impl,
            failure_message="Failed to get tags. Please try again.",
        ),
        ToolSpec(
            name="get_expense_summary",
            description="Get the total, count, average and five most recent expenses for the user.",
            args_model=GetExpenseSummaryArgs,
            handler=get_expense_summary_impl,
            failure_message="Failed to get expense summary. Please try again.",
        ),
        ToolSpec(
            name="search_expenses",
            description=(
                "Search the user's expenses by title text, amount range in dollars and tag name. "
                "Results are newest first."
            ),
            args_model=SearchExpensesArgs,
            handler=search_expenses_impl,
            failure_message="Failed to search expenses. Please try again.",
        ),
        ToolSpec(
            name="create_tag",
            description="Create a new tag (at most 30 characters). Fails if the user already has a tag with that name.",
            args_model=CreateTagArgs,
            handler=create_tag_impl,
            failure_message="Failed to create tag. Please try again.",
        ),
        ToolSpec(
            name="get_expense_insights",
            description="Get spending totals and daily average for the last week, this month or this year.",
            args_model=GetExpenseInsightsArgs,
            handler=get_expense_insights_impl,
            failure_message="Failed to get expense insights. Please try again.",
        ),
        ToolSpec(
            name="delete_expense",
            description="Delete one of the user's expenses by ID. Confirm with the user before calling.",
            args_model=DeleteExpenseArgs,
            handler=delete_expense_impl,
            failure_message="Failed to delete expense. Please try again.",
        ),
    )
}


def _failure(message: str, error: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, "error": error, **extra}


def _validate(spec: ToolSpec, args: str | Mapping[str, Any] | None) -> BaseModel:
    try:
        if args is None or (isinstance(args, str) and not args.strip()):
            return spec.args_model.model_validate({})
        if isinstance(args, str):
            return spec.args_model.model_validate_json(preprocess_args(args))
        return spec.args_model.model_validate(dict(args))
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
            for error in e.errors()
        )
        raise ToolArgumentError(detail=f"Invalid arguments for {spec.name}: {errors}") from e


async def _charge(context: AgentContext, tool_name: str) -> None:
    if not context.charges_credits:
        return
    await context.credit_ledger.consume(  # type: ignore[union-attr]
        context.user_id,
        CreditTransactionType.FUNCTION_CALL,
        context.credit_service,  # type: ignore[arg-type]
        description=f"Tool call: {tool_name}",
    )
    # the charge stands even if the tool itself fails
    await context.session.commit()


async def dispatch_tool(
    name: str,
    args: str | Mapping[str, Any] | None = None,
    context: AgentContext | None = None,
) -> dict[str, Any]:
    """Run the named tool for the caller bound in the agent context.

    Args:
        name: Registered tool name
        args: JSON text or mapping of camelCase arguments
        context: Explicit context; defaults to the one bound for this request

    Returns:
        The tool payload, or a ``success: False`` payload describing the failure
    """
    context = context or get_agent_context()
    if context is None:
        return _failure("Agent context not properly initialized", "Agent context not properly initialized")

    spec = TOOL_REGISTRY.get(name)
    if spec is None:
        return _failure(f"Unknown tool '{name}'.", f"Unknown tool '{name}'")

    try:
        parsed = _validate(spec, args)
    except ToolArgumentError as e:
        logger.info("Rejected tool arguments", tool=name, user_id=context.user_id, error=e.detail)
        return _failure(e.detail, e.detail, errorCode="VALIDATION_ERROR")

    try:
        await _charge(context, name)
    except InsufficientCreditsException as e:
        return _failure(
            "You have used all of your function calls for today. Please try again after your credits reset.",
            e.detail,
            errorCode="INSUFFICIENT_CREDITS",
            creditsRemaining=e.remaining,
        )

    try:
        result = await spec.handler(context, parsed)
    except ApplicationError as e:
        await context.session.rollback()
        return _failure(e.detail, e.detail, **e.extra())
    except (RepositoryError, SQLAlchemyError) as e:
        await context.session.rollback()
        logger.exception("Tool storage failure", tool=name, user_id=context.user_id, error=str(e))
        return _failure(spec.failure_message, StorageFailureError.detail)
    except Exception as e:
        await context.session.rollback()
        logger.exception("Tool execution failed", tool=name, user_id=context.user_id, error=str(e))
        return _failure(spec.failure_message, StorageFailureError.detail)

    if result.get("success"):
        await context.session.commit()
    else:
        await context.session.rollback()
    return result


def make_tool_invoker(name: str) -> Callable[[RunContextWrapper[Any], str], Awaitable[str]]:
    """Build an ``on_invoke_tool`` callback that dispatches ``name``."""

    async def invoke(ctx: RunContextWrapper[Any], args: str) -> str:
        result = await dispatch_tool(name, args)
        return json.dumps(result, default=str)

    invoke.__name__ = f"{name}_impl"
    return invoke
