"""Dependency providers for the assistant domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

from expense_tracker.config import get_settings
from expense_tracker.domain.assistant.services import ChatThreadService, ExpenseAgentService
from expense_tracker.lib.deps import create_service_provider

if TYPE_CHECKING:
    from expense_tracker.domain.credits.services import UserCreditService
    from expense_tracker.domain.expenses.services import ExpenseService, TagService
    from expense_tracker.lib.credit_ledger import CreditLedger

__all__ = ("provide_chat_thread_service", "provide_expense_agent_service")

provide_chat_thread_service = create_service_provider(
    ChatThreadService,
    error_messages={"integrity": "Thread operation failed."},
)


async def provide_expense_agent_service(
    expense_service: ExpenseService,
    tag_service: TagService,
    credit_service: UserCreditService,
    credit_ledger: CreditLedger,
    thread_service: ChatThreadService,
) -> ExpenseAgentService:
    """Dependency provider for ExpenseAgentService.

    Args:
        expense_service: ExpenseService instance for expense operations
        tag_service: TagService instance for tag operations
        credit_service: UserCreditService instance for credit rows
        credit_ledger: CreditLedger enforcing daily quotas
        thread_service: ChatThreadService owning the user's conversations

    Returns:
        Configured ExpenseAgentService instance with SQLite session storage
    """
    settings = get_settings()
    return ExpenseAgentService(
        expense_service=expense_service,
        tag_service=tag_service,
        credit_service=credit_service,
        credit_ledger=credit_ledger,
        thread_service=thread_service,
        session_db_path=settings.ai.SESSION_DB_PATH,
        max_turns=settings.ai.MAX_TURNS,
    )
