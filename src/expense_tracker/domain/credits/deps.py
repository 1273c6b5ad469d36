"""Dependency providers for credits domain."""

from __future__ import annotations

from datetime import timedelta

from expense_tracker.config import get_settings
from expense_tracker.domain.credits.services import UserCreditService
from expense_tracker.lib.credit_ledger import CreditLedger
from expense_tracker.lib.deps import create_service_provider

__all__ = ("provide_credit_ledger", "provide_user_credit_service")

provide_user_credit_service = create_service_provider(
    UserCreditService,
    error_messages={
        "duplicate_key": "Credits for this user already exist.",
        "integrity": "Credit operation failed.",
    },
)


async def provide_credit_ledger() -> CreditLedger:
    """Dependency provider for CreditLedger.

    Returns:
        CreditLedger configured from the credit settings
    """
    settings = get_settings()
    return CreditLedger(
        function_calls_limit=settings.credits.FUNCTION_CALLS_LIMIT,
        messages_limit=settings.credits.MESSAGES_LIMIT,
        reset_interval=timedelta(hours=settings.credits.RESET_HOURS),
        transaction_history_limit=settings.credits.TRANSACTION_HISTORY_LIMIT,
    )
