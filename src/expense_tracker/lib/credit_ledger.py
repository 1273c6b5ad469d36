"""Daily credit accounting for assistant messages and tool calls."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, NamedTuple

import structlog

from expense_tracker.db.models import CreditTransactionType
from expense_tracker.lib.exceptions import InsufficientCreditsException, ToolArgumentError

if TYPE_CHECKING:
    from expense_tracker.db import models as m
    from expense_tracker.domain.credits.services import UserCreditService

__all__ = (
    "ConsumeResult",
    "CreditLedger",
    "CreditSnapshot",
    "rollover_due",
)

logger = structlog.get_logger()

DEFAULT_FUNCTION_CALLS_LIMIT = 10
DEFAULT_MESSAGES_LIMIT = 10
DEFAULT_RESET_INTERVAL = timedelta(hours=24)
DEFAULT_TRANSACTION_HISTORY_LIMIT = 50
RESET_DESCRIPTION = "Daily credit reset"


class CreditSnapshot(NamedTuple):
    """Credit counters for a user at a point in time."""

    function_calls_used: int
    messages_used: int
    function_calls_limit: int
    messages_limit: int
    is_premium: bool
    last_reset_date: datetime
    next_reset_date: datetime

    @property
    def function_calls_remaining(self) -> int:
        return max(0, self.function_calls_limit - self.function_calls_used)

    @property
    def messages_remaining(self) -> int:
        return max(0, self.messages_limit - self.messages_used)

    def remaining_for(self, credit_type: CreditTransactionType) -> int:
        if credit_type is CreditTransactionType.FUNCTION_CALL:
            return self.function_calls_remaining
        return self.messages_remaining


class ConsumeResult(NamedTuple):
    """Outcome of a successful credit consumption."""

    credit_type: CreditTransactionType
    remaining: int
    snapshot: CreditSnapshot


def rollover_due(
    last_reset: datetime,
    now: datetime,
    interval: timedelta = DEFAULT_RESET_INTERVAL,
) -> bool:
    """Return True once ``interval`` has fully elapsed since ``last_reset``."""
    if last_reset.tzinfo is None:
        last_reset = last_reset.replace(tzinfo=UTC)
    return now - last_reset >= interval


class CreditLedger:
    """Gates assistant usage behind per-user quotas that roll over every 24 hours.

    Rollover is lazy: it is applied by whichever read first observes an expired
    window, there is no background timer.
    """

    def __init__(
        self,
        function_calls_limit: int = DEFAULT_FUNCTION_CALLS_LIMIT,
        messages_limit: int = DEFAULT_MESSAGES_LIMIT,
        reset_interval: timedelta = DEFAULT_RESET_INTERVAL,
        transaction_history_limit: int = DEFAULT_TRANSACTION_HISTORY_LIMIT,
    ) -> None:
        """Initialize the ledger.

        Args:
            function_calls_limit: Default daily tool call quota for new users
            messages_limit: Default daily chat message quota for new users
            reset_interval: Length of the rolling quota window
            transaction_history_limit: Default page size for transaction listings
        """
        self.function_calls_limit = function_calls_limit
        self.messages_limit = messages_limit
        self.reset_interval = reset_interval
        self.transaction_history_limit = transaction_history_limit

    async def get_or_create_credits(
        self,
        user_id: str,
        credit_service: UserCreditService,
    ) -> m.UserCredit:
        return await credit_service.get_or_create_credits(
            user_id,
            function_calls_limit=self.function_calls_limit,
            messages_limit=self.messages_limit,
        )

    async def maybe_reset_if_stale(
        self,
        user_id: str,
        credit: m.UserCredit,
        credit_service: UserCreditService,
    ) -> m.UserCredit:
        """Roll the usage counters over if the window has expired.

        Args:
            user_id: Identity provider user id
            credit: The user's current credit row
            credit_service: UserCreditService for database operations

        Returns:
            The credit row, re-read when a reset happened
        """
        now = self._now()
        if not rollover_due(credit.last_reset_date, now, self.reset_interval):
            return credit

        reset = await credit_service.reset_usage_if_stale(
            user_id,
            stale_before=now - self.reset_interval,
            now=now,
        )
        if reset:
            await credit_service.log_transaction(
                user_id,
                CreditTransactionType.RESET,
                amount=0,
                description=RESET_DESCRIPTION,
            )
            logger.info("Daily credits reset", user_id=user_id)
        return await credit_service.reload(credit)

    async def get_credits(
        self,
        user_id: str,
        credit_service: UserCreditService,
    ) -> m.UserCredit:
        """Fetch (creating if needed) the user's credits with any due rollover applied."""
        credit = await self.get_or_create_credits(user_id, credit_service)
        return await self.maybe_reset_if_stale(user_id, credit, credit_service)

    async def get_snapshot(
        self,
        user_id: str,
        credit_service: UserCreditService,
    ) -> CreditSnapshot:
        credit = await self.get_credits(user_id, credit_service)
        return self.snapshot(credit)

    async def consume(
        self,
        user_id: str,
        credit_type: CreditTransactionType | str,
        credit_service: UserCreditService,
        description: str | None = None,
    ) -> ConsumeResult:
        """Consume exactly one credit of ``credit_type``.

        Args:
            user_id: Identity provider user id
            credit_type: ``function_call`` or ``message``
            credit_service: UserCreditService for database operations
            description: Optional note stored with the transaction

        Returns:
            ConsumeResult with the remaining count and refreshed snapshot

        Raises:
            ToolArgumentError: If ``credit_type`` is not a consumable kind
            InsufficientCreditsException: If the daily limit is already reached
        """
        kind = self._coerce_credit_type(credit_type)
        credit = await self.get_credits(user_id, credit_service)

        consumed = await credit_service.increment_usage(user_id, kind)
        if not consumed:
            credit = await credit_service.reload(credit)
            snapshot = self.snapshot(credit)
            used = snapshot.function_calls_used if kind is CreditTransactionType.FUNCTION_CALL else snapshot.messages_used
            limit = snapshot.function_calls_limit if kind is CreditTransactionType.FUNCTION_CALL else snapshot.messages_limit
            logger.warning(
                "Credits exhausted",
                user_id=user_id,
                credit_type=kind.value,
                used=used,
                limit=limit,
            )
            raise InsufficientCreditsException(
                user_id=user_id,
                credit_type=kind,
                used=used,
                limit=limit,
            )

        await credit_service.log_transaction(
            user_id,
            kind,
            amount=1,
            description=description or f"{kind.label} consumed",
        )
        credit = await credit_service.reload(credit)
        snapshot = self.snapshot(credit)
        remaining = snapshot.remaining_for(kind)
        logger.info("Credit consumed", user_id=user_id, credit_type=kind.value, remaining=remaining)
        return ConsumeResult(credit_type=kind, remaining=remaining, snapshot=snapshot)

    async def list_transactions(
        self,
        user_id: str,
        credit_service: UserCreditService,
        limit: int | None = None,
    ) -> list[m.CreditTransaction]:
        return await credit_service.list_transactions(
            user_id,
            limit=limit or self.transaction_history_limit,
        )

    def snapshot(self, credit: m.UserCredit) -> CreditSnapshot:
        last_reset = credit.last_reset_date
        if last_reset.tzinfo is None:
            last_reset = last_reset.replace(tzinfo=UTC)
        return CreditSnapshot(
            function_calls_used=credit.function_calls_used,
            messages_used=credit.messages_used,
            function_calls_limit=credit.function_calls_limit,
            messages_limit=credit.messages_limit,
            is_premium=bool(credit.is_premium),
            last_reset_date=last_reset,
            next_reset_date=last_reset + self.reset_interval,
        )

    @staticmethod
    def _coerce_credit_type(credit_type: CreditTransactionType | str) -> CreditTransactionType:
        try:
            kind = CreditTransactionType(credit_type)
        except ValueError:
            kind = None
        if kind is None or not kind.is_consumable:
            raise ToolArgumentError(
                detail='Invalid credit type. Must be "function_call" or "message"',
            )
        return kind

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)
