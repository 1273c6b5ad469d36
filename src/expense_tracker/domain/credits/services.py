"""Service for persisting user credits and their transaction log."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService
from sqlalchemy import select, update

from expense_tracker.db import models as m

if TYPE_CHECKING:
    from sqlalchemy.orm import InstrumentedAttribute

__all__ = ("UserCreditService",)


def _usage_columns(
    credit_type: m.CreditTransactionType,
) -> tuple[InstrumentedAttribute[int], InstrumentedAttribute[int]]:
    """Return the ``(used, limit)`` columns tracking ``credit_type``."""
    if credit_type is m.CreditTransactionType.FUNCTION_CALL:
        return m.UserCredit.function_calls_used, m.UserCredit.function_calls_limit
    if credit_type is m.CreditTransactionType.MESSAGE:
        return m.UserCredit.messages_used, m.UserCredit.messages_limit
    msg = f"{credit_type.value} is not a consumable credit type"
    raise ValueError(msg)


class UserCreditService(SQLAlchemyAsyncRepositoryService[m.UserCredit]):
    """Handles database operations for user credits and credit transactions."""

    class Repository(SQLAlchemyAsyncRepository[m.UserCredit]):
        """UserCredit SQLAlchemy Repository."""

        model_type = m.UserCredit

    repository_type = Repository
    match_fields = ["user_id"]

    async def get_credits(self, user_id: str) -> m.UserCredit | None:
        return await self.get_one_or_none(m.UserCredit.user_id == user_id)

    async def get_or_create_credits(
        self,
        user_id: str,
        function_calls_limit: int = 10,
        messages_limit: int = 10,
    ) -> m.UserCredit:
        """Get the user's credit row, creating a zero-usage one if missing.

        Args:
            user_id: Identity provider user id
            function_calls_limit: Limit applied to a newly created row
            messages_limit: Limit applied to a newly created row

        Returns:
            UserCredit record
        """
        existing = await self.get_credits(user_id)
        if existing:
            return existing

        return await self.create({
            "user_id": user_id,
            "function_calls_used": 0,
            "messages_used": 0,
            "function_calls_limit": function_calls_limit,
            "messages_limit": messages_limit,
            "is_premium": False,
            "last_reset_date": datetime.now(UTC),
        })

    async def reset_usage_if_stale(
        self,
        user_id: str,
        stale_before: datetime,
        now: datetime,
    ) -> bool:
        """Zero both usage counters when the last reset is older than ``stale_before``.

        The staleness check and the reset are one statement, so only one of
        several concurrent callers observes a successful reset.

        Returns:
            True when this call performed the reset
        """
        stmt = (
            update(m.UserCredit)
            .where(
                m.UserCredit.user_id == user_id,
                m.UserCredit.last_reset_date <= stale_before,
            )
            .values(
                function_calls_used=0,
                messages_used=0,
                last_reset_date=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.repository.session.execute(stmt)
        return result.rowcount == 1

    async def increment_usage(
        self,
        user_id: str,
        credit_type: m.CreditTransactionType,
    ) -> bool:
        """Consume one credit of ``credit_type`` if the user is under the limit.

        Returns:
            True when a credit was consumed, False when the limit is reached
        """
        used_column, limit_column = _usage_columns(credit_type)
        stmt = (
            update(m.UserCredit)
            .where(
                m.UserCredit.user_id == user_id,
                used_column < limit_column,
            )
            .values({used_column: used_column + 1, m.UserCredit.updated_at: datetime.now(UTC)})
            .execution_options(synchronize_session=False)
        )
        result = await self.repository.session.execute(stmt)
        return result.rowcount == 1

    async def reload(self, credit: m.UserCredit) -> m.UserCredit:
        """Refresh ``credit`` after a statement-level update."""
        await self.repository.session.refresh(credit)
        return credit

    async def log_transaction(
        self,
        user_id: str,
        transaction_type: m.CreditTransactionType,
        amount: int,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> m.CreditTransaction:
        transaction = m.CreditTransaction(
            user_id=user_id,
            type=transaction_type,
            amount=amount,
            description=description,
            metadata_=metadata,
        )
        self.repository.session.add(transaction)
        await self.repository.session.flush()
        return transaction

    async def list_transactions(self, user_id: str, limit: int = 50) -> list[m.CreditTransaction]:
        """Return the user's most recent transactions, newest first."""
        stmt = (
            select(m.CreditTransaction)
            .where(m.CreditTransaction.user_id == user_id)
            .order_by(m.CreditTransaction.created_at.desc(), m.CreditTransaction.id.desc())
            .limit(limit)
        )
        result = await self.repository.session.execute(stmt)
        return list(result.scalars().all())
