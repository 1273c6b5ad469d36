"""Per-user daily credit counters."""

from __future__ import annotations

from datetime import UTC, datetime

from advanced_alchemy.base import BigIntAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class UserCredit(BigIntAuditBase):
    """Daily usage counters and limits for one user."""

    __tablename__ = "user_credit"
    __table_args__ = {"comment": "Daily function call and message quotas"}

    # Opaque identifier issued by the identity provider
    user_id: Mapped[str] = mapped_column(
        String(length=255),
        unique=True,
        index=True,
        nullable=False,
    )

    function_calls_used: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False)
    messages_used: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False)
    function_calls_limit: Mapped[int] = mapped_column(
        Integer,
        default=10,
        nullable=False,
        comment="Free tier: 10 function calls per day",
    )
    messages_limit: Mapped[int] = mapped_column(
        Integer,
        default=10,
        nullable=False,
        comment="Free tier: 10 messages per day",
    )
    is_premium: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False)
    last_reset_date: Mapped[datetime] = mapped_column(
        DateTimeUTC(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        comment="Start of the current 24 hour window",
    )

    @property
    def function_calls_remaining(self) -> int:
        return max(0, self.function_calls_limit - self.function_calls_used)

    @property
    def messages_remaining(self) -> int:
        return max(0, self.messages_limit - self.messages_used)
