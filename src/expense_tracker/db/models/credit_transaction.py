"""Append-only credit ledger entries."""

from __future__ import annotations

from typing import Any

from advanced_alchemy.base import BigIntAuditBase
from advanced_alchemy.types import JsonB
from sqlalchemy import Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .credit_transaction_type import CreditTransactionType


class CreditTransaction(BigIntAuditBase):
    """One consume, reset or upgrade event."""

    __tablename__ = "credit_transaction"
    __table_args__ = (
        Index("idx_credit_transaction_user_created", "user_id", "created_at"),
        {"comment": "Credit ledger events, never updated"},
    )

    user_id: Mapped[str] = mapped_column(
        String(length=255), index=True, nullable=False)
    type: Mapped[CreditTransactionType] = mapped_column(
        Enum(CreditTransactionType, name="credit_transaction_type_enum",
             native_enum=False, values_callable=lambda e: [member.value for member in e]),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(
        String(length=255), nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JsonB, nullable=True)
