"""Schemas for credits domain."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from expense_tracker.db.models import CreditTransactionType
from expense_tracker.domain.accounts.schemas import PydanticBaseModel

if TYPE_CHECKING:
    from expense_tracker.lib.credit_ledger import CreditSnapshot

__all__ = (
    "ConsumeCreditRequest",
    "ConsumeCreditResponse",
    "CreditTransactionModel",
    "CreditTransactionsResponse",
    "CreditsModel",
    "CreditsResponse",
    "InsufficientCreditsResponse",
)


class CreditsModel(PydanticBaseModel):
    """Credit snapshot as surfaced to clients."""

    function_calls_used: int
    messages_used: int
    function_calls_limit: int
    messages_limit: int
    is_premium: bool
    last_reset_date: datetime
    next_reset_date: datetime
    function_calls_remaining: int
    messages_remaining: int

    @classmethod
    def from_snapshot(cls, snapshot: CreditSnapshot) -> CreditsModel:
        return cls(
            function_calls_used=snapshot.function_calls_used,
            messages_used=snapshot.messages_used,
            function_calls_limit=snapshot.function_calls_limit,
            messages_limit=snapshot.messages_limit,
            is_premium=snapshot.is_premium,
            last_reset_date=snapshot.last_reset_date,
            next_reset_date=snapshot.next_reset_date,
            function_calls_remaining=snapshot.function_calls_remaining,
            messages_remaining=snapshot.messages_remaining,
        )


class CreditsResponse(PydanticBaseModel):
    success: bool = True
    credits: CreditsModel


class ConsumeCreditRequest(PydanticBaseModel):
    """Request schema for consuming one credit."""

    type: Literal["function_call", "message"] = Field(
        ..., description="Kind of credit to consume")
    description: str | None = Field(
        default=None, max_length=255, description="Optional note stored with the transaction")


class ConsumeCreditResponse(PydanticBaseModel):
    success: bool = True
    message: str
    remaining: int
    credits: CreditsModel


class InsufficientCreditsResponse(PydanticBaseModel):
    """Response schema for exhausted quotas."""

    success: bool = False
    error: str = Field(..., description="Human-readable error message")
    error_code: str = Field(default="INSUFFICIENT_CREDITS", description="Error code")
    credit_type: str
    credits_remaining: int


class CreditTransactionModel(PydanticBaseModel):
    id: int
    user_id: str
    type: CreditTransactionType
    amount: int
    description: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    created_at: datetime


class CreditTransactionsResponse(PydanticBaseModel):
    success: bool = True
    transactions: list[CreditTransactionModel]
