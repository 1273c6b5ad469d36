"""Pydantic argument models for expense assistant tools."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from expense_tracker.lib.money import MAX_DOLLARS, to_cents

__all__ = [
    "CreateExpenseArgs",
    "CreateTagArgs",
    "DeleteExpenseArgs",
    "GetAllTagsArgs",
    "GetExpenseInsightsArgs",
    "GetExpenseSummaryArgs",
    "SearchExpensesArgs",
    "ToolArgs",
]

TAG_NAME_MAX_LENGTH = 30


class ToolArgs(BaseModel):
    """Tool arguments arrive camelCased from the model."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class CreateExpenseArgs(ToolArgs):
    title: str = Field(..., min_length=1, max_length=100,
                       description="Short description of what the money was spent on")
    amount: float = Field(..., gt=0, le=MAX_DOLLARS, allow_inf_nan=False,
                          description="Amount spent in dollars, e.g. 4.50")
    tag_names: list[str] = Field(
        default_factory=list,
        description="Tag names to attach. Existing tags are reused, missing ones are created",
    )
    date: datetime | None = Field(
        default=None,
        description="When the expense happened, ISO-8601 (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS). Defaults to now",
    )

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Title must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("amount")
    @classmethod
    def _amount_has_cents(cls, value: float) -> float:
        if to_cents(value) < 1:
            msg = "Amount must be at least $0.01"
            raise ValueError(msg)
        return value

    @field_validator("tag_names")
    @classmethod
    def _tag_names_fit(cls, value: list[str]) -> list[str]:
        for name in value:
            if len(name.strip()) > TAG_NAME_MAX_LENGTH:
                msg = f"Tag name '{name}' is longer than {TAG_NAME_MAX_LENGTH} characters"
                raise ValueError(msg)
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _parse_iso(cls, value: object) -> object:
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError as e:
                msg = f"Invalid date '{value}', expected ISO-8601"
                raise ValueError(msg) from e
        return value

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class GetAllTagsArgs(ToolArgs):
    pass


class GetExpenseSummaryArgs(ToolArgs):
    pass


class SearchExpensesArgs(ToolArgs):
    query: str | None = Field(default=None, description="Text to look for in expense titles")
    min_amount: float | None = Field(default=None, ge=0, le=MAX_DOLLARS, allow_inf_nan=False,
                                      description="Minimum amount in dollars")
    max_amount: float | None = Field(default=None, ge=0, le=MAX_DOLLARS, allow_inf_nan=False,
                                      description="Maximum amount in dollars")
    tag_name: str | None = Field(default=None, description="Only return expenses carrying this tag")
    limit: int = Field(default=10, ge=1, le=100, description="Maximum number of results")


class CreateTagArgs(ToolArgs):
    tag_name: str = Field(..., min_length=1, max_length=TAG_NAME_MAX_LENGTH,
                          description="Name of the tag to create")

    @field_validator("tag_name")
    @classmethod
    def _tag_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Tag name must not be empty"
            raise ValueError(msg)
        return value.strip()


class GetExpenseInsightsArgs(ToolArgs):
    period: Literal["week", "month", "year"] = Field(
        default="month", description="Time window to analyse: week (last 7 days), month or year to date")


class DeleteExpenseArgs(ToolArgs):
    expense_id: int = Field(..., gt=0, description="ID of the expense to delete")
