from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from expense_tracker.domain.accounts.schemas import PydanticBaseModel

__all__ = (
    "ExpenseCreate",
    "ExpenseModel",
    "ExpenseTagModel",
    "ExpenseUpdate",
    "TagCreate",
    "TagModel",
    "TagUpdate",
)


class ExpenseTagModel(PydanticBaseModel):
    id: int
    name: str


class ExpenseModel(PydanticBaseModel):
    id: int
    title: str
    amount: int
    user_id: str
    created_at: datetime
    updated_at: datetime
    expense_tags: list[ExpenseTagModel] = Field(default_factory=list)

    @field_validator("expense_tags", mode="before")
    @classmethod
    def _flatten_tags(cls, value: Any) -> Any:
        """Flatten ORM join rows into ``{id, name}`` pairs."""
        if value is None:
            return []

        if not isinstance(value, Iterable):
            return value

        flattened: list[Any] = []
        for item in value:
            tag = getattr(item, "tag", None)
            if tag is not None:
                flattened.append({"id": tag.id, "name": tag.tag_name})
            else:
                flattened.append(item)
        return flattened


class ExpenseCreate(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=100)
    amount: int = Field(gt=0, description="Amount in cents")
    tag_ids: list[int] | None = None
    created_at: datetime | None = None


class ExpenseUpdate(PydanticBaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    amount: int | None = Field(default=None, gt=0, description="Amount in cents")
    tag_ids: list[int] | None = None
    created_at: datetime | None = None


class TagModel(PydanticBaseModel):
    id: int
    tag_name: str
    user_id: str
    created_at: datetime


class TagCreate(PydanticBaseModel):
    tag_name: str = Field(min_length=1, max_length=30)


class TagUpdate(PydanticBaseModel):
    tag_name: str = Field(min_length=1, max_length=30)
