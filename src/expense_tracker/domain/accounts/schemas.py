from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = (
    "AuthenticatedUser",
    "Message",
    "PydanticBaseModel",
)


class PydanticBaseModel(BaseModel):
    """Base model with camel case config."""

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        alias_generator=to_camel,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Identity resolved from the bearer token.

    ``id`` is the identity provider's stable user identifier and is stored
    verbatim as ``user_id`` on every owned row.
    """

    id: str


class Message(PydanticBaseModel):
    message: str
