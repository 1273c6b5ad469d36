"""Schemas for the assistant domain."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any
from uuid import UUID  # noqa: TC003

from pydantic import Field

from expense_tracker.domain.accounts.schemas import PydanticBaseModel

__all__ = (
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatThreadCreate",
    "ChatThreadList",
    "ChatThreadModel",
    "ChatThreadUpdate",
    "SessionHistoryResponse",
)


class ChatMessage(PydanticBaseModel):
    role: str = Field(..., description="Author of the message: user, assistant or system")
    content: str = Field(default="", description="Message text")


class ChatRequest(PydanticBaseModel):
    """Request schema for assistant chat."""

    messages: list[ChatMessage] = Field(..., description="List of conversation messages")
    session_id: str | None = Field(
        None, description="Optional thread id to continue; a new thread is started when omitted")

    def last_user_message(self) -> str:
        for message in reversed(self.messages):
            if message.role == "user" and message.content.strip():
                return message.content
        return ""


class ChatResponse(PydanticBaseModel):
    """Response schema for assistant chat."""

    status: str = Field(..., description="Status of the operation (success/error)")
    message: str = Field(..., description="Agent response message")
    session_id: str | None = Field(None, description="Thread the exchange was stored in")
    agent_response: list[dict[str, Any]] = Field(
        default_factory=list, description="Conversation history")


class SessionHistoryResponse(PydanticBaseModel):
    status: str = "success"
    session_id: str
    history: list[dict[str, Any]] = Field(default_factory=list)


class ChatThreadModel(PydanticBaseModel):
    id: UUID
    title: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class ChatThreadList(PydanticBaseModel):
    success: bool = True
    threads: list[ChatThreadModel] = Field(default_factory=list)
    count: int = 0


class ChatThreadCreate(PydanticBaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)


class ChatThreadUpdate(PydanticBaseModel):
    title: str = Field(min_length=1, max_length=255)
