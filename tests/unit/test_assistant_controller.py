from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

import pytest

from expense_tracker.db.models import CreditTransactionType
from expense_tracker.domain.assistant.controllers.assistant import AssistantController
from expense_tracker.domain.assistant.schemas import ChatRequest
from expense_tracker.domain.credits.schemas import InsufficientCreditsResponse
from expense_tracker.lib.exceptions import InsufficientCreditsException

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

pytestmark = pytest.mark.anyio


class StubAgentService:
    """Stub service returning deterministic streaming events."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def stream_chat_with_agent(
        self,
        *,
        user_id: str,
        message: str,
        session_id: str | None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        self.calls.append({"user_id": user_id, "message": message, "session_id": session_id})

        yield {"event": "session_initialized", "data": {"session_id": "user_abc_1234"}}
        yield {"event": "tool_call", "data": {"tool_name": "create_expense", "arguments": "{}"}}
        yield {"event": "message", "data": {"content": "Recorded your coffee"}}
        yield {"event": "completed", "data": {"final_message": "Recorded your coffee"}}


class ExhaustedAgentService:
    async def chat_with_agent(self, *, user_id: str, message: str, session_id: str | None) -> tuple[str, str]:
        raise InsufficientCreditsException(user_id, CreditTransactionType.MESSAGE, used=10, limit=10)


def _request(*messages: dict[str, str], session_id: str | None = None) -> ChatRequest:
    return ChatRequest.model_validate({"messages": list(messages), "sessionId": session_id})


async def test_chat_stream_relays_service_events() -> None:
    service = StubAgentService()
    user = SimpleNamespace(id="abc")
    request = _request(
        {"role": "user", "content": "earlier"},
        {"role": "assistant", "content": "ok"},
        {"role": "user", "content": "I bought a coffee for 4.50"},
    )

    response = await AssistantController.chat_stream.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        current_user=user,
        data=request,
        agent_service=service,
    )

    events = [chunk.decode() async for chunk in response.iterator]

    assert any("event: tool_call" in event for event in events)
    assert any("Recorded your coffee" in event for event in events)
    assert service.calls == [{"user_id": "abc", "message": "I bought a coffee for 4.50", "session_id": None}]


async def test_chat_stream_missing_user_message() -> None:
    service = StubAgentService()

    response = await AssistantController.chat_stream.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        current_user=SimpleNamespace(id="abc"),
        data=_request({"role": "system", "content": "be nice"}),
        agent_service=service,
    )

    chunks = [chunk.decode() async for chunk in response.iterator]

    assert len(chunks) == 1
    assert "event: error" in chunks[0]
    assert "No user message" in chunks[0]
    assert service.calls == []


async def test_chat_returns_429_when_messages_exhausted() -> None:
    response = await AssistantController.chat.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        current_user=SimpleNamespace(id="abc"),
        data=_request({"role": "user", "content": "hello"}),
        agent_service=ExhaustedAgentService(),
    )

    assert response.status_code == 429
    assert isinstance(response.content, InsufficientCreditsResponse)
    assert response.content.credit_type == "message"
    assert response.content.credits_remaining == 0
