from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.db import models as m
from expense_tracker.domain.assistant.controllers.assistant import AssistantController
from expense_tracker.domain.assistant.schemas import ChatThreadCreate, ChatThreadUpdate
from expense_tracker.domain.assistant.services import ChatThreadService, ExpenseAgentService, title_from_message
from expense_tracker.domain.credits.services import UserCreditService
from expense_tracker.domain.expenses.services import ExpenseService, TagService
from expense_tracker.lib.credit_ledger import CreditLedger
from expense_tracker.lib.exceptions import NotFoundOrForbiddenError

pytestmark = pytest.mark.anyio


class RecordingAgentService:
    """Stands in for the agent service where only session storage is touched."""

    def __init__(self) -> None:
        self.cleared: list[str] = []
        self.history_requests: list[tuple[str, int | None]] = []

    async def get_session_history(self, session_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        self.history_requests.append((session_id, limit))
        return [{"role": "user", "content": "hi"}]

    async def clear_session_history(self, session_id: str) -> None:
        self.cleared.append(session_id)


def _agent_service(session: AsyncSession, ledger: CreditLedger | None = None) -> ExpenseAgentService:
    return ExpenseAgentService(
        expense_service=ExpenseService(session=session),
        tag_service=TagService(session=session),
        credit_service=UserCreditService(session=session),
        credit_ledger=ledger or CreditLedger(),
        thread_service=ChatThreadService(session=session),
        session_db_path=":memory:",
    )


async def _events(service: ExpenseAgentService, user_id: str, session_id: str | None) -> list[dict[str, Any]]:
    return [event async for event in service.stream_chat_with_agent(user_id, "hello", session_id)]


def test_title_from_message() -> None:
    assert title_from_message("Coffee for 4.50\nand a muffin") == "Coffee for 4.50"
    assert title_from_message("   ") == "New Chat"
    long_title = title_from_message("x" * 80)
    assert len(long_title) == 50
    assert long_title.endswith("...")


async def test_threads_are_owned_by_exact_user_id(session: AsyncSession) -> None:
    threads = ChatThreadService(session=session)
    theirs = await threads.create_thread("alice_bob", "Budget")

    assert (await threads.get_owned_thread(theirs.id, "alice_bob")).title == "Budget"
    assert (await threads.get_owned_thread(str(theirs.id), "alice_bob")).id == theirs.id
    with pytest.raises(NotFoundOrForbiddenError):
        await threads.get_owned_thread(theirs.id, "alice")
    with pytest.raises(NotFoundOrForbiddenError):
        await threads.get_owned_thread("user_alice_bob_64de13e1", "alice_bob")


async def test_thread_endpoints_list_rename_and_delete(session: AsyncSession) -> None:
    threads = ChatThreadService(session=session)
    agent_service = RecordingAgentService()
    user = SimpleNamespace(id="alice")

    first = await AssistantController.create_thread.fn(  # type: ignore[attr-defined]
        SimpleNamespace(), current_user=user, data=ChatThreadCreate(), thread_service=threads)
    second = await AssistantController.create_thread.fn(  # type: ignore[attr-defined]
        SimpleNamespace(), current_user=user, data=ChatThreadCreate(title="Groceries"), thread_service=threads)
    await threads.create_thread("alice_bob", "Not yours")
    await threads.touch(await threads.get_owned_thread(first.id, "alice"))

    listed = await AssistantController.list_threads.fn(  # type: ignore[attr-defined]
        SimpleNamespace(), current_user=user, thread_service=threads)
    assert listed.count == 2
    assert [thread.id for thread in listed.threads] == [first.id, second.id]
    assert first.title == "New Chat"

    renamed = await AssistantController.rename_thread.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        current_user=user,
        thread_id=second.id,
        data=ChatThreadUpdate(title="Weekly shop"),
        thread_service=threads,
    )
    assert renamed.title == "Weekly shop"

    history = await AssistantController.get_thread_messages.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        thread_id=second.id,
        current_user=user,
        thread_service=threads,
        agent_service=agent_service,
        limit=20,
    )
    assert history.session_id == str(second.id)
    assert agent_service.history_requests == [(str(second.id), 20)]

    deleted = await AssistantController.delete_thread.fn(  # type: ignore[attr-defined]
        SimpleNamespace(),
        current_user=user,
        thread_id=second.id,
        thread_service=threads,
        agent_service=agent_service,
    )
    assert deleted.message == "Thread deleted successfully"
    assert agent_service.cleared == [str(second.id)]
    assert [t.id for t in await threads.list_threads("alice")] == [first.id]


async def test_foreign_thread_is_refused_by_every_endpoint(session: AsyncSession) -> None:
    threads = ChatThreadService(session=session)
    agent_service = RecordingAgentService()
    foreign = await threads.create_thread("alice_bob", "Private")
    intruder = SimpleNamespace(id="alice")

    with pytest.raises(NotFoundOrForbiddenError):
        await AssistantController.get_thread_messages.fn(  # type: ignore[attr-defined]
            SimpleNamespace(),
            thread_id=foreign.id,
            current_user=intruder,
            thread_service=threads,
            agent_service=agent_service,
            limit=10,
        )
    with pytest.raises(NotFoundOrForbiddenError):
        await AssistantController.clear_thread_messages.fn(  # type: ignore[attr-defined]
            SimpleNamespace(),
            thread_id=foreign.id,
            current_user=intruder,
            thread_service=threads,
            agent_service=agent_service,
        )
    with pytest.raises(NotFoundOrForbiddenError):
        await AssistantController.delete_thread.fn(  # type: ignore[attr-defined]
            SimpleNamespace(),
            current_user=intruder,
            thread_id=foreign.id,
            thread_service=threads,
            agent_service=agent_service,
        )

    assert agent_service.history_requests == []
    assert agent_service.cleared == []
    assert (await threads.get_owned_thread(foreign.id, "alice_bob")).title == "Private"


async def test_stream_refuses_foreign_thread_before_charging(session: AsyncSession) -> None:
    service = _agent_service(session)
    foreign = await service.thread_service.create_thread("alice_bob")

    events = await _events(service, "alice", str(foreign.id))
    unknown = await _events(service, "alice", str(uuid4()))

    assert [event["event"] for event in events] == ["error"]
    assert "Thread not found" in events[0]["data"]["message"]
    assert [event["event"] for event in unknown] == ["error"]
    snapshot = await service.credit_ledger.get_snapshot("alice", service.credit_service)
    assert snapshot.messages_used == 0


async def test_stream_without_message_credits_creates_no_thread(session: AsyncSession) -> None:
    service = _agent_service(session, CreditLedger(messages_limit=0))

    events = await _events(service, "alice", None)

    assert [event["event"] for event in events] == ["insufficient_credits"]
    assert events[0]["data"]["credits_remaining"] == 0
    count = await session.scalar(select(func.count()).select_from(m.ChatThread))
    assert count == 0


class ClosingSession:
    def __init__(self) -> None:
        self.closed = False
        self.cleared = False

    async def get_items(self, limit: int | None = None) -> list[dict[str, Any]]:
        return [{"role": "user", "content": "hi"}]

    async def clear_session(self) -> None:
        self.cleared = True

    def close(self) -> None:
        self.closed = True


async def test_history_and_clear_close_their_sessions(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    service = _agent_service(session)
    opened: list[ClosingSession] = []

    def open_session(session_id: str) -> ClosingSession:
        opened.append(ClosingSession())
        return opened[-1]

    monkeypatch.setattr(service, "_open_session", open_session)

    history = await service.get_session_history("thread-1", limit=5)
    await service.clear_session_history("thread-1")

    assert history == [{"role": "user", "content": "hi"}]
    assert [s.closed for s in opened] == [True, True]
    assert opened[1].cleared is True
