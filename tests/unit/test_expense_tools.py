from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.db import models as m
from expense_tracker.domain.assistant.tools.dispatcher import TOOL_REGISTRY, dispatch_tool, make_tool_invoker
from expense_tracker.domain.assistant.tools.tool_context import (
    AgentContext,
    clear_agent_context,
    set_agent_context,
)
from expense_tracker.domain.credits.services import UserCreditService
from expense_tracker.domain.expenses.services import ExpenseService, TagService
from expense_tracker.lib.credit_ledger import CreditLedger

pytestmark = pytest.mark.anyio

USER_ID = "user_alice"
OTHER_USER_ID = "user_bob"


def _context(session: AsyncSession, user_id: str = USER_ID, ledger: CreditLedger | None = None) -> AgentContext:
    return AgentContext(
        expense_service=ExpenseService(session=session),
        tag_service=TagService(session=session),
        user_id=user_id,
        credit_service=UserCreditService(session=session) if ledger else None,
        credit_ledger=ledger,
    )


async def _count(session: AsyncSession, model: type[m.Expense | m.Tag | m.ExpenseTag], *where: object) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return int(await session.scalar(stmt) or 0)


async def test_registry_exposes_all_operations() -> None:
    assert set(TOOL_REGISTRY) == {
        "create_expense",
        "get_all_tags",
        "get_expense_summary",
        "search_expenses",
        "create_tag",
        "get_expense_insights",
        "delete_expense",
    }


async def test_create_expense_stores_cents_and_reuses_tags(session: AsyncSession) -> None:
    context = _context(session)

    result = await dispatch_tool(
        "create_expense", '{"title": "Coffee", "amount": 4.5, "tagNames": ["Drinks"]}', context=context)

    assert result["success"] is True
    assert result["expense"]["amount"] == 4.5
    assert result["expense"]["tags"] == ["Drinks"]
    assert result["message"] == 'Successfully created expense "Coffee" for $4.50 with tags: Drinks'

    stored = await context.expense_service.get_expense_by_id(result["expense"]["id"], USER_ID)
    assert stored is not None
    assert stored.amount == 450
    assert [expense_tag.tag.tag_name for expense_tag in stored.expense_tags] == ["Drinks"]

    again = await dispatch_tool(
        "create_expense", {"title": "Tea", "amount": 3, "tagNames": ["Drinks", "Drinks", "  "]}, context=context)

    assert again["success"] is True
    assert again["expense"]["tags"] == ["Drinks"]
    assert await _count(session, m.Tag, m.Tag.user_id == USER_ID) == 1
    assert await _count(session, m.ExpenseTag) == 2


async def test_create_expense_accepts_double_encoded_tags_and_dates(session: AsyncSession) -> None:
    context = _context(session)

    result = await dispatch_tool(
        "create_expense",
        json.dumps({"title": "Groceries", "amount": 52.255, "tagNames": '["Food", "Home"]', "date": "2024-03-01"}),
        context=context,
    )

    assert result["success"] is True
    assert result["expense"]["tags"] == ["Food", "Home"]
    assert result["expense"]["amount"] == 52.26
    stored = await context.expense_service.get_expense_by_id(result["expense"]["id"], USER_ID)
    assert stored is not None
    assert stored.created_at == datetime(2024, 3, 1, tzinfo=UTC)


@pytest.mark.parametrize(
    "args",
    [
        {"title": "", "amount": 5},
        {"title": "Snack", "amount": -2},
        {"title": "Snack", "amount": 0.004},
        {"title": "Snack", "amount": 2, "tagNames": ["x" * 31]},
        {"title": "Snack", "amount": 2, "date": "yesterday"},
        {"amount": 2},
    ],
)
async def test_create_expense_rejects_invalid_arguments(session: AsyncSession, args: dict[str, object]) -> None:
    result = await dispatch_tool("create_expense", json.dumps(args), context=_context(session))

    assert result["success"] is False
    assert result["errorCode"] == "VALIDATION_ERROR"
    assert await _count(session, m.Expense) == 0
    assert await _count(session, m.Tag) == 0


async def test_create_tag_reports_duplicates(session: AsyncSession) -> None:
    context = _context(session)

    first = await dispatch_tool("create_tag", '{"tagName": "Travel"}', context=context)
    second = await dispatch_tool("create_tag", '{"tagName": "Travel"}', context=context)

    assert first["success"] is True
    assert first["tag"]["name"] == "Travel"
    assert second["success"] is False
    assert second["errorCode"] == "DUPLICATE_TAG"
    assert second["existingTag"]["id"] == first["tag"]["id"]
    assert "already exists" in second["message"]
    assert await _count(session, m.Tag) == 1

    # names are case sensitive and scoped per user
    assert (await dispatch_tool("create_tag", '{"tagName": "travel"}', context=context))["success"] is True
    other = await dispatch_tool("create_tag", '{"tagName": "Travel"}', context=_context(session, OTHER_USER_ID))
    assert other["success"] is True


async def test_get_all_tags_lists_only_callers_tags(session: AsyncSession) -> None:
    context = _context(session)
    await dispatch_tool("create_tag", {"tagName": "Rent"}, context=context)
    await dispatch_tool("create_tag", {"tagName": "Books"}, context=context)
    await dispatch_tool("create_tag", {"tagName": "Hidden"}, context=_context(session, OTHER_USER_ID))

    result = await dispatch_tool("get_all_tags", None, context=context)

    assert result["success"] is True
    assert [tag["name"] for tag in result["tags"]] == ["Books", "Rent"]
    assert result["message"] == "Found 2 existing tags."


async def test_delete_expense_is_scoped_to_owner(session: AsyncSession) -> None:
    context = _context(session)
    created = await dispatch_tool(
        "create_expense", {"title": "Cinema", "amount": 12, "tagNames": ["Fun"]}, context=context)
    expense_id = created["expense"]["id"]

    foreign = await dispatch_tool("delete_expense", {"expenseId": expense_id}, context=_context(session, OTHER_USER_ID))
    assert foreign["success"] is False
    assert "not found" in foreign["error"].lower()
    assert await context.expense_service.get_expense_by_id(expense_id, USER_ID) is not None

    deleted = await dispatch_tool("delete_expense", {"expenseId": expense_id}, context=context)
    assert deleted["success"] is True
    assert deleted["deletedExpense"]["title"] == "Cinema"
    assert deleted["message"] == 'Successfully deleted expense "Cinema" ($12.00).'
    assert await context.expense_service.get_expense_by_id(expense_id, USER_ID) is None
    assert await _count(session, m.ExpenseTag) == 0
    # the tag itself survives
    assert await _count(session, m.Tag) == 1

    missing = await dispatch_tool("delete_expense", {"expenseId": expense_id}, context=context)
    assert missing["success"] is False

    invalid = await dispatch_tool("delete_expense", {"expenseId": 0}, context=context)
    assert invalid["errorCode"] == "VALIDATION_ERROR"


async def test_search_expenses_filters(session: AsyncSession) -> None:
    context = _context(session)
    for title, amount, tags in (
        ("Coffee beans", 18, ["Food"]),
        ("Coffee", 3.5, ["Drinks"]),
        ("Train ticket", 42, ["Travel"]),
    ):
        await dispatch_tool("create_expense", {"title": title, "amount": amount, "tagNames": tags}, context=context)
    await dispatch_tool("create_expense", {"title": "Coffee", "amount": 4, "tagNames": ["Drinks"]},
                        context=_context(session, OTHER_USER_ID))

    by_title = await dispatch_tool("search_expenses", {"query": "coffee"}, context=context)
    assert by_title["count"] == 2
    assert {e["title"] for e in by_title["results"]} == {"Coffee beans", "Coffee"}

    by_range = await dispatch_tool("search_expenses", {"minAmount": 10, "maxAmount": 20}, context=context)
    assert [e["title"] for e in by_range["results"]] == ["Coffee beans"]
    assert by_range["results"][0]["amount"] == 18

    by_tag = await dispatch_tool("search_expenses", {"tagName": "Drinks"}, context=context)
    assert [e["title"] for e in by_tag["results"]] == ["Coffee"]
    assert by_tag["results"][0]["tags"] == ["Drinks"]

    limited = await dispatch_tool("search_expenses", {"limit": 1}, context=context)
    assert limited["count"] == 1
    assert limited["results"][0]["title"] == "Train ticket"


async def test_expense_summary(session: AsyncSession) -> None:
    context = _context(session)
    empty = await dispatch_tool("get_expense_summary", "", context=context)
    assert empty["summary"]["count"] == 0
    assert empty["summary"]["averageAmount"] == 0

    for index, amount in enumerate((10, 20, 30.5, 1, 2, 3)):
        await dispatch_tool("create_expense", {"title": f"Item {index}", "amount": amount}, context=context)

    result = await dispatch_tool("get_expense_summary", "{}", context=context)

    assert result["summary"]["totalAmount"] == 66.5
    assert result["summary"]["count"] == 6
    assert len(result["summary"]["recentExpenses"]) == 5
    assert result["summary"]["recentExpenses"][0]["title"] == "Item 5"
    assert result["message"] == "You have 6 expenses totaling $66.50. Average expense: $11.08."


async def test_expense_insights_week(session: AsyncSession) -> None:
    context = _context(session)
    now = datetime.now(UTC)
    await dispatch_tool("create_expense", {"title": "Recent", "amount": 14}, context=context)
    await dispatch_tool(
        "create_expense", {"title": "Old", "amount": 100, "date": (now - timedelta(days=10)).isoformat()},
        context=context)

    result = await dispatch_tool("get_expense_insights", {"period": "week"}, context=context)

    insights = result["insights"]
    assert insights["totalAmount"] == 14
    assert insights["numberOfExpenses"] == 1
    assert insights["daysInPeriod"] == 7
    assert insights["dailyAverage"] == 2
    assert result["message"].startswith("In the last 7 days, you spent $14.00 across 1 expenses.")

    invalid = await dispatch_tool("get_expense_insights", {"period": "decade"}, context=context)
    assert invalid["errorCode"] == "VALIDATION_ERROR"


async def test_tool_calls_charge_function_call_credits(session: AsyncSession) -> None:
    ledger = CreditLedger(function_calls_limit=2)
    context = _context(session, ledger=ledger)

    # rejected arguments are not charged
    await dispatch_tool("create_expense", {"title": "", "amount": 1}, context=context)
    assert (await dispatch_tool("get_all_tags", None, context=context))["success"] is True
    assert (await dispatch_tool("create_tag", {"tagName": "Gym"}, context=context))["success"] is True

    blocked = await dispatch_tool("create_tag", {"tagName": "Pool"}, context=context)

    assert blocked["success"] is False
    assert blocked["errorCode"] == "INSUFFICIENT_CREDITS"
    assert blocked["creditsRemaining"] == 0
    assert await _count(session, m.Tag) == 1
    snapshot = await ledger.get_snapshot(USER_ID, context.credit_service)
    assert snapshot.function_calls_used == 2
    transactions = await ledger.list_transactions(USER_ID, context.credit_service)
    assert [t.description for t in transactions] == ["Tool call: create_tag", "Tool call: get_all_tags"]


async def test_dispatch_without_context_or_unknown_tool(session: AsyncSession) -> None:
    clear_agent_context()
    assert (await dispatch_tool("get_all_tags"))["success"] is False

    unknown = await dispatch_tool("transfer_money", "{}", context=_context(session))
    assert unknown["success"] is False
    assert "Unknown tool" in unknown["error"]


async def test_tool_invoker_uses_bound_context(session: AsyncSession) -> None:
    context = _context(session)
    set_agent_context(context.expense_service, context.tag_service, USER_ID)
    try:
        invoke = make_tool_invoker("create_expense")
        output = await invoke(None, '{"title": "Bus", "amount": 2.75}')  # type: ignore[arg-type]
    finally:
        clear_agent_context()

    payload = json.loads(output)
    assert payload["success"] is True
    assert payload["expense"]["amount"] == 2.75
    assert await _count(session, m.Expense, m.Expense.user_id == USER_ID) == 1


@pytest.mark.parametrize(
    ("name", "args"),
    [
        ("create_expense", '{"title": "Yacht", "amount": Infinity}'),
        ("create_expense", '{"title": "Yacht", "amount": 1e30}'),
        ("create_expense", '{"title": "Yacht", "amount": 1e20}'),
        ("search_expenses", '{"minAmount": 1e30}'),
        ("search_expenses", '{"maxAmount": 1e20}'),
    ],
)
async def test_out_of_range_amounts_are_rejected(session: AsyncSession, name: str, args: str) -> None:
    result = await dispatch_tool(name, args, context=_context(session))

    assert result["success"] is False
    assert result["errorCode"] == "VALIDATION_ERROR"
    assert await _count(session, m.Expense) == 0


async def test_failing_tool_rolls_back_but_keeps_its_charge(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    ledger = CreditLedger(function_calls_limit=5)
    context = _context(session, ledger=ledger)
    original = context.tag_service.get_or_create_tag
    calls: list[str] = []

    async def flaky_get_or_create_tag(user_id: str, tag_name: str) -> m.Tag:
        calls.append(tag_name)
        if len(calls) > 1:
            msg = "connection dropped"
            raise RuntimeError(msg)
        return await original(user_id, tag_name)

    monkeypatch.setattr(context.tag_service, "get_or_create_tag", flaky_get_or_create_tag)

    result = await dispatch_tool(
        "create_expense", {"title": "Dinner", "amount": 30, "tagNames": ["Food", "Out"]}, context=context)

    assert result["success"] is False
    assert result["message"] == "Failed to create expense. Please try again."
    assert calls == ["Food", "Out"]
    assert await _count(session, m.Expense) == 0
    assert await _count(session, m.Tag) == 0
    assert await _count(session, m.ExpenseTag) == 0
    snapshot = await ledger.get_snapshot(USER_ID, context.credit_service)
    assert snapshot.function_calls_used == 1


async def test_storage_error_after_expense_flush_rolls_back(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    context = _context(session)
    await dispatch_tool("create_tag", {"tagName": "Taken"}, context=context)
    original = context.expense_service.create

    async def create_then_fail(data: m.Expense, **kwargs: object) -> m.Expense:
        await original(data, **kwargs)  # type: ignore[arg-type]
        # a second row with the same (user, name) violates the unique constraint
        session.add(m.Tag(tag_name="Taken", user_id=USER_ID))
        await session.flush()
        return data

    monkeypatch.setattr(context.expense_service, "create", create_then_fail)

    result = await dispatch_tool(
        "create_expense", {"title": "Shoes", "amount": 80, "tagNames": ["Taken"]}, context=context)

    assert result["success"] is False
    assert result["error"] == "A storage error occurred"
    assert await _count(session, m.Expense) == 0
    assert await _count(session, m.ExpenseTag) == 0
    assert await _count(session, m.Tag) == 1
