from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import (
    SQLAlchemyAsyncRepository,
)
from advanced_alchemy.service import (
    SQLAlchemyAsyncRepositoryService,
)
from sqlalchemy import func, select

from expense_tracker.db import models as m
from expense_tracker.lib.exceptions import DuplicateTagError, NotFoundOrForbiddenError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

InsightPeriod = Literal["week", "month", "year"]

__all__ = (
    "ExpenseInsights",
    "ExpenseService",
    "ExpenseSummary",
    "InsightPeriod",
    "TagService",
    "period_start",
)


@dataclass(slots=True)
class ExpenseSummary:
    """Totals across all of a user's expenses, amounts in cents."""

    total_amount: int
    count: int
    recent_expenses: list[m.Expense] = field(default_factory=list)

    @property
    def average_amount(self) -> float:
        return self.total_amount / self.count if self.count else 0


@dataclass(slots=True)
class ExpenseInsights:
    """Spending over a calendar window, amounts in cents."""

    period: InsightPeriod
    start_date: datetime
    total_amount: int
    count: int
    days_in_period: int

    @property
    def average_amount(self) -> float:
        return self.total_amount / self.count if self.count else 0

    @property
    def daily_average(self) -> float:
        return self.total_amount / self.days_in_period


def period_start(period: InsightPeriod, now: datetime) -> datetime:
    """Start of the insight window: the last 7 days, this month, or this year."""
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "year":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    msg = f"Unknown period '{period}'"
    raise ValueError(msg)


class ExpenseService(SQLAlchemyAsyncRepositoryService[m.Expense]):
    """Handles database operations for expenses."""

    class Repository(SQLAlchemyAsyncRepository[m.Expense]):
        """Expense SQLAlchemy Repository."""

        model_type = m.Expense

    repository_type = Repository
    match_fields = ["title"]

    async def get_expense_by_id(self, expense_id: int, user_id: str) -> m.Expense | None:
        """Get an expense by ID for the specified user."""
        return await self.get_one_or_none(m.Expense.id == expense_id, m.Expense.user_id == user_id)

    async def get_owned_expense(self, expense_id: int, user_id: str) -> m.Expense:
        expense = await self.get_expense_by_id(expense_id, user_id)
        if expense is None:
            raise NotFoundOrForbiddenError(
                detail="Expense not found or you do not have permission to access it")
        return expense

    async def create_expense_with_tags(
        self,
        user_id: str,
        title: str,
        amount: int,
        tag_service: TagService,
        tag_names: Iterable[str] | None = None,
        tag_ids: Sequence[int] | None = None,
        created_at: datetime | None = None,
    ) -> tuple[m.Expense, list[str]]:
        """Create an expense and link it to tags looked up or created by name.

        Args:
            user_id: Owner of the expense
            title: Expense title
            amount: Amount in cents
            tag_service: TagService bound to the same session
            tag_names: Tag names to link; existing tags are reused
            tag_ids: Ids of tags the user already owns
            created_at: Optional backdated timestamp

        Returns:
            The new expense and the names of the tags linked to it, in order
        """
        tags = await tag_service.get_owned_tags(tag_ids, user_id) if tag_ids else []
        for tag_name in tag_names or ():
            if not tag_name.strip():
                continue
            tags.append(await tag_service.get_or_create_tag(user_id, tag_name.strip()))

        linked: list[m.Tag] = []
        for tag in tags:
            if all(tag.id != seen.id for seen in linked):
                linked.append(tag)

        expense = m.Expense(
            title=title,
            amount=amount,
            user_id=user_id,
            expense_tags=[m.ExpenseTag(tag=tag) for tag in linked],
        )
        if created_at is not None:
            expense.created_at = created_at
        expense = await self.create(expense)
        return expense, [tag.tag_name for tag in linked]

    async def update_expense(
        self,
        expense_id: int,
        user_id: str,
        tag_service: TagService,
        title: str | None = None,
        amount: int | None = None,
        tag_ids: Sequence[int] | None = None,
        created_at: datetime | None = None,
    ) -> m.Expense:
        """Update fields and, when ``tag_ids`` is given, replace the tag links."""
        expense = await self.get_owned_expense(expense_id, user_id)
        if title is not None:
            expense.title = title
        if amount is not None:
            expense.amount = amount
        if created_at is not None:
            expense.created_at = created_at
        if tag_ids is not None:
            tags = await tag_service.get_owned_tags(tag_ids, user_id)
            expense.expense_tags.clear()
            await self.repository.session.flush()
            for tag in tags:
                expense.expense_tags.append(m.ExpenseTag(tag=tag))
        return await self.update(expense)

    async def get_summary(self, user_id: str, recent_limit: int = 5) -> ExpenseSummary:
        """Total, count and most recent expenses for the user."""
        stmt = select(
            func.coalesce(func.sum(m.Expense.amount), 0),
            func.count(m.Expense.id),
        ).where(m.Expense.user_id == user_id)
        total_amount, count = (await self.repository.session.execute(stmt)).one()
        recent = await self.list(
            m.Expense.user_id == user_id,
            OrderBy(field_name="created_at", sort_order="desc"),
            LimitOffset(limit=recent_limit, offset=0),
        )
        return ExpenseSummary(total_amount=int(total_amount), count=int(count), recent_expenses=list(recent))

    async def search_expenses(
        self,
        user_id: str,
        query: str | None = None,
        min_amount: int | None = None,
        max_amount: int | None = None,
        tag_name: str | None = None,
        limit: int = 10,
    ) -> list[m.Expense]:
        """Filter the user's expenses, newest first.

        Args:
            user_id: Owner of the expenses
            query: Case-insensitive substring of the title
            min_amount: Inclusive lower bound in cents
            max_amount: Inclusive upper bound in cents
            tag_name: Exact name of a tag the expense must carry
            limit: Maximum number of rows to return

        Returns:
            Matching expenses
        """
        filters = [m.Expense.user_id == user_id]
        if query:
            filters.append(m.Expense.title.ilike(f"%{query}%"))
        if min_amount is not None:
            filters.append(m.Expense.amount >= min_amount)
        if max_amount is not None:
            filters.append(m.Expense.amount <= max_amount)
        if tag_name:
            filters.append(
                m.Expense.expense_tags.any(
                    m.ExpenseTag.tag.has((m.Tag.tag_name == tag_name) & (m.Tag.user_id == user_id))
                )
            )

        results = await self.list(
            *filters,
            OrderBy(field_name="created_at", sort_order="desc"),
            LimitOffset(limit=limit, offset=0),
        )
        return list(results)

    async def get_insights(
        self,
        user_id: str,
        period: InsightPeriod = "month",
        now: datetime | None = None,
    ) -> ExpenseInsights:
        """Aggregate spending since the start of ``period``."""
        now = now or datetime.now(UTC)
        start_date = period_start(period, now)
        stmt = select(
            func.coalesce(func.sum(m.Expense.amount), 0),
            func.count(m.Expense.id),
        ).where(m.Expense.user_id == user_id, m.Expense.created_at >= start_date)
        total_amount, count = (await self.repository.session.execute(stmt)).one()
        days_in_period = max(1, math.ceil((now - start_date) / timedelta(days=1)))
        return ExpenseInsights(
            period=period,
            start_date=start_date,
            total_amount=int(total_amount),
            count=int(count),
            days_in_period=days_in_period,
        )

    async def delete_expense_for_user(self, expense_id: int, user_id: str) -> m.Expense:
        """Delete an expense and its tag links.

        Raises:
            NotFoundOrForbiddenError: If the expense does not belong to ``user_id``
        """
        expense = await self.get_owned_expense(expense_id, user_id)
        # join rows go first through the delete-orphan cascade on expense_tags
        return await self.delete(expense.id)


class TagService(SQLAlchemyAsyncRepositoryService[m.Tag]):
    """Handles database operations for tags."""

    class TagRepository(SQLAlchemyAsyncRepository[m.Tag]):
        """Tag SQLAlchemy Repository."""

        model_type = m.Tag

    repository_type = TagRepository
    match_fields = ["tag_name"]

    async def get_tag_by_name(self, user_id: str, tag_name: str) -> m.Tag | None:
        return await self.get_one_or_none(m.Tag.user_id == user_id, m.Tag.tag_name == tag_name)

    async def get_or_create_tag(self, user_id: str, tag_name: str) -> m.Tag:
        """Get existing tag or create a new one for the user."""
        existing_tag = await self.get_tag_by_name(user_id, tag_name)

        if existing_tag:
            return existing_tag

        return await self.create({"tag_name": tag_name, "user_id": user_id})

    async def create_tag(self, user_id: str, tag_name: str) -> m.Tag:
        """Create a tag, refusing exact duplicates.

        Raises:
            DuplicateTagError: If the user already has a tag with this name
        """
        existing_tag = await self.get_tag_by_name(user_id, tag_name)
        if existing_tag:
            raise DuplicateTagError(existing_tag)
        return await self.create({"tag_name": tag_name, "user_id": user_id})

    async def list_tags(self, user_id: str) -> list[m.Tag]:
        results = await self.list(
            m.Tag.user_id == user_id,
            OrderBy(field_name="tag_name", sort_order="asc"),
        )
        return list(results)

    async def get_owned_tag(self, tag_id: int, user_id: str) -> m.Tag:
        tag = await self.get_one_or_none(m.Tag.id == tag_id, m.Tag.user_id == user_id)
        if tag is None:
            raise NotFoundOrForbiddenError(
                detail="Tag not found or you do not have permission to access it")
        return tag

    async def get_owned_tags(self, tag_ids: Sequence[int], user_id: str) -> list[m.Tag]:
        """Resolve ``tag_ids`` for the user, failing if any is missing or foreign."""
        unique_ids = list(dict.fromkeys(tag_ids))
        if not unique_ids:
            return []
        tags = await self.list(m.Tag.id.in_(unique_ids), m.Tag.user_id == user_id)
        by_id = {tag.id: tag for tag in tags}
        if len(by_id) != len(unique_ids):
            raise NotFoundOrForbiddenError(
                detail="Tag not found or you do not have permission to access it")
        return [by_id[tag_id] for tag_id in unique_ids]

    async def rename_tag(self, tag_id: int, user_id: str, tag_name: str) -> m.Tag:
        tag = await self.get_owned_tag(tag_id, user_id)
        if tag.tag_name == tag_name:
            return tag
        existing_tag = await self.get_tag_by_name(user_id, tag_name)
        if existing_tag:
            raise DuplicateTagError(existing_tag)
        tag.tag_name = tag_name
        return await self.update(tag)

    async def delete_tag_for_user(self, tag_id: int, user_id: str) -> m.Tag:
        tag = await self.get_owned_tag(tag_id, user_id)
        return await self.delete(tag.id)
