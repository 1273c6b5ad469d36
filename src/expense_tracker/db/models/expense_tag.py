from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.base import BigIntAuditBase
from sqlalchemy import BigInteger, ForeignKey, UniqueConstraint
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .expense import Expense
    from .tag import Tag


class ExpenseTag(BigIntAuditBase):
    """Expense Tag."""

    __tablename__ = "expense_tag"
    __table_args__ = (
        UniqueConstraint("expense_id", "tag_id", name="uq_expense_tag"),
        {"comment": "Links an expense to one of its owner's tags."},
    )
    expense_id: Mapped[int] = mapped_column(BigInteger, ForeignKey(
        "expense.id", ondelete="cascade"), nullable=False)
    tag_id: Mapped[int] = mapped_column(BigInteger, ForeignKey(
        "tag.id", ondelete="cascade"), nullable=False)

    # -----------
    # ORM Relationships
    # ------------
    expense: Mapped[Expense] = relationship(
        back_populates="expense_tags", innerjoin=True, uselist=False, lazy="joined")
    tag: Mapped[Tag] = relationship(
        back_populates="tag_expenses", innerjoin=True, uselist=False, lazy="joined")

    expense_title: AssociationProxy[str] = association_proxy("expense", "title")
    tag_name: AssociationProxy[str] = association_proxy("tag", "tag_name")
