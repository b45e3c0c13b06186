"""
Module: purchase_ledger.models.quote
Responsibility: ORM persistence for quotes and their line items.
Architecture position: Models.  May import from db/ only.

Quotes are owned by the quote-authoring collaborator.  The ledger core only
reads them; a line item is immutable once its quote is finalized.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchase_ledger.db.base import Base, UUIDString

if TYPE_CHECKING:
    from purchase_ledger.models.catalog import Product


class QuoteStatus(str, Enum):
    """Lifecycle status of a quote as set by quote authoring."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    RESPONDED = "responded"
    COMPLETED = "completed"
    PURCHASED = "purchased"
    CANCELLED = "cancelled"


class Quote(Base):
    """Quote header: identity, ownership scope, status and line items."""

    __tablename__ = "quotes"

    __table_args__ = (
        Index("idx_quote_scope", "scope_key"),
    )

    scope_key: Mapped[str] = mapped_column(String(200), nullable=False)

    title: Mapped[str] = mapped_column(String(300), nullable=False, default="")

    status: Mapped[str] = mapped_column(
        String(20),
        default=QuoteStatus.DRAFT.value,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    items: Mapped[list["QuoteLineItem"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteLineItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Quote {self.id} status={self.status}>"


class QuoteLineItem(Base):
    """
    One row of a quote: a quantity of a product at an optional price.

    The snapshot_* columns hold catalog fields denormalized at authoring
    time, used when the product reference is missing or incomplete.
    """

    __tablename__ = "quote_line_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_quote_line_quantity_positive"),
        Index("idx_quote_line_quote", "quote_id"),
    )

    quote_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id"),
        nullable=False,
    )

    product_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    vendor_label: Mapped[str | None] = mapped_column(String(200), nullable=True)
    brand_label: Mapped[str | None] = mapped_column(String(200), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    line_total: Mapped[Decimal | None] = mapped_column(nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Catalog snapshot at authoring time
    snapshot_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    snapshot_category: Mapped[str | None] = mapped_column(String(200), nullable=True)
    snapshot_catalog_number: Mapped[str | None] = mapped_column(String(200), nullable=True)
    snapshot_unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    quote: Mapped[Quote] = relationship(back_populates="items")

    product: Mapped["Product | None"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<QuoteLineItem {self.id} quote={self.quote_id} qty={self.quantity}>"
