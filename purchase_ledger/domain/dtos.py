"""
Data transfer objects for the purchase ledger.

Frozen dataclasses crossing the boundaries between selectors, the pure
domain policies and the services.  No ORM types appear here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from purchase_ledger.domain.values import Provenance

# ---------------------------------------------------------------------------
# Resolution policy inputs/outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItemPricingInput:
    """The price-bearing fields of one quote line item."""

    quantity: int
    unit_price: Decimal | None = None
    line_total: Decimal | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be a positive integer, got {self.quantity}")


@dataclass(frozen=True)
class VendorReference:
    """The best vendor offer found for a line item's product."""

    vendor_name: str
    reference_price: Decimal | None = None


@dataclass(frozen=True)
class ResolvedPricing:
    """Committed unit price, amount and vendor label for one line item."""

    unit_price: Decimal | None
    amount: Decimal
    vendor_name: str


# ---------------------------------------------------------------------------
# Quote read model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuoteLineView:
    """A quote line item joined with its product's catalog fields."""

    line_item_id: UUID
    product_id: UUID | None
    quantity: int
    unit_price: Decimal | None
    line_total: Decimal | None
    currency: str | None
    product_name: str | None = None
    product_category: str | None = None
    product_catalog_number: str | None = None
    snapshot_name: str | None = None
    snapshot_category: str | None = None
    snapshot_catalog_number: str | None = None
    snapshot_unit: str | None = None

    @property
    def pricing_input(self) -> LineItemPricingInput:
        return LineItemPricingInput(
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_total=self.line_total,
        )


@dataclass(frozen=True)
class QuoteView:
    """A quote header with its line items in position order."""

    quote_id: UUID
    scope_key: str
    title: str
    status: str
    lines: tuple[QuoteLineView, ...]


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEntryDraft:
    """A candidate ledger row, built before the bulk insert."""

    scope_key: str
    quote_id: UUID
    line_item_id: UUID
    product_id: UUID | None
    vendor_name: str
    category: str | None
    item_name: str
    catalog_number: str | None
    unit: str
    quantity: int
    unit_price: Decimal | None
    amount: Decimal
    currency: str
    purchased_at: datetime
    provenance: Provenance = Provenance.QUOTE


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of finalizing one quote."""

    quote_id: UUID
    already_finalized: bool
    created_count: int
    total_amount: Decimal = Decimal("0")
    currency: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "quote_id": str(self.quote_id),
            "already_finalized": self.already_finalized,
            "created_count": self.created_count,
            "total_amount": str(self.total_amount),
            "currency": self.currency,
        }


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpendRow:
    """The fields of one ledger entry the aggregation fold reads."""

    purchased_at: datetime
    vendor_name: str
    category: str | None
    amount: Decimal


@dataclass(frozen=True)
class MonthlySpend:
    year_month: str
    amount: Decimal


@dataclass(frozen=True)
class VendorSpend:
    vendor_name: str
    amount: Decimal


@dataclass(frozen=True)
class CategorySpend:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class SpendSummary:
    """Spend totals for one scope and date range."""

    total_amount: Decimal
    by_month: tuple[MonthlySpend, ...] = ()
    top_vendors: tuple[VendorSpend, ...] = ()
    top_categories: tuple[CategorySpend, ...] = ()
    entry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_amount": str(self.total_amount),
            "entry_count": self.entry_count,
            "by_month": [
                {"year_month": m.year_month, "amount": str(m.amount)}
                for m in self.by_month
            ],
            "top_vendors": [
                {"vendor_name": v.vendor_name, "amount": str(v.amount)}
                for v in self.top_vendors
            ],
            "top_categories": [
                {"category": c.category, "amount": str(c.amount)}
                for c in self.top_categories
            ],
        }


# ---------------------------------------------------------------------------
# Ledger listing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEntryView:
    """Read-only projection of a ledger entry."""

    entry_id: UUID
    scope_key: str
    quote_id: UUID | None
    line_item_id: UUID | None
    product_id: UUID | None
    vendor_name: str
    category: str | None
    item_name: str
    catalog_number: str | None
    unit: str
    quantity: int
    unit_price: Decimal | None
    amount: Decimal
    currency: str
    purchased_at: datetime
    provenance: Provenance

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.entry_id),
            "scope_key": self.scope_key,
            "quote_id": str(self.quote_id) if self.quote_id else None,
            "line_item_id": str(self.line_item_id) if self.line_item_id else None,
            "product_id": str(self.product_id) if self.product_id else None,
            "vendor_name": self.vendor_name,
            "category": self.category,
            "item_name": self.item_name,
            "catalog_number": self.catalog_number,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price) if self.unit_price is not None else None,
            "amount": str(self.amount),
            "currency": self.currency,
            "purchased_at": self.purchased_at.isoformat(),
            "provenance": self.provenance.value,
        }


@dataclass(frozen=True)
class LedgerPage:
    """One page of ledger entries, newest first."""

    entries: tuple[LedgerEntryView, ...]
    total: int
    page: int
    page_size: int
    total_pages: int = field(default=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }
