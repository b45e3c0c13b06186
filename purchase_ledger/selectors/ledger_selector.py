"""
Module: purchase_ledger.selectors.ledger_selector
Responsibility: Read-only queries over ledger entries: the finalization
    existence check, entries of one quote, and the paged ledger listing.
Architecture position: Selectors.  has_entries_for_quote() runs inside the
    finalization write scope; the listing runs inside a read scope.

Invariants enforced:
    - Listing is newest first (purchased_at descending), stable within a
      timestamp by item name then id.
    - Date bounds are inclusive on both ends.
"""

import math
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, or_, select

from purchase_ledger.domain.dtos import LedgerEntryView, LedgerPage
from purchase_ledger.domain.values import (
    UNCATEGORIZED,
    Provenance,
    as_utc,
    lower_bound,
    upper_bound,
)
from purchase_ledger.models.ledger_entry import LedgerEntry
from purchase_ledger.models.quote import QuoteLineItem
from purchase_ledger.selectors.base import BaseSelector

MAX_PAGE_SIZE = 100


def to_entry_view(entry: LedgerEntry) -> LedgerEntryView:
    return LedgerEntryView(
        entry_id=entry.id,
        scope_key=entry.scope_key,
        quote_id=entry.quote_id,
        line_item_id=entry.line_item_id,
        product_id=entry.product_id,
        vendor_name=entry.vendor_name,
        category=entry.category,
        item_name=entry.item_name,
        catalog_number=entry.catalog_number,
        unit=entry.unit,
        quantity=entry.quantity,
        unit_price=entry.unit_price,
        amount=entry.amount,
        currency=entry.currency,
        purchased_at=as_utc(entry.purchased_at),
        provenance=Provenance(entry.provenance),
    )


class LedgerEntrySelector(BaseSelector):
    """Read-only access to ledger entries."""

    def has_entries_for_quote(self, quote_id: UUID) -> bool:
        """True if any ledger entry references this quote."""
        stmt = select(LedgerEntry.id).where(LedgerEntry.quote_id == quote_id).limit(1)
        return self.session.execute(stmt).first() is not None

    def entries_for_quote(self, quote_id: UUID) -> list[LedgerEntryView]:
        """Entries created from one quote, in line item position order."""
        stmt = (
            select(LedgerEntry)
            .outerjoin(QuoteLineItem, LedgerEntry.line_item_id == QuoteLineItem.id)
            .where(LedgerEntry.quote_id == quote_id)
            .order_by(QuoteLineItem.position, LedgerEntry.item_name, LedgerEntry.id)
        )
        return [to_entry_view(entry) for entry in self.session.scalars(stmt)]

    def list_entries(
        self,
        scope_key: str,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        vendor_name: str | None = None,
        category: str | None = None,
        page: int = 1,
        page_size: int = 20,
        unmapped_only: bool = False,
    ) -> LedgerPage:
        """
        One page of a scope's ledger, newest first.

        ``category="Uncategorized"`` selects entries without a category (NULL
        or blank).  ``unmapped_only`` keeps entries with no product reference,
        the rows awaiting a product remap.

        Raises:
            ValueError: If page < 1 or page_size is outside 1..100.
        """
        if page < 1:
            raise ValueError(f"page must be at least 1, got {page}")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
            )

        conditions = [LedgerEntry.scope_key == scope_key]
        if date_from is not None:
            conditions.append(LedgerEntry.purchased_at >= lower_bound(date_from))
        if date_to is not None:
            conditions.append(LedgerEntry.purchased_at <= upper_bound(date_to))
        if vendor_name is not None:
            conditions.append(LedgerEntry.vendor_name == vendor_name)
        if category == UNCATEGORIZED:
            conditions.append(
                or_(LedgerEntry.category.is_(None), func.trim(LedgerEntry.category) == "")
            )
        elif category is not None:
            conditions.append(LedgerEntry.category == category)
        if unmapped_only:
            conditions.append(LedgerEntry.product_id.is_(None))

        total = self.session.execute(
            select(func.count()).select_from(LedgerEntry).where(*conditions)
        ).scalar_one()

        stmt = (
            select(LedgerEntry)
            .where(*conditions)
            .order_by(
                LedgerEntry.purchased_at.desc(),
                LedgerEntry.item_name.asc(),
                LedgerEntry.id.asc(),
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        entries = tuple(to_entry_view(entry) for entry in self.session.scalars(stmt))

        return LedgerPage(
            entries=entries,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )
