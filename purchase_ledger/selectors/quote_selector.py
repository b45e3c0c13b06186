"""
Module: purchase_ledger.selectors.quote_selector
Responsibility: Read a quote and its line items into a QuoteView, and find
    the best vendor offer for a product.
Architecture position: Selectors.  Called by the finalization service inside
    its write scope, so reads happen in the same serializable transaction as
    the insert.

Best offer ordering:
    offers with a reference price first, lowest price first, then vendor
    name ascending.  An offer without a price still supplies a vendor label.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from purchase_ledger.domain.dtos import QuoteLineView, QuoteView, VendorReference
from purchase_ledger.models.catalog import Vendor, VendorOffer
from purchase_ledger.models.quote import Quote
from purchase_ledger.selectors.base import BaseSelector


class QuoteSelector(BaseSelector):
    """Read-only access to quotes and vendor reference prices."""

    def load_quote(self, quote_id: UUID) -> QuoteView | None:
        """Quote with its line items in position order, or None if absent."""
        quote = self.session.get(Quote, quote_id)
        if quote is None:
            return None

        lines = []
        for item in quote.items:
            product = item.product
            lines.append(
                QuoteLineView(
                    line_item_id=item.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    currency=item.currency,
                    product_name=product.name if product else None,
                    product_category=product.category if product else None,
                    product_catalog_number=product.catalog_number if product else None,
                    snapshot_name=item.snapshot_name,
                    snapshot_category=item.snapshot_category,
                    snapshot_catalog_number=item.snapshot_catalog_number,
                    snapshot_unit=item.snapshot_unit,
                )
            )

        return QuoteView(
            quote_id=quote.id,
            scope_key=quote.scope_key,
            title=quote.title,
            status=quote.status,
            lines=tuple(lines),
        )

    def best_vendor_offer(self, product_id: UUID | None) -> VendorReference | None:
        """Best offer for a product, or None when it has no offers."""
        if product_id is None:
            return None

        stmt = (
            select(Vendor.name, VendorOffer.reference_price)
            .join(Vendor, VendorOffer.vendor_id == Vendor.id)
            .where(VendorOffer.product_id == product_id)
        )
        offers = [
            VendorReference(vendor_name=row.name, reference_price=row.reference_price)
            for row in self.session.execute(stmt)
        ]
        if not offers:
            return None
        # Ranked in Python: SQLite stores money as text, so SQL ordering
        # would be lexicographic.
        return min(offers, key=_offer_rank)


def _offer_rank(offer: VendorReference) -> tuple:
    price = offer.reference_price
    return (price is None, price if price is not None else Decimal("0"), offer.vendor_name)
