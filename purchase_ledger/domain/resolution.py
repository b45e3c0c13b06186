"""
Price/amount resolution policy.

Responsibility:
    Turns a line item's optional explicit prices and an optional vendor
    reference price into the unit price, amount and vendor label committed
    to the ledger.

Architecture position:
    Domain -- pure functional core.  No ORM, no clock, no I/O.  The
    finalization service calls ``resolve`` identically for every line item.

Precedence:
    unit_price  = explicit unit price
                  else vendor reference price rounded to the ledger currency
                  else None
    amount      = explicit line total
                  else unit_price * quantity (when unit_price resolved)
                  else 0
    vendor_name = vendor label of the offer, else "Unknown Vendor"

    "Explicit" means not None; a zero price or total is explicit.
"""

from decimal import Decimal

from purchase_ledger.domain.currency import round_to_minor_unit
from purchase_ledger.domain.dtos import (
    LineItemPricingInput,
    ResolvedPricing,
    VendorReference,
)

UNKNOWN_VENDOR = "Unknown Vendor"


def resolve_unit_price(
    line_item: LineItemPricingInput,
    vendor_offer: VendorReference | None,
    ledger_currency: str,
) -> Decimal | None:
    if line_item.unit_price is not None:
        return line_item.unit_price
    if vendor_offer is not None and vendor_offer.reference_price is not None:
        return round_to_minor_unit(vendor_offer.reference_price, ledger_currency)
    return None


def resolve_amount(
    line_item: LineItemPricingInput,
    unit_price: Decimal | None,
) -> Decimal:
    if line_item.line_total is not None:
        return line_item.line_total
    if unit_price is not None:
        return unit_price * line_item.quantity
    return Decimal("0")


def resolve(
    line_item: LineItemPricingInput,
    vendor_offer: VendorReference | None,
    ledger_currency: str,
    unknown_vendor_label: str = UNKNOWN_VENDOR,
) -> ResolvedPricing:
    """Apply the resolution policy to one line item.

    Args:
        line_item: Quantity plus optional explicit unit price / line total.
        vendor_offer: Best vendor offer for the item's product, if any.
        ledger_currency: Currency whose minor unit reference prices are
            rounded to.
        unknown_vendor_label: Label used when no vendor offer exists.

    Returns:
        ResolvedPricing with unit_price, amount and vendor_name.

    Raises:
        InvalidCurrencyError: If a reference price must be rounded and
            ``ledger_currency`` is unknown.
    """
    unit_price = resolve_unit_price(line_item, vendor_offer, ledger_currency)
    amount = resolve_amount(line_item, unit_price)
    vendor_name = (
        vendor_offer.vendor_name if vendor_offer is not None else unknown_vendor_label
    )
    return ResolvedPricing(
        unit_price=unit_price,
        amount=amount,
        vendor_name=vendor_name,
    )
