"""ORM models for the purchase ledger."""

from purchase_ledger.models.activity_log import ActivityLog, ActivityType
from purchase_ledger.models.catalog import Product, Vendor, VendorOffer
from purchase_ledger.models.ledger_entry import REMAPPABLE_FIELDS, LedgerEntry
from purchase_ledger.models.quote import Quote, QuoteLineItem, QuoteStatus

__all__ = [
    "ActivityLog",
    "ActivityType",
    "LedgerEntry",
    "Product",
    "Quote",
    "QuoteLineItem",
    "QuoteStatus",
    "REMAPPABLE_FIELDS",
    "Vendor",
    "VendorOffer",
]
