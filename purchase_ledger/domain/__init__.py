"""
Pure domain layer.

Data transfer objects and ledger policies with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.  The Clock abstraction
lives here so services can receive time by injection.
"""

from purchase_ledger.domain.aggregation import summarize_entries
from purchase_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from purchase_ledger.domain.currency import (
    CurrencyInfo,
    CurrencyRegistry,
    round_to_minor_unit,
)
from purchase_ledger.domain.dtos import (
    CategorySpend,
    FinalizeResult,
    LedgerEntryDraft,
    LedgerEntryView,
    LedgerPage,
    LineItemPricingInput,
    MonthlySpend,
    QuoteLineView,
    QuoteView,
    ResolvedPricing,
    SpendRow,
    SpendSummary,
    VendorReference,
    VendorSpend,
)
from purchase_ledger.domain.resolution import UNKNOWN_VENDOR, resolve
from purchase_ledger.domain.values import (
    UNCATEGORIZED,
    Provenance,
    as_utc,
    category_label,
    day_bounds,
    lower_bound,
    month_bounds,
    month_key,
    stored_category,
    upper_bound,
)

__all__ = [
    "CategorySpend",
    "Clock",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "FinalizeResult",
    "LedgerEntryDraft",
    "LedgerEntryView",
    "LedgerPage",
    "LineItemPricingInput",
    "MonthlySpend",
    "Provenance",
    "QuoteLineView",
    "QuoteView",
    "ResolvedPricing",
    "SpendRow",
    "SpendSummary",
    "SystemClock",
    "UNCATEGORIZED",
    "UNKNOWN_VENDOR",
    "VendorReference",
    "VendorSpend",
    "as_utc",
    "category_label",
    "day_bounds",
    "lower_bound",
    "month_bounds",
    "month_key",
    "stored_category",
    "upper_bound",
    "resolve",
    "round_to_minor_unit",
    "summarize_entries",
]
