"""Read-only selectors returning domain DTOs."""

from purchase_ledger.selectors.base import BaseSelector
from purchase_ledger.selectors.ledger_selector import LedgerEntrySelector
from purchase_ledger.selectors.quote_selector import QuoteSelector
from purchase_ledger.selectors.spend_selector import SpendSummarySelector

__all__ = [
    "BaseSelector",
    "LedgerEntrySelector",
    "QuoteSelector",
    "SpendSummarySelector",
]
