"""
Purchase Ledger Core

Turns accepted quotes into an append-only purchase ledger with:
- Idempotent, exactly-once finalization per quote
- Serializable write transactions with bounded timeouts
- Deterministic price/amount resolution
- Spend aggregation by month, vendor and category
"""

__version__ = "0.1.0"
