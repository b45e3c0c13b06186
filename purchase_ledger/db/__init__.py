"""Database layer: declarative base, column types, engine and scopes."""

from purchase_ledger.db.base import Base, UUIDString
from purchase_ledger.db.engine import LedgerDatabase
from purchase_ledger.db.errors import translate_db_error
from purchase_ledger.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from purchase_ledger.db.types import CurrencyCode, Money, MoneyType

__all__ = [
    "Base",
    "CurrencyCode",
    "LedgerDatabase",
    "Money",
    "MoneyType",
    "UUIDString",
    "register_immutability_listeners",
    "translate_db_error",
    "unregister_immutability_listeners",
]
