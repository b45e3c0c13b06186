"""
Module: purchase_ledger.db.types
Responsibility: Column types for money and currency codes.

Invariants enforced:
    - No floats for monetary amounts.  PostgreSQL stores Numeric(38, 9);
      SQLite, which has no exact decimal type, stores the canonical string
      form so values round-trip without binary rounding.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

MONEY_PRECISION = 38
MONEY_SCALE = 9


class MoneyType(TypeDecorator):
    """
    Exact decimal amount, portable across PostgreSQL and SQLite.

    Guarantees:
        - process_bind_param: Decimal -> Decimal (PostgreSQL) or str (SQLite).
        - process_result_value: always returns Decimal or None.
    """

    impl = Numeric(MONEY_PRECISION, MONEY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(
            Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


Money = Annotated[Decimal, MoneyType()]

# ISO 4217 currency code (e.g., "KRW", "USD")
CurrencyCode = Annotated[str, String(3)]
