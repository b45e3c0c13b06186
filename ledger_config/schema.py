"""
LedgerSettings schema.

Defines the typed runtime settings of the purchase ledger.  YAML files are
parsed into this frozen dataclass by the loader; nothing else in the
system reads configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///purchase_ledger.db"


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the purchase ledger core."""

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10

    # Ledger currency: fallback for line items without one, and the
    # precision vendor reference prices are rounded to.
    default_currency: str = "KRW"

    # Time budgets (seconds)
    write_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 10.0

    # Reporting
    top_n: int = 10

    # Degraded-but-valid labels
    unknown_vendor_label: str = "Unknown Vendor"
    unknown_item_label: str = "Unknown Item"
    default_unit: str = "ea"

    # Caller-side retry policy for transient finalize failures
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.05
    retry_max_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.write_timeout_seconds <= 0:
            raise ValueError("write_timeout_seconds must be positive")
        if self.read_timeout_seconds <= 0:
            raise ValueError("read_timeout_seconds must be positive")
        if self.top_n < 1:
            raise ValueError("top_n must be at least 1")
        if self.retry_max_attempts < 1:
            raise ValueError("retry_max_attempts must be at least 1")
        if self.retry_base_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            raise ValueError("retry delays must not be negative")
        if self.pool_size < 1 or self.max_overflow < 0:
            raise ValueError("pool_size must be >= 1 and max_overflow >= 0")
