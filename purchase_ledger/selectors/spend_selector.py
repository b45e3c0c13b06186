"""
Module: purchase_ledger.selectors.spend_selector
Responsibility: Read path of the spend aggregation: fetch a scope's ledger
    rows in an inclusive date range and fold them with
    domain.aggregation.summarize_entries.
Architecture position: Selectors.  Runs inside LedgerDatabase.read_scope(),
    which bounds it by the read timeout.  Never writes.

Range handling:
    - Both bounds inclusive.
    - Omitted bounds default to the current calendar month (UTC) of the
      injected clock: first instant to last instant.
    - A ``date`` bound covers the whole day.
    - date_from after date_to raises InvalidDateRangeError.
"""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from purchase_ledger.domain.aggregation import DEFAULT_TOP_N, summarize_entries
from purchase_ledger.domain.clock import Clock, SystemClock
from purchase_ledger.domain.dtos import SpendRow, SpendSummary
from purchase_ledger.domain.values import lower_bound, month_bounds, upper_bound
from purchase_ledger.exceptions import InvalidDateRangeError
from purchase_ledger.logging_config import get_logger
from purchase_ledger.models.ledger_entry import LedgerEntry
from purchase_ledger.selectors.base import BaseSelector

logger = get_logger("selectors.spend")


class SpendSummarySelector(BaseSelector):
    """
    Spend totals per scope and date range.

    Guarantees:
        - total_amount equals the sum of amounts of exactly the rows in range.
        - Sum over by_month equals total_amount.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        top_n: int = DEFAULT_TOP_N,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._top_n = top_n

    def resolve_range(
        self,
        date_from: date | datetime | None,
        date_to: date | datetime | None,
    ) -> tuple[datetime, datetime]:
        """Inclusive UTC bounds, defaulting to the clock's current month."""
        month_start, month_end = month_bounds(self._clock.now())
        lower = lower_bound(date_from) if date_from is not None else month_start
        upper = upper_bound(date_to) if date_to is not None else month_end
        if lower > upper:
            raise InvalidDateRangeError(lower, upper)
        return lower, upper

    def summarize(
        self,
        scope_key: str,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
    ) -> SpendSummary:
        lower, upper = self.resolve_range(date_from, date_to)

        stmt = select(
            LedgerEntry.purchased_at,
            LedgerEntry.vendor_name,
            LedgerEntry.category,
            LedgerEntry.amount,
        ).where(
            LedgerEntry.scope_key == scope_key,
            LedgerEntry.purchased_at >= lower,
            LedgerEntry.purchased_at <= upper,
        )
        rows = (
            SpendRow(
                purchased_at=row.purchased_at,
                vendor_name=row.vendor_name,
                category=row.category,
                amount=row.amount,
            )
            for row in self.session.execute(stmt)
        )
        summary = summarize_entries(rows, top_n=self._top_n)

        logger.info(
            "spend_summarized",
            extra={
                "scope_key": scope_key,
                "date_from": lower,
                "date_to": upper,
                "entry_count": summary.entry_count,
                "total_amount": summary.total_amount,
            },
        )
        return summary
