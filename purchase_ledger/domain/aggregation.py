"""
Spend aggregation fold.

Responsibility:
    Single pass over ledger rows producing the total, monthly buckets and
    the top vendor / category groups.

Architecture position:
    Domain -- pure.  The spend selector feeds it rows read from the
    database; tests feed it rows directly.

Ordering:
    - by_month ascending by ``YYYY-MM``.
    - top groups descending by summed amount, ties ascending by label,
      truncated to ``top_n``.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from purchase_ledger.domain.dtos import (
    CategorySpend,
    MonthlySpend,
    SpendRow,
    SpendSummary,
    VendorSpend,
)
from purchase_ledger.domain.values import category_label, month_key

DEFAULT_TOP_N = 10


def _ranked(totals: dict[str, Decimal], top_n: int) -> list[tuple[str, Decimal]]:
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:top_n]


def summarize_entries(
    rows: Iterable[SpendRow],
    top_n: int = DEFAULT_TOP_N,
) -> SpendSummary:
    """Fold ledger rows into a SpendSummary."""
    if top_n < 1:
        raise ValueError(f"top_n must be at least 1, got {top_n}")

    total = Decimal("0")
    count = 0
    by_month: dict[str, Decimal] = defaultdict(Decimal)
    by_vendor: dict[str, Decimal] = defaultdict(Decimal)
    by_category: dict[str, Decimal] = defaultdict(Decimal)

    for row in rows:
        count += 1
        total += row.amount
        by_month[month_key(row.purchased_at)] += row.amount
        by_vendor[row.vendor_name] += row.amount
        by_category[category_label(row.category)] += row.amount

    return SpendSummary(
        total_amount=total,
        by_month=tuple(
            MonthlySpend(year_month=key, amount=by_month[key])
            for key in sorted(by_month)
        ),
        top_vendors=tuple(
            VendorSpend(vendor_name=name, amount=amount)
            for name, amount in _ranked(by_vendor, top_n)
        ),
        top_categories=tuple(
            CategorySpend(category=name, amount=amount)
            for name, amount in _ranked(by_category, top_n)
        ),
        entry_count=count,
    )
