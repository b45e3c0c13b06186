"""
FinalizationService against a real database.

Covers the example scenarios (two-line quote, empty quote, missing quote),
idempotency on repeated calls, row field derivation and the after-commit
activity event.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from purchase_ledger.exceptions import EmptyQuoteError, QuoteNotFoundError
from purchase_ledger.models.activity_log import ActivityLog, ActivityType
from purchase_ledger.models.ledger_entry import LedgerEntry
from purchase_ledger.models.quote import QuoteLineItem
from purchase_ledger.selectors.ledger_selector import LedgerEntrySelector
from purchase_ledger.services.activity_sink import DatabaseActivitySink
from purchase_ledger.services.finalization_service import FinalizationService
from tests.conftest import TEST_NOW, TEST_SCOPE


def _entries(database, quote_id):
    with database.read_scope("test") as session:
        return LedgerEntrySelector(session).entries_for_quote(quote_id)


def _count_entries(database, quote_id=None):
    with database.session() as session:
        stmt = select(func.count()).select_from(LedgerEntry)
        if quote_id is not None:
            stmt = stmt.where(LedgerEntry.quote_id == quote_id)
        return session.execute(stmt).scalar_one()


class RecordingSink:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


class ExplodingSink:
    def record(self, event):
        raise ConnectionError("activity store unavailable")


@pytest.fixture
def two_line_quote(seed):
    """Q1: explicit 1000 x 2 (total 2000) and an unpriced line with a 500 offer."""
    product = seed.product(name="Pipette Tips 200uL", category="Plastics")
    vendor = seed.vendor("Sigma Korea")
    seed.offer(product, vendor, Decimal("500"))
    return seed.quote(
        lines=[
            {
                "product_id": product,
                "quantity": 2,
                "unit_price": Decimal("1000"),
                "line_total": Decimal("2000"),
            },
            {"product_id": product, "quantity": 3},
        ]
    )


class TestFinalizeScenario:

    def test_creates_one_row_per_line(self, database, finalization_service, two_line_quote):
        result = finalization_service.finalize(two_line_quote, TEST_SCOPE)

        assert result.already_finalized is False
        assert result.created_count == 2
        assert result.total_amount == Decimal("3500")
        assert result.currency == "KRW"

        entries = _entries(database, two_line_quote)
        assert [e.amount for e in entries] == [Decimal("2000"), Decimal("1500")]
        assert [e.unit_price for e in entries] == [Decimal("1000"), Decimal("500")]

    def test_second_call_is_noop(self, database, finalization_service, two_line_quote):
        finalization_service.finalize(two_line_quote, TEST_SCOPE)
        again = finalization_service.finalize(two_line_quote, TEST_SCOPE)

        assert again.already_finalized is True
        assert again.created_count == 0
        assert _count_entries(database, two_line_quote) == 2

    def test_many_sequential_calls_yield_n_rows(self, database, finalization_service, two_line_quote):
        results = [finalization_service.finalize(two_line_quote, TEST_SCOPE) for _ in range(5)]

        assert sum(1 for r in results if not r.already_finalized) == 1
        assert sum(r.created_count for r in results) == 2
        assert _count_entries(database, two_line_quote) == 2


class TestRowDerivation:

    def test_fields_from_product_and_clock(self, database, finalization_service, seed):
        product = seed.product(name="Anti-GFP", category="Antibodies", catalog_number="AB-1")
        vendor = seed.vendor("Abcam")
        seed.offer(product, vendor, Decimal("320000"))
        quote_id = seed.quote(lines=[{"product_id": product, "quantity": 1}])

        finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.scope_key == TEST_SCOPE
        assert entry.product_id == product
        assert entry.vendor_name == "Abcam"
        assert entry.item_name == "Anti-GFP"
        assert entry.category == "Antibodies"
        assert entry.catalog_number == "AB-1"
        assert entry.unit == "ea"
        assert entry.currency == "KRW"
        assert entry.provenance.value == "quote"
        assert entry.purchased_at == TEST_NOW

    def test_snapshot_fields_used_without_product(self, database, finalization_service, seed):
        quote_id = seed.quote(
            lines=[
                {
                    "quantity": 2,
                    "unit_price": Decimal("15000"),
                    "snapshot_name": "Custom primer set",
                    "snapshot_category": "Oligos",
                    "snapshot_catalog_number": "PR-77",
                    "snapshot_unit": "box",
                    "currency": "USD",
                }
            ]
        )

        finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.product_id is None
        assert entry.item_name == "Custom primer set"
        assert entry.category == "Oligos"
        assert entry.catalog_number == "PR-77"
        assert entry.unit == "box"
        assert entry.currency == "USD"
        assert entry.vendor_name == "Unknown Vendor"
        assert entry.amount == Decimal("30000")

    def test_nothing_known_falls_back_to_sentinels(self, database, finalization_service, seed):
        quote_id = seed.quote(lines=[{"quantity": 4}])

        result = finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert result.created_count == 1
        assert entry.item_name == "Unknown Item"
        assert entry.vendor_name == "Unknown Vendor"
        assert entry.unit_price is None
        assert entry.amount == Decimal("0")
        assert entry.category is None

    def test_cheapest_priced_offer_wins(self, database, finalization_service, seed):
        product = seed.product()
        seed.offer(product, seed.vendor("Zeta Bio"), Decimal("900"))
        seed.offer(product, seed.vendor("Alpha Sci"), Decimal("1200"))
        seed.offer(product, seed.vendor("Aardvark Labs"), None)
        seed.offer(product, seed.vendor("Beta Lab"), Decimal("900"))
        quote_id = seed.quote(lines=[{"product_id": product, "quantity": 1}])

        finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.vendor_name == "Beta Lab"
        assert entry.unit_price == Decimal("900")

    def test_offer_prices_compared_numerically(self, database, finalization_service, seed):
        product = seed.product()
        seed.offer(product, seed.vendor("Expensive"), Decimal("100000"))
        seed.offer(product, seed.vendor("Cheap"), Decimal("20000"))
        quote_id = seed.quote(lines=[{"product_id": product, "quantity": 1}])

        finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.vendor_name == "Cheap"

    def test_reference_price_rounded_to_ledger_currency(self, database, finalization_service, seed):
        product = seed.product()
        seed.offer(product, seed.vendor("Sigma Korea"), Decimal("999.5"))
        quote_id = seed.quote(lines=[{"product_id": product, "quantity": 2}])

        finalization_service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.unit_price == Decimal("1000")
        assert entry.amount == Decimal("2000")

    def test_mixed_currencies_report_no_single_currency(self, finalization_service, seed):
        quote_id = seed.quote(
            lines=[
                {"quantity": 1, "unit_price": Decimal("1000"), "currency": "KRW"},
                {"quantity": 1, "unit_price": Decimal("10.00"), "currency": "USD"},
            ]
        )
        result = finalization_service.finalize(quote_id, TEST_SCOPE)
        assert result.created_count == 2
        assert result.currency is None


class TestFinalizeFailures:

    def test_empty_quote(self, database, finalization_service, seed):
        quote_id = seed.quote(lines=[])

        with pytest.raises(EmptyQuoteError) as exc_info:
            finalization_service.finalize(quote_id, TEST_SCOPE)

        assert exc_info.value.code == "QUOTE_HAS_NO_ITEMS"
        assert exc_info.value.retryable is False
        assert _count_entries(database, quote_id) == 0

    def test_missing_quote(self, database, finalization_service):
        missing = uuid4()

        with pytest.raises(QuoteNotFoundError) as exc_info:
            finalization_service.finalize(missing, TEST_SCOPE)

        assert exc_info.value.code == "QUOTE_NOT_FOUND"
        assert _count_entries(database) == 0

    def test_empty_quote_stays_retryable_after_items_added(self, database, finalization_service, seed):
        quote_id = seed.quote(lines=[])
        with pytest.raises(EmptyQuoteError):
            finalization_service.finalize(quote_id, TEST_SCOPE)

        with database.session() as session, session.begin():
            session.add(QuoteLineItem(quote_id=quote_id, quantity=1, position=0))

        result = finalization_service.finalize(quote_id, TEST_SCOPE)
        assert result.created_count == 1


class TestActivityEvent:

    def test_event_emitted_once_after_creation(self, database, deterministic_clock, two_line_quote):
        sink = RecordingSink()
        service = FinalizationService(database, clock=deterministic_clock, activity_sink=sink)

        service.finalize(two_line_quote, TEST_SCOPE)
        service.finalize(two_line_quote, TEST_SCOPE)

        assert len(sink.events) == 1
        event = sink.events[0]
        assert event.activity_type is ActivityType.QUOTE_FINALIZED
        assert event.entity_id == str(two_line_quote)
        assert event.scope_key == TEST_SCOPE
        assert event.metadata["created_count"] == 2

    def test_no_event_on_failure(self, database, deterministic_clock, seed):
        sink = RecordingSink()
        service = FinalizationService(database, clock=deterministic_clock, activity_sink=sink)

        with pytest.raises(EmptyQuoteError):
            service.finalize(seed.quote(lines=[]), TEST_SCOPE)

        assert sink.events == []

    def test_sink_failure_does_not_affect_result(
        self, database, deterministic_clock, two_line_quote, captured_logs
    ):
        service = FinalizationService(
            database, clock=deterministic_clock, activity_sink=ExplodingSink()
        )

        result = service.finalize(two_line_quote, TEST_SCOPE)

        assert result.created_count == 2
        assert _count_entries(database, two_line_quote) == 2
        failures = [r for r in captured_logs() if r["message"] == "activity_sink_failed"]
        assert len(failures) == 1
        assert failures[0]["error_type"] == "ConnectionError"

    def test_database_sink_persists_activity(self, database, deterministic_clock, two_line_quote):
        service = FinalizationService(
            database,
            clock=deterministic_clock,
            activity_sink=DatabaseActivitySink(database),
        )

        service.finalize(two_line_quote, TEST_SCOPE)

        with database.session() as session:
            rows = session.scalars(select(ActivityLog)).all()
        assert len(rows) == 1
        assert rows[0].activity_type == "quote_finalized"
        assert rows[0].entity_id == str(two_line_quote)
        assert Decimal(rows[0].activity_metadata["total_amount"]) == Decimal("3500")


class TestFinalizeLogging:

    def test_completion_logged_with_context(self, finalization_service, two_line_quote, captured_logs):
        finalization_service.finalize(two_line_quote, TEST_SCOPE)

        completed = [r for r in captured_logs() if r["message"] == "finalize_completed"]
        assert len(completed) == 1
        assert completed[0]["created_count"] == 2
        assert completed[0]["quote_id"] == str(two_line_quote)
        assert completed[0]["scope_key"] == TEST_SCOPE

    def test_already_finalized_logged(self, finalization_service, two_line_quote, captured_logs):
        finalization_service.finalize(two_line_quote, TEST_SCOPE)
        finalization_service.finalize(two_line_quote, TEST_SCOPE)

        messages = [r["message"] for r in captured_logs()]
        assert "finalize_already_finalized" in messages


class TestServiceConfiguration:

    def test_from_settings(self, database, deterministic_clock, seed):
        from ledger_config import LedgerSettings

        settings = LedgerSettings(
            default_currency="USD",
            unknown_vendor_label="No vendor",
            unknown_item_label="No item",
            default_unit="unit",
        )
        service = FinalizationService.from_settings(database, settings, clock=deterministic_clock)
        quote_id = seed.quote(lines=[{"quantity": 1}])

        service.finalize(quote_id, TEST_SCOPE)
        (entry,) = _entries(database, quote_id)

        assert entry.vendor_name == "No vendor"
        assert entry.item_name == "No item"
        assert entry.unit == "unit"
        assert entry.currency == "USD"
