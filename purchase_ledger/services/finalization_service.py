"""
FinalizationService -- idempotent conversion of a quote into ledger entries.

Responsibility:
    Materialize exactly one ledger entry per line item of an accepted quote,
    at most once per quote, no matter how often or how concurrently
    ``finalize`` is called.

Architecture position:
    Services -- imperative shell around the pure resolution policy.
    Owns its transaction through ``LedgerDatabase.write_scope``.

Invariants enforced:
    - Idempotency: the existence check and the bulk insert run in one
      serializable transaction.  A second call observes the first call's
      rows and returns ``already_finalized=True`` without writing.
    - No partial writes: either every line item's row is inserted or none.
    - A benign duplicate (same quote_id, line_item_id) is a no-op through
      ON CONFLICT DO NOTHING, never an error.
    - The activity event is emitted only after commit and only when rows
      were created.

Failure modes:
    - QuoteNotFoundError: quote id unknown.  Nothing written.
    - EmptyQuoteError: quote has no line items.  Nothing written.
    - SerializationConflictError / TransactionTimeoutError: transient,
      transaction rolled back.  Never retried here; see services/retry.py.
"""

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from purchase_ledger.db.engine import LedgerDatabase
from purchase_ledger.domain.clock import Clock, SystemClock
from purchase_ledger.domain.currency import CurrencyRegistry
from purchase_ledger.domain.dtos import (
    FinalizeResult,
    LedgerEntryDraft,
    QuoteLineView,
    QuoteView,
)
from purchase_ledger.domain.resolution import UNKNOWN_VENDOR, resolve
from purchase_ledger.domain.values import Provenance, stored_category
from purchase_ledger.exceptions import EmptyQuoteError, QuoteNotFoundError
from purchase_ledger.logging_config import LogContext, get_logger
from purchase_ledger.models.activity_log import ActivityType
from purchase_ledger.models.ledger_entry import LedgerEntry
from purchase_ledger.selectors.ledger_selector import LedgerEntrySelector
from purchase_ledger.selectors.quote_selector import QuoteSelector
from purchase_ledger.services.activity_sink import (
    ActivityEvent,
    ActivitySink,
    NullActivitySink,
    emit_best_effort,
)

logger = get_logger("services.finalization")

UNKNOWN_ITEM = "Unknown Item"
DEFAULT_UNIT = "ea"

_CONFLICT_COLUMNS = ["quote_id", "line_item_id"]


class FinalizationService:
    """
    Turns a quote into ledger entries exactly once.

    Usage:
        service = FinalizationService(database, clock=SystemClock())
        result = service.finalize(quote_id, scope_key)
    """

    def __init__(
        self,
        database: LedgerDatabase,
        clock: Clock | None = None,
        activity_sink: ActivitySink | None = None,
        *,
        default_currency: str = "KRW",
        unknown_vendor_label: str = UNKNOWN_VENDOR,
        unknown_item_label: str = UNKNOWN_ITEM,
        default_unit: str = DEFAULT_UNIT,
    ):
        self._database = database
        self._clock = clock or SystemClock()
        self._sink = activity_sink or NullActivitySink()
        self._default_currency = CurrencyRegistry.validate(default_currency)
        self._unknown_vendor_label = unknown_vendor_label
        self._unknown_item_label = unknown_item_label
        self._default_unit = default_unit

    @classmethod
    def from_settings(
        cls,
        database: LedgerDatabase,
        settings,
        clock: Clock | None = None,
        activity_sink: ActivitySink | None = None,
    ) -> "FinalizationService":
        return cls(
            database,
            clock=clock,
            activity_sink=activity_sink,
            default_currency=settings.default_currency,
            unknown_vendor_label=settings.unknown_vendor_label,
            unknown_item_label=settings.unknown_item_label,
            default_unit=settings.default_unit,
        )

    def finalize(self, quote_id: UUID, scope_key: str) -> FinalizeResult:
        """
        Create one ledger entry per line item of ``quote_id``, once.

        Args:
            quote_id: Quote to finalize.
            scope_key: Tenant/workspace the entries belong to.  The caller
                has already authorized it.

        Returns:
            FinalizeResult.  ``already_finalized=True, created_count=0`` when
            entries for this quote already existed.

        Raises:
            QuoteNotFoundError, EmptyQuoteError: permanent.
            SerializationConflictError, TransactionTimeoutError: transient.
        """
        with LogContext.bind(quote_id=str(quote_id), scope_key=scope_key):
            logger.info("finalize_started")

            with self._database.write_scope("finalize") as session:
                result = self._finalize_in_session(session, quote_id, scope_key)

            if result.already_finalized:
                logger.info("finalize_already_finalized")
                return result

            logger.info(
                "finalize_completed",
                extra={
                    "created_count": result.created_count,
                    "total_amount": result.total_amount,
                    "currency": result.currency,
                },
            )
            if result.created_count > 0:
                emit_best_effort(
                    self._sink,
                    ActivityEvent(
                        activity_type=ActivityType.QUOTE_FINALIZED,
                        entity_type="quote",
                        entity_id=str(quote_id),
                        scope_key=scope_key,
                        occurred_at=self._clock.now(),
                        metadata={
                            "created_count": result.created_count,
                            "total_amount": str(result.total_amount),
                            "currency": result.currency,
                        },
                    ),
                )
            return result

    # -----------------------------------------------------------------
    # Transaction body
    # -----------------------------------------------------------------

    def _finalize_in_session(
        self,
        session: Session,
        quote_id: UUID,
        scope_key: str,
    ) -> FinalizeResult:
        if LedgerEntrySelector(session).has_entries_for_quote(quote_id):
            return FinalizeResult(
                quote_id=quote_id,
                already_finalized=True,
                created_count=0,
            )

        quotes = QuoteSelector(session)
        quote = quotes.load_quote(quote_id)
        if quote is None:
            logger.warning("finalize_quote_not_found")
            raise QuoteNotFoundError(str(quote_id))
        if not quote.lines:
            logger.warning("finalize_quote_empty")
            raise EmptyQuoteError(str(quote_id))

        drafts = self._build_drafts(quotes, quote, scope_key)
        created = self._bulk_insert(session, drafts)

        return FinalizeResult(
            quote_id=quote_id,
            already_finalized=False,
            created_count=created,
            total_amount=sum((d.amount for d in drafts), Decimal("0")),
            currency=_single_currency(drafts),
        )

    def _build_drafts(
        self,
        quotes: QuoteSelector,
        quote: QuoteView,
        scope_key: str,
    ) -> list[LedgerEntryDraft]:
        purchased_at = self._clock.now()
        drafts = []
        for line in quote.lines:
            offer = quotes.best_vendor_offer(line.product_id)
            pricing = resolve(
                line.pricing_input,
                offer,
                self._default_currency,
                unknown_vendor_label=self._unknown_vendor_label,
            )
            drafts.append(
                LedgerEntryDraft(
                    scope_key=scope_key,
                    quote_id=quote.quote_id,
                    line_item_id=line.line_item_id,
                    product_id=line.product_id,
                    vendor_name=pricing.vendor_name,
                    category=(
                        stored_category(line.product_category)
                        or stored_category(line.snapshot_category)
                    ),
                    item_name=self._item_name(line),
                    catalog_number=(
                        line.product_catalog_number or line.snapshot_catalog_number
                    ),
                    unit=line.snapshot_unit or self._default_unit,
                    quantity=line.quantity,
                    unit_price=pricing.unit_price,
                    amount=pricing.amount,
                    currency=line.currency or self._default_currency,
                    purchased_at=purchased_at,
                    provenance=Provenance.QUOTE,
                )
            )
        return drafts

    def _item_name(self, line: QuoteLineView) -> str:
        return line.product_name or line.snapshot_name or self._unknown_item_label

    def _bulk_insert(self, session: Session, drafts: list[LedgerEntryDraft]) -> int:
        """Single multi-row INSERT ... ON CONFLICT DO NOTHING.  Returns rows inserted."""
        rows = [
            {
                "id": uuid4(),
                "scope_key": d.scope_key,
                "quote_id": d.quote_id,
                "line_item_id": d.line_item_id,
                "product_id": d.product_id,
                "vendor_name": d.vendor_name,
                "category": d.category,
                "item_name": d.item_name,
                "catalog_number": d.catalog_number,
                "unit": d.unit,
                "quantity": d.quantity,
                "unit_price": d.unit_price,
                "amount": d.amount,
                "currency": d.currency,
                "purchased_at": d.purchased_at,
                "provenance": d.provenance.value,
            }
            for d in drafts
        ]
        insert = pg_insert if self._database.dialect_name == "postgresql" else sqlite_insert
        stmt = (
            insert(LedgerEntry)
            .values(rows)
            .on_conflict_do_nothing(index_elements=_CONFLICT_COLUMNS)
        )
        result = session.connection().execute(stmt)
        return result.rowcount


def _single_currency(drafts: list[LedgerEntryDraft]) -> str | None:
    """The entries' currency when they all share one, else None."""
    currencies = {d.currency for d in drafts}
    if len(currencies) == 1:
        return currencies.pop()
    return None
