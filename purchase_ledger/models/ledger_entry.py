"""
Module: purchase_ledger.models.ledger_entry
Responsibility: ORM persistence for ledger entries -- the finalized,
    money-bearing purchase records derived from quote line items.
Architecture position: Models.  May import from db/ only.

Invariants enforced:
    - At most one entry per (quote_id, line_item_id): UNIQUE constraint
      uq_ledger_quote_line.  The bulk insert relies on it to turn a benign
      duplicate into a no-op.
    - Append-only: ORM listeners in db/immutability.py reject UPDATE and
      DELETE, except attaching product_id (the remap collaborator).

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE attempts.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from purchase_ledger.db.base import Base, UUIDString
from purchase_ledger.domain.values import Provenance

# Columns a downstream remap tool may set after creation.
REMAPPABLE_FIELDS = frozenset({"product_id"})


class LedgerEntry(Base):
    """
    One purchased line: who bought what from whom, for how much, and when.

    Guarantees:
        - amount is never NULL (zero when no price could be resolved).
        - unit_price may be NULL when neither an explicit price nor a
          vendor reference price existed.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint("quote_id", "line_item_id", name="uq_ledger_quote_line"),
        Index("idx_ledger_quote", "quote_id"),
        Index("idx_ledger_scope_purchased", "scope_key", "purchased_at"),
    )

    scope_key: Mapped[str] = mapped_column(String(200), nullable=False)

    # Originating quote and line (NULL for imported rows)
    quote_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    line_item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Attached later by the remap collaborator
    product_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    vendor_name: Mapped[str] = mapped_column(String(300), nullable=False)
    category: Mapped[str | None] = mapped_column(String(200), nullable=True)
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    catalog_number: Mapped[str | None] = mapped_column(String(200), nullable=True)
    unit: Mapped[str] = mapped_column(String(50), nullable=False, default="ea")

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    purchased_at: Mapped[datetime] = mapped_column(nullable=False)

    provenance: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=Provenance.QUOTE.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    @property
    def provenance_enum(self) -> Provenance:
        return Provenance(self.provenance)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.id} quote={self.quote_id} "
            f"amount={self.amount} {self.currency}>"
        )
