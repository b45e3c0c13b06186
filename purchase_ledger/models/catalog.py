"""
Module: purchase_ledger.models.catalog
Responsibility: ORM persistence for catalog-side facts the ledger reads:
    products, vendors and vendor reference offers.
Architecture position: Models.  May import from db/ only.

VendorOffer is only a fallback price source for line items without an
explicit unit price.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchase_ledger.db.base import Base, UUIDString


class Product(Base):
    """Catalog product."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str | None] = mapped_column(String(200), nullable=True)
    catalog_number: Mapped[str | None] = mapped_column(String(200), nullable=True)

    offers: Mapped[list["VendorOffer"]] = relationship(back_populates="product")

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name!r}>"


class Vendor(Base):
    """A supplier."""

    __tablename__ = "vendors"

    name: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Vendor {self.id} {self.name!r}>"


class VendorOffer(Base):
    """Reference pricing for a (product, vendor) pair."""

    __tablename__ = "vendor_offers"

    __table_args__ = (
        UniqueConstraint("product_id", "vendor_id", name="uq_vendor_offer_product_vendor"),
        Index("idx_vendor_offer_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    vendor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vendors.id"),
        nullable=False,
    )

    # Reference price in the ledger currency
    reference_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KRW")

    product: Mapped[Product] = relationship(back_populates="offers")
    vendor: Mapped[Vendor] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<VendorOffer product={self.product_id} vendor={self.vendor_id} "
            f"price={self.reference_price}>"
        )
