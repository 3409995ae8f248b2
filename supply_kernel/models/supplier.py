"""
Module: supply_kernel.models.supplier
Responsibility: Suppliers and their negotiated item prices.  Maintained by
    supplier administration; read-only to the pipeline.
Architecture position: Kernel > Models.  Imports from db/ only.

Invariants enforced:
    - supplier_code is unique.
    - At most one price row per (supplier, item, effective_from).

Failure modes:
    - Conversion refuses a supplier for which ``can_transact`` is False.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase, UUIDString


class SupplierStatus(str, Enum):
    """Supplier lifecycle status. Only ACTIVE suppliers receive purchase orders."""

    ACTIVE = "active"
    ON_HOLD = "on_hold"
    BLOCKED = "blocked"


class Supplier(TrackedBase):
    """
    A vendor that purchase orders are placed with.

    Guarantees:
        - ``can_transact`` is True iff is_active and status is ACTIVE.
    """

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_supplier_active", "is_active"),
    )

    supplier_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_terms_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[SupplierStatus] = mapped_column(
        String(20), nullable=False, default=SupplierStatus.ACTIVE,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def can_transact(self) -> bool:
        return self.is_active and SupplierStatus(self.status) == SupplierStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Supplier {self.supplier_code}: {self.name}>"


class SupplierPrice(TrackedBase):
    """Negotiated unit price of one item from one supplier."""

    __tablename__ = "supplier_prices"

    __table_args__ = (
        UniqueConstraint(
            "supplier_id", "item_id", "effective_from",
            name="uq_supplier_price_period",
        ),
        Index("idx_supplier_price_lookup", "supplier_id", "item_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False,
    )
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    min_order_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_preferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def is_effective_on(self, on: date) -> bool:
        if self.effective_from is not None and on < self.effective_from:
            return False
        if self.effective_to is not None and on > self.effective_to:
            return False
        return True
