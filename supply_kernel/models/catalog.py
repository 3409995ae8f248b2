"""
Module: supply_kernel.models.catalog
Responsibility: Catalog items and warehouses.  Both are maintained by the
    catalog administration screens; the replenishment pipeline only reads
    them.
Architecture position: Kernel > Models.  Imports from db/ only.

Invariants enforced:
    - sku and warehouse code are unique.
    - Threshold columns are non-negative integers (ck_items_thresholds).
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase


class Item(TrackedBase):
    """
    A catalog SKU with its replenishment thresholds.

    Guarantees:
        - reorder_point and safety_stock default to 0 (never reorder).
        - unit_price is the catalog price used when a supplier has no
          negotiated price; it may be NULL.
    """

    __tablename__ = "items"

    __table_args__ = (
        CheckConstraint(
            "reorder_point >= 0 AND safety_stock >= 0 AND min_stock >= 0",
            name="ck_items_thresholds",
        ),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="EA")

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    safety_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Item {self.sku}: {self.item_name}>"


class Warehouse(TrackedBase):
    """A stock-holding site."""

    __tablename__ = "warehouses"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Warehouse {self.code}>"
