"""
Module: supply_kernel.models.lot
Responsibility: Stock lots with expiry dates, maintained by the batch
    tracking process.  Read-only input to expiry alerting.
Architecture position: Kernel > Models.  Imports from db/ only.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase, UUIDString


class LotStatus(str, Enum):
    ACTIVE = "active"
    QUARANTINED = "quarantined"
    DISPOSED = "disposed"


class InventoryLot(TrackedBase):
    __tablename__ = "inventory_lots"

    __table_args__ = (
        Index("ix_lot_expiry", "expiry_date"),
    )

    lot_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=False,
    )
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    available_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[LotStatus] = mapped_column(
        String(20), nullable=False, default=LotStatus.ACTIVE,
    )
