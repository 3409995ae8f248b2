"""
Module: supply_kernel.models.stock_ledger
Responsibility: The append-only stock movement ledger.  Receiving, issuing,
    adjustment and disposal processes write it; the pipeline aggregates it.
Architecture position: Kernel > Models.  Imports from db/ only.

Invariants enforced:
    - seq is unique and monotonic across the whole ledger.  "Latest entry"
      for an (item, warehouse) pair always means highest seq.
    - balance_qty is the running balance of the pair after this movement,
      computed by the writer and trusted as-is by readers.
    - Rows are never updated or deleted.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base, UUIDString


class StockLedgerEntry(Base):
    """One stock movement with the running balance it produced."""

    __tablename__ = "stock_ledger"

    __table_args__ = (
        Index("ix_stock_ledger_item_wh_seq", "item_id", "warehouse_id", "seq"),
        Index("ix_stock_ledger_txn_date", "transaction_date"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=False,
    )
    location_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    lot_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # IN, OUT, ADJUSTMENT, TRANSFER, DISPOSAL
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_qty: Mapped[int] = mapped_column(Integer, nullable=False)

    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<StockLedgerEntry seq={self.seq} item={self.item_id} "
            f"wh={self.warehouse_id} bal={self.balance_qty}>"
        )
