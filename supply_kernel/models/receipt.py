"""
Module: supply_kernel.models.receipt
Responsibility: Goods receipt lines recorded by the receiving process.
    The pipeline reads them to derive purchase order completion.
Architecture position: Kernel > Models.  Imports from db/ only.  po_id is
    a plain reference (no FK) because purchase orders live in the modules
    layer.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base, UUIDString


class ReceiptFact(Base):
    """Quantity of one PO item received in one goods receipt."""

    __tablename__ = "goods_receipt_lines"

    __table_args__ = (
        Index("ix_receipt_po_item", "po_id", "item_id"),
    )

    receipt_number: Mapped[str] = mapped_column(String(32), nullable=False)
    po_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    received_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    # Set after inspection; NULL means not yet inspected
    accepted_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    received_at: Mapped[datetime] = mapped_column(nullable=False)

    @property
    def effective_qty(self) -> int:
        """Accepted quantity when inspected, otherwise the received quantity."""
        return self.accepted_qty if self.accepted_qty is not None else self.received_qty
