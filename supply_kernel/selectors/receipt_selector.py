"""
Module: supply_kernel.selectors.receipt_selector
Responsibility: Received quantities per purchase order and item, summed
    from goods receipt lines written by the receiving process.
Architecture position: Kernel > Selectors.  Read-only.
"""

from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.models.receipt import ReceiptFact
from supply_kernel.selectors.base import BaseSelector


class ReceiptSelector(BaseSelector):
    def received_by_item(self, po_id: UUID) -> dict[UUID, int]:
        """Sum of accepted (or, before inspection, received) quantity per item."""
        qty = func.coalesce(ReceiptFact.accepted_qty, ReceiptFact.received_qty)
        rows = self.session.execute(
            select(ReceiptFact.item_id, func.sum(qty).label("qty"))
            .where(ReceiptFact.po_id == po_id)
            .group_by(ReceiptFact.item_id)
        ).all()
        return {row.item_id: int(row.qty or 0) for row in rows}
