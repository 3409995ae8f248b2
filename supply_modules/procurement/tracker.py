"""
CompletionTracker -- purchase order fulfillment status from goods receipts.

Responsibility
--------------
Recomputes a PO's completion percentage and status from the receipts
recorded by the receiving process, and persists the status when it moves
forward.

Invariants enforced
-------------------
* Status never goes back: the highest status ever derived is stored.
* A stored Completed is terminal and reported as 100% even if a later
  receipt read disagrees.
* Below Completed the percentage is always the live one; it is not held
  with the status.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import PurchaseOrderNotFoundError
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector
from supply_kernel.selectors.receipt_selector import ReceiptSelector
from supply_modules._transaction import owned_transaction
from supply_modules.procurement.completion import (
    FULL_PERCENT,
    advance_status,
    compute_completion,
)
from supply_modules.procurement.models import (
    LineProgress,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    PurchaseOrderStatusReport,
)
from supply_modules.procurement.orm import PurchaseOrderModel

logger = get_logger("modules.procurement.tracker")


class CompletionTracker:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._receipts = ReceiptSelector(session)
        self._catalog = CatalogSelector(session)

    def get_purchase_order_status(self, po_id: UUID) -> PurchaseOrderStatusReport:
        """
        Current completion of one purchase order.

        Raises:
            PurchaseOrderNotFoundError: If ``po_id`` is unknown.
        """
        with owned_transaction(self._session, "purchase_order_status"):
            order = self._session.get(PurchaseOrderModel, po_id)
            if order is None:
                raise PurchaseOrderNotFoundError(str(po_id))

            received = self._receipts.received_by_item(po_id)
            progress = [
                LineProgress(
                    item_id=line.item_id,
                    ordered_qty=line.ordered_qty,
                    received_qty=received.get(line.item_id, 0),
                )
                for line in order.lines
            ]
            completion = compute_completion(progress)

            stored = PurchaseOrderStatus(order.status)
            status = advance_status(stored, completion.status)
            if status != stored:
                now = self._clock.now()
                order.status = status.value
                order.updated_at = now
                if status == PurchaseOrderStatus.COMPLETED:
                    order.completed_at = now
                self._session.flush()
                logger.info(
                    "purchase_order_status_advanced",
                    extra={
                        "po_id": str(po_id),
                        "document_number": order.po_number,
                        "from_status": stored.value,
                        "to_status": status.value,
                    },
                )
            elif completion.status.rank < stored.rank:
                logger.debug(
                    "purchase_order_status_held",
                    extra={
                        "po_id": str(po_id),
                        "stored_status": stored.value,
                        "derived_status": completion.status.value,
                    },
                )

            pct = (
                FULL_PERCENT if status == PurchaseOrderStatus.COMPLETED
                else completion.completion_pct
            )

            items = self._catalog.get_items(line.item_id for line in order.lines)
            line_status = []
            for line, lp in zip(order.lines, progress):
                item = items.get(line.item_id)
                line_status.append(
                    PurchaseOrderLineStatus(
                        item_id=line.item_id,
                        sku=item.sku if item else None,
                        item_name=item.item_name if item else None,
                        ordered_qty=line.ordered_qty,
                        received_qty=lp.received_qty,
                        pending_qty=lp.pending_qty,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                    )
                )

            today = self._clock.today()
            report = PurchaseOrderStatusReport(
                po_id=order.id,
                po_number=order.po_number,
                supplier_id=order.supplier_id,
                status=status,
                completion_pct=pct,
                total_amount=order.total_amount,
                expected_delivery_date=order.expected_delivery_date,
                days_since_created=(today - order.created_at.date()).days,
                days_until_expected_delivery=(order.expected_delivery_date - today).days,
                lines=tuple(line_status),
            )
        return report
