"""
Procurement Domain Models.

The nouns of procurement: requisitions, purchase orders and their
fulfillment status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class RequisitionStatus(str, Enum):
    """Requisition lifecycle states. Approved and Rejected are terminal."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class RequisitionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class PurchaseOrderStatus(str, Enum):
    """Purchase order states, ordered by fulfillment progress."""

    ISSUED = "Issued"
    IN_TRANSIT = "In-Transit"
    COMPLETED = "Completed"

    @property
    def rank(self) -> int:
        return _PO_STATUS_RANK[self]


_PO_STATUS_RANK = {
    PurchaseOrderStatus.ISSUED: 0,
    PurchaseOrderStatus.IN_TRANSIT: 1,
    PurchaseOrderStatus.COMPLETED: 2,
}


@dataclass(frozen=True)
class RequisitionLineInput:
    """One requested line as supplied by the caller."""

    item_id: UUID
    requested_qty: int
    justification: str | None = None


@dataclass(frozen=True)
class RequisitionLine:
    line_id: UUID
    line_number: int
    item_id: UUID
    requested_qty: int
    justification: str
    recommended_qty: int | None = None
    sku: str | None = None
    item_name: str | None = None
    estimated_unit_price: Decimal | None = None
    estimated_amount: Decimal | None = None


@dataclass(frozen=True)
class Requisition:
    """A purchase requisition."""

    pr_id: UUID
    pr_number: str
    status: RequisitionStatus
    requested_by: UUID
    request_date: date
    created_at: datetime
    lines: tuple[RequisitionLine, ...] = ()
    remarks: str | None = None
    alert_id: UUID | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    estimated_total: Decimal | None = None
    days_pending: int | None = None


@dataclass(frozen=True)
class RequisitionPage:
    requisitions: tuple[Requisition, ...]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True)
class PurchaseOrderLine:
    line_id: UUID
    line_number: int
    item_id: UUID
    ordered_qty: int
    unit_price: Decimal
    total_price: Decimal
    price_source: str


@dataclass(frozen=True)
class PurchaseOrder:
    """A purchase order issued to a supplier."""

    po_id: UUID
    po_number: str
    pr_id: UUID | None
    supplier_id: UUID
    status: PurchaseOrderStatus
    order_date: date
    expected_delivery_date: date
    total_amount: Decimal
    created_by: UUID
    created_at: datetime
    lines: tuple[PurchaseOrderLine, ...] = ()


@dataclass(frozen=True)
class LineProgress:
    """Receipt progress of one purchase order line."""

    item_id: UUID
    ordered_qty: int
    received_qty: int

    @property
    def credited_qty(self) -> int:
        """Received quantity counted toward completion (never above ordered)."""
        return min(max(self.received_qty, 0), self.ordered_qty)

    @property
    def pending_qty(self) -> int:
        return self.ordered_qty - self.credited_qty


@dataclass(frozen=True)
class Completion:
    completion_pct: Decimal
    status: PurchaseOrderStatus
    ordered_total: int
    credited_total: int


@dataclass(frozen=True)
class PurchaseOrderLineStatus:
    item_id: UUID
    sku: str | None
    item_name: str | None
    ordered_qty: int
    received_qty: int
    pending_qty: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PurchaseOrderStatusReport:
    """
    Completion of one purchase order as of the latest receipts read.

    ``status`` is the stored high-water mark while ``completion_pct`` is
    recomputed from current receipts, so when receipts lag an In-Transit
    order can report less progress than it once had, down to 0.00.  Only
    Completed holds its percentage, at 100.
    """

    po_id: UUID
    po_number: str
    supplier_id: UUID
    status: PurchaseOrderStatus
    completion_pct: Decimal
    total_amount: Decimal
    expected_delivery_date: date
    days_since_created: int
    days_until_expected_delivery: int
    lines: tuple[PurchaseOrderLineStatus, ...] = ()
