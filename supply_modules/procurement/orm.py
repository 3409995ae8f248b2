"""
SQLAlchemy ORM persistence models for the Procurement module.

Responsibility
--------------
Persist purchase requisitions, purchase orders and their lines.

Architecture position
---------------------
**Modules layer** -- consumed by ``RequisitionWorkflow``,
``ProcurementConverter``, ``CompletionTracker`` and the requisition
queries.  Inherits from ``TrackedBase`` (kernel db layer).

Invariants enforced
-------------------
* ``pr_number`` and ``po_number`` are unique.
* ``purchase_orders.pr_id`` is unique: at most one PO per requisition.
* Monetary fields use ``Decimal`` (Numeric(38,9)), never float.
* Status enums are stored as strings.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase, UUIDString

# ---------------------------------------------------------------------------
# PurchaseRequisitionModel
# ---------------------------------------------------------------------------


class PurchaseRequisitionModel(TrackedBase):
    """
    A purchase requisition.

    Maps to the ``Requisition`` DTO in ``supply_modules.procurement.models``.

    Guarantees:
        - ``status`` is Pending, Approved or Rejected and leaves Pending once.
    """

    __tablename__ = "purchase_requisitions"

    __table_args__ = (
        Index("idx_pr_status", "status"),
        Index("idx_pr_requested_by", "requested_by"),
        Index("idx_pr_request_date", "request_date"),
    )

    pr_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    alert_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("alerts.id"), nullable=True,
    )

    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["RequisitionLineModel"]] = relationship(
        "RequisitionLineModel",
        back_populates="requisition",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RequisitionLineModel.line_number",
    )

    def to_dto(self, **extra):
        from supply_modules.procurement.models import Requisition, RequisitionStatus

        return Requisition(
            pr_id=self.id,
            pr_number=self.pr_number,
            status=RequisitionStatus(self.status),
            requested_by=self.requested_by,
            request_date=self.request_date,
            created_at=self.created_at,
            lines=extra.pop("lines", None) or tuple(line.to_dto() for line in self.lines),
            remarks=self.remarks,
            alert_id=self.alert_id,
            approved_by=self.approved_by,
            approved_at=self.approved_at,
            rejected_by=self.rejected_by,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
            **extra,
        )

    def __repr__(self) -> str:
        return f"<PurchaseRequisition {self.pr_number} [{self.status}]>"


class RequisitionLineModel(TrackedBase):
    """One requested item. Immutable once created."""

    __tablename__ = "purchase_requisition_lines"

    __table_args__ = (
        CheckConstraint("requested_qty > 0", name="ck_pr_line_qty_positive"),
        Index("idx_pr_line_requisition", "requisition_id"),
    )

    requisition_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_requisitions.id"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    requested_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    recommended_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    justification: Mapped[str] = mapped_column(Text, nullable=False)

    requisition: Mapped["PurchaseRequisitionModel"] = relationship(
        "PurchaseRequisitionModel", back_populates="lines",
    )

    def to_dto(self):
        from supply_modules.procurement.models import RequisitionLine

        return RequisitionLine(
            line_id=self.id,
            line_number=self.line_number,
            item_id=self.item_id,
            requested_qty=self.requested_qty,
            justification=self.justification,
            recommended_qty=self.recommended_qty,
        )


# ---------------------------------------------------------------------------
# PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order placed with a supplier.

    Guarantees:
        - One row per requisition (unique ``pr_id``).
        - ``status`` only moves forward: Issued -> In-Transit -> Completed.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        Index("idx_po_status", "status"),
        Index("idx_po_supplier", "supplier_id"),
    )

    po_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    pr_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("purchase_requisitions.id"), nullable=True, unique=True,
    )
    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Issued")
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PurchaseOrderLineModel.line_number",
    )

    def to_dto(self):
        from supply_modules.procurement.models import PurchaseOrder, PurchaseOrderStatus

        return PurchaseOrder(
            po_id=self.id,
            po_number=self.po_number,
            pr_id=self.pr_id,
            supplier_id=self.supplier_id,
            status=PurchaseOrderStatus(self.status),
            order_date=self.order_date,
            expected_delivery_date=self.expected_delivery_date,
            total_amount=self.total_amount,
            created_by=self.created_by_id,
            created_at=self.created_at,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} [{self.status}]>"


class PurchaseOrderLineModel(TrackedBase):
    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        CheckConstraint("ordered_qty > 0", name="ck_po_line_qty_positive"),
        Index("idx_po_line_order", "purchase_order_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )
    ordered_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total_price: Mapped[Decimal] = mapped_column(nullable=False)
    # negotiated, catalog
    price_source: Mapped[str] = mapped_column(String(20), nullable=False)

    purchase_order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel", back_populates="lines",
    )

    def to_dto(self):
        from supply_modules.procurement.models import PurchaseOrderLine

        return PurchaseOrderLine(
            line_id=self.id,
            line_number=self.line_number,
            item_id=self.item_id,
            ordered_qty=self.ordered_qty,
            unit_price=self.unit_price,
            total_price=self.total_price,
            price_source=self.price_source,
        )
