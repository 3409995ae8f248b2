"""
Replenishment dashboard counts.

One read-only pass over stock, alerts, requisitions and purchase orders:

    stock health:  out of stock (<= 0), critical (< safety stock),
                   low (<= reorder point), healthy
    alerts:        unread, unread Critical
    requisitions:  pending, approved without a PO, rejected
    orders:        active (Issued, In-Transit), overdue (expected date
                   passed and not Completed)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector
from supply_kernel.selectors.stock_selector import StockAggregator
from supply_modules.alerts.models import AlertSeverity
from supply_modules.alerts.orm import AlertModel
from supply_modules.procurement.models import PurchaseOrderStatus, RequisitionStatus
from supply_modules.procurement.orm import PurchaseOrderModel, PurchaseRequisitionModel

logger = get_logger("modules.reorder.dashboard")


@dataclass(frozen=True)
class StockHealth:
    total_items: int
    out_of_stock: int
    critical: int
    low: int
    healthy: int


@dataclass(frozen=True)
class DashboardSummary:
    stock_health: StockHealth
    unread_alerts: int
    critical_alerts: int
    pending_requisitions: int
    approved_awaiting_po: int
    rejected_requisitions: int
    active_purchase_orders: int
    overdue_purchase_orders: int


class ReorderDashboard:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._aggregator = StockAggregator(session)
        self._catalog = CatalogSelector(session)

    def stock_health(self) -> StockHealth:
        items = self._catalog.active_items()
        snapshot = self._aggregator.snapshot(item_ids=[i.item_id for i in items])
        out = critical = low = healthy = 0
        for item in items:
            current = snapshot.total_for(item.item_id)
            if current <= 0:
                out += 1
            elif current < item.safety_stock:
                critical += 1
            elif current <= item.reorder_point:
                low += 1
            else:
                healthy += 1
        return StockHealth(
            total_items=len(items),
            out_of_stock=out,
            critical=critical,
            low=low,
            healthy=healthy,
        )

    def _count(self, stmt) -> int:
        return int(self._session.execute(stmt).scalar_one() or 0)

    def summary(self) -> DashboardSummary:
        today = self._clock.today()
        unread = AlertModel.is_read == False  # noqa: E712

        has_po = (
            select(PurchaseOrderModel.id)
            .where(PurchaseOrderModel.pr_id == PurchaseRequisitionModel.id)
            .exists()
        )
        open_statuses = (
            PurchaseOrderStatus.ISSUED.value,
            PurchaseOrderStatus.IN_TRANSIT.value,
        )

        summary = DashboardSummary(
            stock_health=self.stock_health(),
            unread_alerts=self._count(
                select(func.count(AlertModel.id)).where(unread)
            ),
            critical_alerts=self._count(
                select(func.count(AlertModel.id)).where(
                    unread, AlertModel.severity == AlertSeverity.CRITICAL.value,
                )
            ),
            pending_requisitions=self._count(
                select(func.count(PurchaseRequisitionModel.id)).where(
                    PurchaseRequisitionModel.status == RequisitionStatus.PENDING.value
                )
            ),
            approved_awaiting_po=self._count(
                select(func.count(PurchaseRequisitionModel.id)).where(
                    PurchaseRequisitionModel.status == RequisitionStatus.APPROVED.value,
                    ~has_po,
                )
            ),
            rejected_requisitions=self._count(
                select(func.count(PurchaseRequisitionModel.id)).where(
                    PurchaseRequisitionModel.status == RequisitionStatus.REJECTED.value
                )
            ),
            active_purchase_orders=self._count(
                select(func.count(PurchaseOrderModel.id)).where(
                    PurchaseOrderModel.status.in_(open_statuses)
                )
            ),
            overdue_purchase_orders=self._count(
                select(func.count(PurchaseOrderModel.id)).where(
                    PurchaseOrderModel.status.in_(open_statuses),
                    PurchaseOrderModel.expected_delivery_date < today,
                )
            ),
        )
        logger.debug(
            "dashboard_summary_computed",
            extra={
                "unread_alerts": summary.unread_alerts,
                "pending_requisitions": summary.pending_requisitions,
                "overdue_purchase_orders": summary.overdue_purchase_orders,
            },
        )
        return summary
