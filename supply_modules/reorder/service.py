"""
Reorder Module Service (``supply_modules.reorder.service``).

Responsibility
--------------
Runs the reorder evaluation: aggregate stock, classify every active item,
raise or supersede alerts, and report which items need replenishment.

Architecture position
---------------------
**Modules layer**.  ``evaluate_reorder_needs`` owns its transaction;
``evaluate_item`` is flush-only so that the batch runner can call it
inside a per-item SAVEPOINT.

Invariants enforced
-------------------
* Items above their reorder point are excluded from the result.
* An item has at most one unread reorder-family alert: raising Critical
  Stock supersedes an unread Reorder alert and vice versa.
* The reorder notification is sent after commit, best effort.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import SYSTEM_ACTOR_ID
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector, ItemInfo
from supply_kernel.selectors.stock_selector import StockAggregator, StockSnapshot
from supply_kernel.selectors.user_selector import UserSelector
from supply_kernel.services.notification import (
    Notification,
    NotificationSender,
    send_best_effort,
)
from supply_modules._transaction import owned_transaction
from supply_modules.alerts.assignment import AssignmentStrategy, FirstActiveUserAssignment
from supply_modules.alerts.config import AlertConfig
from supply_modules.alerts.models import REORDER_ALERT_TYPES, AlertSeverity, AlertSubject
from supply_modules.alerts.registry import AlertRegistry
from supply_modules.reorder.config import ReorderConfig
from supply_modules.reorder.evaluator import ReorderEvaluator
from supply_modules.reorder.models import (
    ReorderClassification,
    ReorderEvaluationResult,
    ReorderLine,
)

logger = get_logger("modules.reorder.service")


def reorder_message(item_name: str, current_stock: int, reorder_point: int) -> str:
    return (
        f"Item {item_name} stock is {current_stock}, "
        f"below reorder point of {reorder_point}"
    )


class ReorderService:
    """
    Reorder evaluation over the live ledger.

    Guarantees
    ----------
    * ``evaluate_reorder_needs`` commits once for the whole run.
    * Lines are ordered Critical Stock first, then by SKU.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReorderConfig | None = None,
        alert_config: AlertConfig | None = None,
        assignment: AssignmentStrategy | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReorderConfig()
        alert_config = alert_config or AlertConfig()
        self._notifier = notifier
        self._aggregator = StockAggregator(session)
        self._catalog = CatalogSelector(session)
        self._users = UserSelector(session)
        self._evaluator = ReorderEvaluator()
        self._registry = AlertRegistry(
            session,
            clock=self._clock,
            assignment=assignment or FirstActiveUserAssignment(session),
            assignee_roles=alert_config.assignee_roles,
        )

    @property
    def registry(self) -> AlertRegistry:
        return self._registry

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_item(
        self,
        item: ItemInfo,
        snapshot: StockSnapshot,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> tuple[ReorderLine | None, int]:
        """
        Classify one item and update its alerts (flush-only).

        Returns the reorder line (None when no action is needed) and the
        number of alerts resolved or superseded.
        """
        current = snapshot.total_for(item.item_id)
        assessment = self._evaluator.assess(item, current)
        subject = AlertSubject.item(item.item_id)

        if assessment is None:
            resolved = 0
            if self._config.auto_resolve_recovered:
                resolved = self._registry.resolve(
                    subject, REORDER_ALERT_TYPES, actor_id=actor_id, resolution="resolved",
                )
            return None, resolved

        alert_type = assessment.classification.alert_type
        resolved = self._registry.resolve(
            subject,
            REORDER_ALERT_TYPES - {alert_type},
            actor_id=actor_id,
            resolution="superseded",
        )
        warehouse_id = snapshot.lowest_warehouse(item.item_id)
        outcome = self._registry.raise_alert(
            subject,
            alert_type,
            assessment.severity,
            reorder_message(item.item_name, current, item.reorder_point),
            item_id=item.item_id,
            warehouse_id=warehouse_id,
            actor_id=actor_id,
        )

        line = ReorderLine(
            item_id=item.item_id,
            sku=item.sku,
            item_name=item.item_name,
            current_stock=current,
            reorder_point=item.reorder_point,
            safety_stock=item.safety_stock,
            recommended_order_qty=assessment.recommended_qty,
            status=assessment.classification,
            urgency=assessment.severity,
            warehouse_id=warehouse_id,
            alert_id=outcome.alert.alert_id,
            alert_created=outcome.created,
        )
        return line, resolved

    def evaluate_reorder_needs(self, actor_id: UUID = SYSTEM_ACTOR_ID) -> ReorderEvaluationResult:
        logger.info("reorder_evaluation_started", extra={"actor_id": str(actor_id)})

        with owned_transaction(self._session, "evaluate_reorder_needs"):
            snapshot = self._aggregator.snapshot()
            lines: list[ReorderLine] = []
            resolved = 0
            for item in self._catalog.active_items():
                line, item_resolved = self.evaluate_item(item, snapshot, actor_id)
                resolved += item_resolved
                if line is not None:
                    lines.append(line)

        lines.sort(
            key=lambda ln: (ln.status != ReorderClassification.CRITICAL_STOCK, ln.sku)
        )
        created = [ln for ln in lines if ln.alert_created]
        result = ReorderEvaluationResult(
            items_needing_reorder=len(lines),
            critical_count=sum(1 for ln in lines if ln.urgency == AlertSeverity.CRITICAL),
            alerts_created=len(created),
            items=tuple(lines),
            alerts_resolved=resolved,
        )
        logger.info(
            "reorder_evaluation_completed",
            extra={
                "items_needing_reorder": result.items_needing_reorder,
                "critical_count": result.critical_count,
                "alerts_created": result.alerts_created,
                "alerts_resolved": resolved,
            },
        )

        if created and self._config.notify_assignee:
            self._notify_assignee(created)
        return result

    def _notify_assignee(self, created: list[ReorderLine]) -> None:
        alert = self._registry.find_open(
            AlertSubject.item(created[0].item_id), created[0].status.alert_type,
        )
        recipient = self._users.email_for(alert.assigned_to if alert else None)
        body = "\n".join(
            f"{ln.sku} {ln.item_name}: stock {ln.current_stock}, "
            f"recommended order {ln.recommended_order_qty} ({ln.status.value})"
            for ln in created
        )
        send_best_effort(
            self._notifier,
            Notification(
                kind="reorder_alert",
                recipient=recipient or "",
                subject=f"{len(created)} item(s) need reordering",
                body=body,
                data={"item_ids": [str(ln.item_id) for ln in created]},
            ),
        )
