"""
Replenishment job tasks.

    reorder.evaluate_items   one item per active catalog item
    alerts.expiry_check      one item per active lot with stock and an expiry date
    alerts.escalate          a single item: one escalation pass

Each ``execute_item`` runs inside the runner's SAVEPOINT and uses only
flush-only services, so one failing item leaves the rest of the run intact.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from supply_batch.domain.types import JobItemStatus
from supply_batch.tasks.base import JobItemInput, JobTaskResult, TaskRegistry
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import SYSTEM_ACTOR_ID
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector
from supply_kernel.selectors.stock_selector import StockAggregator
from supply_kernel.selectors.user_selector import UserSelector
from supply_kernel.services.notification import (
    Notification,
    NotificationSender,
    send_best_effort,
)
from supply_modules.alerts.assignment import FirstActiveUserAssignment
from supply_modules.alerts.config import AlertConfig
from supply_modules.alerts.expiry import ExpiryAlertScanner
from supply_modules.alerts.registry import AlertRegistry
from supply_modules.reorder.config import ReorderConfig
from supply_modules.reorder.service import ReorderService

logger = get_logger("batch.tasks.replenishment")

REORDER_EVALUATE_ITEMS = "reorder.evaluate_items"
ALERTS_EXPIRY_CHECK = "alerts.expiry_check"
ALERTS_ESCALATE = "alerts.escalate"


def _registry(session: Session, clock: Clock, alert_config: AlertConfig) -> AlertRegistry:
    return AlertRegistry(
        session,
        clock=clock,
        assignment=FirstActiveUserAssignment(session),
        assignee_roles=alert_config.assignee_roles,
    )


class ReorderEvaluationTask:
    """Classify each active item and raise, supersede or resolve its alerts."""

    def __init__(
        self,
        clock: Clock | None = None,
        config: ReorderConfig | None = None,
        alert_config: AlertConfig | None = None,
    ):
        self._clock = clock or SystemClock()
        self._config = config or ReorderConfig()
        self._alert_config = alert_config or AlertConfig()

    @property
    def task_type(self) -> str:
        return REORDER_EVALUATE_ITEMS

    @property
    def description(self) -> str:
        return "Evaluate reorder thresholds for every active item"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[JobItemInput, ...]:
        items = CatalogSelector(session).active_items()
        return tuple(
            JobItemInput(
                item_index=i,
                item_key=item.sku,
                payload={"item_id": str(item.item_id)},
            )
            for i, item in enumerate(items)
        )

    def execute_item(
        self,
        item: JobItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> JobTaskResult:
        item_id = UUID(item.payload["item_id"])
        info = CatalogSelector(session).get_item(item_id)
        if info is None or not info.is_active:
            return JobTaskResult(status=JobItemStatus.SKIPPED)

        snapshot = StockAggregator(session).snapshot(item_ids=[item_id])
        service = ReorderService(
            session,
            clock=self._clock,
            config=self._config,
            alert_config=self._alert_config,
        )
        line, resolved = service.evaluate_item(info, snapshot, SYSTEM_ACTOR_ID)

        if line is None and resolved == 0:
            return JobTaskResult(
                status=JobItemStatus.SKIPPED,
                result_data={"current_stock": snapshot.total_for(item_id)},
            )
        data: dict[str, Any] = {
            "current_stock": snapshot.total_for(item_id),
            "alerts_resolved": resolved,
        }
        if line is not None:
            data.update(
                status=line.status.value,
                recommended_order_qty=line.recommended_order_qty,
                alert_id=str(line.alert_id) if line.alert_id else None,
                alert_created=line.alert_created,
            )
        return JobTaskResult(status=JobItemStatus.SUCCEEDED, result_data=data)


class ExpiryCheckTask:
    """Raise expiry alerts for lots that are expired or close to expiry."""

    def __init__(self, clock: Clock | None = None, alert_config: AlertConfig | None = None):
        self._clock = clock or SystemClock()
        self._alert_config = alert_config or AlertConfig()

    @property
    def task_type(self) -> str:
        return ALERTS_EXPIRY_CHECK

    @property
    def description(self) -> str:
        return "Raise expiry alerts for active lots"

    def _scanner(self, session: Session) -> ExpiryAlertScanner:
        return ExpiryAlertScanner(
            session,
            _registry(session, self._clock, self._alert_config),
            warning_days=self._alert_config.expiry_warning_days,
            urgent_days=self._alert_config.expiry_urgent_days,
        )

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[JobItemInput, ...]:
        lot_ids = self._scanner(session).candidate_lot_ids()
        return tuple(
            JobItemInput(item_index=i, item_key=str(lot_id), payload={"lot_id": str(lot_id)})
            for i, lot_id in enumerate(lot_ids)
        )

    def execute_item(
        self,
        item: JobItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> JobTaskResult:
        assessment, created = self._scanner(session).check_lot(
            UUID(item.payload["lot_id"]), as_of.date(), SYSTEM_ACTOR_ID,
        )
        if assessment is None:
            return JobTaskResult(status=JobItemStatus.SKIPPED)
        return JobTaskResult(
            status=JobItemStatus.SUCCEEDED,
            result_data={
                "alert_type": assessment.alert_type.value,
                "days_to_expiry": assessment.days_to_expiry,
                "alert_created": created,
            },
        )


class AlertEscalationTask:
    """
    One escalation pass over unread alerts.

    Notifications are sent inside the run, before the scheduler commits;
    if the run rolls back the next pass escalates and notifies again.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        alert_config: AlertConfig | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._clock = clock or SystemClock()
        self._alert_config = alert_config or AlertConfig()
        self._notifier = notifier

    @property
    def task_type(self) -> str:
        return ALERTS_ESCALATE

    @property
    def description(self) -> str:
        return "Escalate unread alerts past their escalation window"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[JobItemInput, ...]:
        return (JobItemInput(item_index=0, item_key="escalation-pass"),)

    def execute_item(
        self,
        item: JobItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> JobTaskResult:
        result = _registry(session, self._clock, self._alert_config).escalate_stale(
            escalation_after=timedelta(hours=self._alert_config.escalation_after_hours),
            renotify_after=timedelta(hours=self._alert_config.critical_renotify_after_hours),
            now=as_of,
        )
        users = UserSelector(session)
        for escalated in result.alerts:
            alert = escalated.alert
            send_best_effort(
                self._notifier,
                Notification(
                    kind="alert_escalated",
                    recipient=users.email_for(alert.assigned_to) or "",
                    subject=f"[{alert.severity.value}] {alert.alert_type.value} alert still open",
                    body=alert.message,
                    data={"alert_id": str(alert.alert_id), "severity": alert.severity.value},
                ),
            )
        return JobTaskResult(
            status=JobItemStatus.SUCCEEDED,
            result_data={
                "examined": result.examined,
                "escalated": result.escalated,
                "renotified": result.renotified,
            },
        )


def replenishment_task_registry(
    clock: Clock | None = None,
    reorder_config: ReorderConfig | None = None,
    alert_config: AlertConfig | None = None,
    notifier: NotificationSender | None = None,
) -> TaskRegistry:
    """Registry with the three replenishment tasks."""
    registry = TaskRegistry()
    registry.register(ReorderEvaluationTask(clock, reorder_config, alert_config))
    registry.register(ExpiryCheckTask(clock, alert_config))
    registry.register(AlertEscalationTask(clock, alert_config, notifier))
    return registry
