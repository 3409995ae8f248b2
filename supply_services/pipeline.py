"""
ReplenishmentPipeline -- the facade over the replenishment modules.

Contract:
    Wires the module services to one session, one clock, one notifier and
    one ``PipelineConfig``, and exposes the pipeline's public operations:

        evaluate_reorder_needs        ReorderService
        create/approve/reject         RequisitionWorkflow
        convert_to_purchase_order     ProcurementConverter
        get_purchase_order_status     CompletionTracker
        alerts / expiry / escalation  AlertService
        requisition lookups           RequisitionQueries
        dashboard                     ReorderDashboard

    Each write operation commits or rolls back inside the module service
    that owns it; the facade adds no transaction of its own.

Architecture: supply_services.  Imports from supply_config,
    supply_modules, supply_batch and the kernel.  Nothing below it may
    import from here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from supply_batch.domain.types import JobSchedule, ScheduleFrequency
from supply_batch.services.runner import JobRunner
from supply_batch.services.scheduler import ReplenishmentScheduler
from supply_batch.tasks.replenishment_tasks import (
    ALERTS_ESCALATE,
    ALERTS_EXPIRY_CHECK,
    REORDER_EVALUATE_ITEMS,
    replenishment_task_registry,
)
from supply_config.schema import NotificationSettings, PipelineConfig
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import ActorContext, SYSTEM_ACTOR_ID
from supply_kernel.logging_config import get_logger
from supply_kernel.services.notification import (
    LoggingNotificationSender,
    NotificationSender,
    SmtpNotificationSender,
)
from supply_modules.alerts.assignment import AssignmentStrategy
from supply_modules.alerts.models import (
    Alert,
    AlertListing,
    AlertSeverity,
    AlertType,
    EscalationResult,
    ExpiryCheckResult,
)
from supply_modules.alerts.service import AlertService
from supply_modules.procurement.converter import ProcurementConverter
from supply_modules.procurement.models import (
    PurchaseOrder,
    PurchaseOrderStatusReport,
    Requisition,
    RequisitionLineInput,
    RequisitionPage,
    RequisitionStatus,
)
from supply_modules.procurement.queries import RequisitionQueries
from supply_modules.procurement.requisition import RequisitionWorkflow
from supply_modules.procurement.tracker import CompletionTracker
from supply_modules.reorder.dashboard import DashboardSummary, ReorderDashboard
from supply_modules.reorder.models import ReorderEvaluationResult
from supply_modules.reorder.service import ReorderService

logger = get_logger("services.pipeline")

# Schedule names installed by ``install_schedules``
REORDER_CHECK_JOB = "reorder-check"
EXPIRY_CHECK_JOB = "expiry-check"
ALERT_ESCALATION_JOB = "alert-escalation"


def notifier_from_settings(settings: NotificationSettings) -> NotificationSender:
    """Build the sender named by ``settings.backend``."""
    if settings.backend == "smtp":
        return SmtpNotificationSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.sender,
        )
    return LoggingNotificationSender()


class ReplenishmentPipeline:
    """
    One entry point for callers that do not want to wire services.

    Module services are built per call; they hold no state beyond the
    session, so this costs nothing and keeps each call independent.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: PipelineConfig | None = None,
        notifier: NotificationSender | None = None,
        assignment: AssignmentStrategy | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or PipelineConfig()
        self._notifier = (
            notifier if notifier is not None
            else notifier_from_settings(self._config.notifications)
        )
        self._assignment = assignment

    @property
    def config(self) -> PipelineConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Service wiring
    # -------------------------------------------------------------------------

    def _reorder(self) -> ReorderService:
        return ReorderService(
            self._session,
            clock=self._clock,
            config=self._config.to_reorder_config(),
            alert_config=self._config.to_alert_config(),
            assignment=self._assignment,
            notifier=self._notifier,
        )

    def _alerts(self) -> AlertService:
        return AlertService(
            self._session,
            clock=self._clock,
            config=self._config.to_alert_config(),
            assignment=self._assignment,
            notifier=self._notifier,
        )

    def _requisitions(self) -> RequisitionWorkflow:
        return RequisitionWorkflow(
            self._session,
            clock=self._clock,
            config=self._config.to_procurement_config(),
            notifier=self._notifier,
        )

    # -------------------------------------------------------------------------
    # Reorder
    # -------------------------------------------------------------------------

    def evaluate_reorder_needs(
        self, actor_id: UUID = SYSTEM_ACTOR_ID
    ) -> ReorderEvaluationResult:
        return self._reorder().evaluate_reorder_needs(actor_id)

    def dashboard(self) -> DashboardSummary:
        return ReorderDashboard(self._session, self._clock).summary()

    # -------------------------------------------------------------------------
    # Requisitions
    # -------------------------------------------------------------------------

    def create_requisition(
        self,
        actor: ActorContext,
        lines: Iterable[RequisitionLineInput | Mapping[str, Any]],
        remarks: str | None = None,
        alert_id: UUID | None = None,
    ) -> Requisition:
        return self._requisitions().create_requisition(
            actor, lines, remarks=remarks, alert_id=alert_id,
        )

    def approve_requisition(
        self, actor: ActorContext, pr_id: UUID, remarks: str | None = None
    ) -> Requisition:
        return self._requisitions().approve_requisition(actor, pr_id, remarks=remarks)

    def reject_requisition(
        self, actor: ActorContext, pr_id: UUID, reason: str
    ) -> Requisition:
        return self._requisitions().reject_requisition(actor, pr_id, reason)

    def get_requisition(self, pr_id: UUID) -> Requisition:
        return RequisitionQueries(self._session, self._clock).get_requisition(pr_id)

    def list_requisitions(
        self,
        status: RequisitionStatus | None = None,
        requested_by: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> RequisitionPage:
        return RequisitionQueries(self._session, self._clock).list_requisitions(
            status=status,
            requested_by=requested_by,
            date_from=date_from,
            date_to=date_to,
            page=page,
            limit=limit,
        )

    # -------------------------------------------------------------------------
    # Purchase orders
    # -------------------------------------------------------------------------

    def convert_to_purchase_order(
        self,
        actor: ActorContext,
        pr_id: UUID,
        supplier_id: UUID,
        expected_delivery_date: date | datetime | str,
    ) -> PurchaseOrder:
        converter = ProcurementConverter(
            self._session,
            clock=self._clock,
            config=self._config.to_procurement_config(),
            notifier=self._notifier,
        )
        return converter.convert_to_purchase_order(
            actor, pr_id, supplier_id, expected_delivery_date,
        )

    def get_purchase_order_status(self, po_id: UUID) -> PurchaseOrderStatusReport:
        return CompletionTracker(self._session, self._clock).get_purchase_order_status(po_id)

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    def list_alerts(
        self,
        *,
        alert_type: AlertType | None = None,
        severity: AlertSeverity | None = None,
        is_read: bool | None = None,
        item_id: UUID | None = None,
        limit: int | None = None,
    ) -> AlertListing:
        return self._alerts().list_alerts(
            alert_type=alert_type,
            severity=severity,
            is_read=is_read,
            item_id=item_id,
            limit=limit,
        )

    def mark_alert_read(self, actor: ActorContext, alert_id: UUID) -> Alert:
        return self._alerts().mark_read(actor, alert_id)

    def run_expiry_check(self, actor_id: UUID = SYSTEM_ACTOR_ID) -> ExpiryCheckResult:
        return self._alerts().run_expiry_check(actor_id)

    def escalate_stale_alerts(self) -> EscalationResult:
        return self._alerts().escalate_stale_alerts()


# =============================================================================
# Scheduling
# =============================================================================


def build_scheduler(
    session_factory: Callable[[], Session],
    config: PipelineConfig | None = None,
    clock: Clock | None = None,
    notifier: NotificationSender | None = None,
) -> ReplenishmentScheduler:
    """Scheduler whose runners carry the three replenishment tasks."""
    config = config or PipelineConfig()
    clock = clock or SystemClock()
    if notifier is None:
        notifier = notifier_from_settings(config.notifications)
    registry = replenishment_task_registry(
        clock=clock,
        reorder_config=config.to_reorder_config(),
        alert_config=config.to_alert_config(),
        notifier=notifier,
    )
    return ReplenishmentScheduler(
        session_factory=session_factory,
        runner_factory=lambda session: JobRunner(session, registry, clock),
        clock=clock,
        tick_interval_seconds=config.scheduler.tick_interval_seconds,
    )


def install_schedules(
    scheduler: ReplenishmentScheduler,
    session: Session,
    config: PipelineConfig | None = None,
) -> tuple[JobSchedule, ...]:
    """
    Register the reorder, expiry and escalation schedules from
    ``config.scheduler`` and commit.  Re-running updates them in place.
    """
    settings = (config or PipelineConfig()).scheduler
    plan = (
        (REORDER_CHECK_JOB, REORDER_EVALUATE_ITEMS, settings.reorder_check_cron),
        (EXPIRY_CHECK_JOB, ALERTS_EXPIRY_CHECK, settings.expiry_check_cron),
        (ALERT_ESCALATION_JOB, ALERTS_ESCALATE, settings.escalation_cron),
    )
    schedules = tuple(
        scheduler.register_schedule(
            session,
            job_name=job_name,
            task_type=task_type,
            frequency=ScheduleFrequency.HOURLY,
            cron_expression=cron,
            is_active=settings.enabled,
        )
        for job_name, task_type, cron in plan
    )
    session.commit()
    logger.info(
        "schedules_installed",
        extra={"count": len(schedules), "enabled": settings.enabled},
    )
    return schedules
