"""
Alerts Module Service (``supply_modules.alerts.service``).

Responsibility
--------------
Public entry point for alert operations that are not part of a reorder
evaluation: listing, marking read, the lot expiry check and escalation of
stale alerts.

Architecture position
---------------------
**Modules layer**.  Owns the transaction boundary of each public method
and delegates row handling to ``AlertRegistry``.

Invariants enforced
-------------------
* Marking an alert read requires an elevated role (Manager, Admin).
* Notifications go out only after commit and never fail the operation.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import ActorContext, SYSTEM_ACTOR_ID, require_role
from supply_kernel.logging_config import get_logger
from supply_kernel.selectors.user_selector import UserSelector
from supply_kernel.services.notification import (
    Notification,
    NotificationSender,
    send_best_effort,
)
from supply_modules._transaction import owned_transaction
from supply_modules.alerts.assignment import AssignmentStrategy, FirstActiveUserAssignment
from supply_modules.alerts.config import AlertConfig
from supply_modules.alerts.expiry import ExpiryAlertScanner
from supply_modules.alerts.models import (
    Alert,
    AlertListing,
    AlertSeverity,
    AlertType,
    EscalationResult,
    ExpiryCheckResult,
)
from supply_modules.alerts.registry import AlertRegistry

logger = get_logger("modules.alerts.service")


class AlertService:
    """
    Alert listing, read-marking, expiry checks and escalation.

    Guarantees
    ----------
    * Session committed on success, rolled back on any exception.
    * Clock and assignment strategy are injectable.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: AlertConfig | None = None,
        assignment: AssignmentStrategy | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or AlertConfig()
        self._notifier = notifier
        self._users = UserSelector(session)
        self._registry = AlertRegistry(
            session,
            clock=self._clock,
            assignment=assignment or FirstActiveUserAssignment(session),
            assignee_roles=self._config.assignee_roles,
        )

    @property
    def registry(self) -> AlertRegistry:
        return self._registry

    def list_alerts(
        self,
        *,
        alert_type: AlertType | None = None,
        severity: AlertSeverity | None = None,
        is_read: bool | None = None,
        item_id: UUID | None = None,
        limit: int | None = None,
    ) -> AlertListing:
        return self._registry.list_alerts(
            alert_type=alert_type,
            severity=severity,
            is_read=is_read,
            item_id=item_id,
            limit=limit,
        )

    def mark_read(self, actor: ActorContext, alert_id: UUID) -> Alert:
        require_role(actor, "mark_alert_read")
        with owned_transaction(self._session, "mark_alert_read"):
            return self._registry.mark_read(alert_id, actor.actor_id)

    def run_expiry_check(self, actor_id: UUID = SYSTEM_ACTOR_ID) -> ExpiryCheckResult:
        scanner = ExpiryAlertScanner(
            self._session,
            self._registry,
            warning_days=self._config.expiry_warning_days,
            urgent_days=self._config.expiry_urgent_days,
        )
        with owned_transaction(self._session, "expiry_check"):
            return scanner.run(self._clock.today(), actor_id)

    def escalate_stale_alerts(self) -> EscalationResult:
        with owned_transaction(self._session, "escalate_alerts"):
            result = self._registry.escalate_stale(
                escalation_after=timedelta(hours=self._config.escalation_after_hours),
                renotify_after=timedelta(hours=self._config.critical_renotify_after_hours),
                now=self._clock.now(),
            )

        for escalated in result.alerts:
            alert = escalated.alert
            send_best_effort(
                self._notifier,
                Notification(
                    kind="alert_escalated",
                    recipient=self._users.email_for(alert.assigned_to) or "",
                    subject=f"[{alert.severity.value}] {alert.alert_type.value} alert still open",
                    body=alert.message,
                    data={
                        "alert_id": str(alert.alert_id),
                        "previous_severity": escalated.previous_severity.value,
                        "severity": alert.severity.value,
                    },
                ),
            )
        return result
