"""
AlertRegistry -- create, deduplicate, resolve and escalate alerts.

Responsibility
--------------
Single write path for the ``alerts`` table.  Both trigger domains (stock
thresholds and lot expiry) call ``raise_alert`` with a subject and an
alert type; the registry guarantees there is never more than one unread
alert for the same (subject, alert type).

Architecture position
---------------------
**Modules layer** -- flush-only.  Callers (ReorderService, AlertService,
batch tasks) own the transaction.

Invariants enforced
-------------------
* Dedup: an existing unread alert with the same key makes ``raise_alert``
  a no-op (no duplicate row, no update).  The check is backed by the
  partial unique index ``uq_alerts_open_subject``: a concurrent insert that
  loses the race rolls back its SAVEPOINT and returns the winner's alert.
* Monotonic reads: ``is_read`` only ever moves from false to true.

Failure modes
-------------
* AlertNotFoundError from ``mark_read`` for an unknown id.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import SYSTEM_ACTOR_ID, Role
from supply_kernel.exceptions import AlertNotFoundError
from supply_kernel.logging_config import get_logger
from supply_modules.alerts.assignment import AssignmentStrategy
from supply_modules.alerts.models import (
    Alert,
    AlertListing,
    AlertSeverity,
    AlertSubject,
    AlertType,
    EscalatedAlert,
    EscalationResult,
    RaiseOutcome,
    escalate_severity,
)
from supply_modules.alerts.orm import AlertModel

logger = get_logger("modules.alerts.registry")

_SEVERITY_ORDER = case(
    {
        AlertSeverity.CRITICAL.value: 0,
        AlertSeverity.HIGH.value: 1,
        AlertSeverity.MEDIUM.value: 2,
    },
    value=AlertModel.severity,
    else_=3,
)


class AlertRegistry:
    """
    Deduplicating alert store.

    Contract:
        - ``raise_alert`` returns the open alert for the key and whether
          this call created it.
        - ``resolve`` marks the subject's unread alerts of the given types
          read and returns how many changed.

    Non-goals:
        - Does NOT commit.
        - Does NOT send notifications; callers decide after commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        assignment: AssignmentStrategy | None = None,
        assignee_roles: Iterable[str] = (Role.ADMIN.value, Role.MANAGER.value),
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._assignment = assignment
        self._assignee_roles = tuple(assignee_roles)

    # -------------------------------------------------------------------------
    # Raise / resolve
    # -------------------------------------------------------------------------

    def _open_models(
        self,
        subject: AlertSubject,
        alert_types: Iterable[AlertType],
    ) -> list[AlertModel]:
        types = [AlertType(t).value for t in alert_types]
        return list(
            self._session.execute(
                select(AlertModel).where(
                    AlertModel.subject_type == subject.subject_type.value,
                    AlertModel.subject_id == subject.subject_id,
                    AlertModel.alert_type.in_(types),
                    AlertModel.is_read == False,  # noqa: E712
                )
            ).scalars().all()
        )

    def find_open(self, subject: AlertSubject, alert_type: AlertType) -> Alert | None:
        models = self._open_models(subject, [alert_type])
        return models[0].to_dto() if models else None

    def raise_alert(
        self,
        subject: AlertSubject,
        alert_type: AlertType,
        severity: AlertSeverity,
        message: str,
        *,
        item_id: UUID | None = None,
        warehouse_id: UUID | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> RaiseOutcome:
        alert_type = AlertType(alert_type)
        severity = AlertSeverity(severity)

        existing = self._open_models(subject, [alert_type])
        if existing:
            logger.debug(
                "alert_deduplicated",
                extra={
                    "alert_id": str(existing[0].id),
                    "alert_type": alert_type.value,
                    "subject_id": str(subject.subject_id),
                },
            )
            return RaiseOutcome(alert=existing[0].to_dto(), created=False)

        assignee = self._assignment(self._assignee_roles) if self._assignment else None
        now = self._clock.now()
        model = AlertModel(
            alert_type=alert_type.value,
            severity=severity.value,
            subject_type=subject.subject_type.value,
            subject_id=subject.subject_id,
            item_id=item_id,
            warehouse_id=warehouse_id,
            message=message,
            is_read=False,
            assigned_to=assignee,
            escalation_count=0,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )

        savepoint = self._session.begin_nested()
        try:
            self._session.add(model)
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            # Another writer inserted the same open alert first.
            savepoint.rollback()
            winner = self._open_models(subject, [alert_type])
            if not winner:
                raise
            logger.info(
                "alert_dedup_race_resolved",
                extra={"alert_id": str(winner[0].id), "alert_type": alert_type.value},
            )
            return RaiseOutcome(alert=winner[0].to_dto(), created=False)

        logger.info(
            "alert_raised",
            extra={
                "alert_id": str(model.id),
                "alert_type": alert_type.value,
                "severity": severity.value,
                "subject_type": subject.subject_type.value,
                "subject_id": str(subject.subject_id),
                "assigned_to": str(assignee) if assignee else None,
            },
        )
        return RaiseOutcome(alert=model.to_dto(), created=True)

    def resolve(
        self,
        subject: AlertSubject,
        alert_types: Iterable[AlertType],
        *,
        actor_id: UUID | None = None,
        resolution: str = "resolved",
    ) -> int:
        now = self._clock.now()
        models = self._open_models(subject, alert_types)
        for model in models:
            model.is_read = True
            model.read_at = now
            model.read_by_id = actor_id
            model.resolution = resolution
        if models:
            self._session.flush()
            logger.info(
                "alerts_resolved",
                extra={
                    "subject_id": str(subject.subject_id),
                    "count": len(models),
                    "resolution": resolution,
                },
            )
        return len(models)

    def mark_read(self, alert_id: UUID, actor_id: UUID) -> Alert:
        """Mark one alert read. Repeated calls keep the first reader."""
        model = self._session.get(AlertModel, alert_id)
        if model is None:
            raise AlertNotFoundError(str(alert_id))
        if not model.is_read:
            model.is_read = True
            model.read_at = self._clock.now()
            model.read_by_id = actor_id
            model.resolution = "read"
            self._session.flush()
            logger.info(
                "alert_marked_read",
                extra={"alert_id": str(alert_id), "actor_id": str(actor_id)},
            )
        return model.to_dto()

    # -------------------------------------------------------------------------
    # Queries
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
        """Alerts sorted Critical, High, Medium, others; newest first within a severity."""
        stmt = select(AlertModel)
        if alert_type is not None:
            stmt = stmt.where(AlertModel.alert_type == AlertType(alert_type).value)
        if severity is not None:
            stmt = stmt.where(AlertModel.severity == AlertSeverity(severity).value)
        if is_read is not None:
            stmt = stmt.where(AlertModel.is_read == is_read)
        if item_id is not None:
            stmt = stmt.where(AlertModel.item_id == item_id)
        stmt = stmt.order_by(_SEVERITY_ORDER, AlertModel.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        alerts = tuple(m.to_dto() for m in self._session.execute(stmt).scalars().all())
        return AlertListing(
            alerts=alerts,
            unread_count=sum(1 for a in alerts if not a.is_read),
            critical_count=sum(1 for a in alerts if a.severity == AlertSeverity.CRITICAL),
        )

    # -------------------------------------------------------------------------
    # Escalation
    # -------------------------------------------------------------------------

    def escalate_stale(
        self,
        escalation_after: timedelta,
        renotify_after: timedelta,
        now: datetime | None = None,
    ) -> EscalationResult:
        """
        Step up unread alerts that have waited too long.

        Age is measured from the last escalation, or creation when never
        escalated, so each alert moves at most one level per period.
        Critical alerts cannot go higher; once ``renotify_after`` has passed
        they are returned with ``renotify_only`` so the caller can remind
        the assignee.
        """
        now = now or self._clock.now()
        unread = self._session.execute(
            select(AlertModel).where(AlertModel.is_read == False)  # noqa: E712
        ).scalars().all()

        escalated: list[EscalatedAlert] = []
        bumped = 0
        renotified = 0
        for model in unread:
            age = now - (model.last_escalated_at or model.created_at)
            previous = AlertSeverity(model.severity)

            if previous == AlertSeverity.CRITICAL:
                if age < renotify_after:
                    continue
                renotify_only = True
                renotified += 1
            else:
                if age < escalation_after:
                    continue
                model.severity = escalate_severity(previous).value
                renotify_only = False
                bumped += 1

            model.last_escalated_at = now
            model.escalation_count = (model.escalation_count or 0) + 1
            escalated.append(
                EscalatedAlert(
                    alert=model.to_dto(),
                    previous_severity=previous,
                    renotify_only=renotify_only,
                )
            )

        if escalated:
            self._session.flush()
        logger.info(
            "alerts_escalation_pass",
            extra={"examined": len(unread), "escalated": bumped, "renotified": renotified},
        )
        return EscalationResult(
            examined=len(unread),
            escalated=bumped,
            renotified=renotified,
            alerts=tuple(escalated),
        )
