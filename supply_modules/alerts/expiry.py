"""
Lot expiry alerting.

``classify_expiry`` is pure.  ``ExpiryAlertScanner`` reads active lots and
raises alerts through the shared AlertRegistry with a ``lot`` subject, so
expiry alerts follow exactly the same dedup rule as stock alerts.  When a
lot moves to a more urgent stage, the earlier stage's alert is marked
superseded.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.identity import SYSTEM_ACTOR_ID
from supply_kernel.logging_config import get_logger
from supply_kernel.models.catalog import Item
from supply_kernel.models.lot import InventoryLot, LotStatus
from supply_modules.alerts.models import (
    EXPIRY_ALERT_TYPES,
    AlertSeverity,
    AlertSubject,
    AlertType,
    ExpiryCheckResult,
)
from supply_modules.alerts.registry import AlertRegistry

logger = get_logger("modules.alerts.expiry")


@dataclass(frozen=True)
class ExpiryAssessment:
    alert_type: AlertType
    severity: AlertSeverity
    days_to_expiry: int


def classify_expiry(
    expiry_date: date | None,
    today: date,
    warning_days: int = 30,
    urgent_days: int = 7,
) -> ExpiryAssessment | None:
    """
    Expired (before today) -> Critical; within ``urgent_days`` -> High;
    within ``warning_days`` -> Medium; otherwise nothing.
    """
    if expiry_date is None:
        return None
    days = (expiry_date - today).days
    if days < 0:
        return ExpiryAssessment(AlertType.EXPIRED, AlertSeverity.CRITICAL, days)
    if days <= urgent_days:
        return ExpiryAssessment(AlertType.EXPIRY_WARNING_7, AlertSeverity.HIGH, days)
    if days <= warning_days:
        return ExpiryAssessment(AlertType.EXPIRY_WARNING_30, AlertSeverity.MEDIUM, days)
    return None


def expiry_message(lot_number: str, item_name: str, assessment: ExpiryAssessment, qty: int) -> str:
    if assessment.alert_type == AlertType.EXPIRED:
        return f"Lot {lot_number} of {item_name} has EXPIRED. Quantity: {qty}"
    return (
        f"Lot {lot_number} of {item_name} expires in {assessment.days_to_expiry} days. "
        f"Quantity: {qty}"
    )


class ExpiryAlertScanner:
    """Flush-only scan of active lots with stock on hand."""

    def __init__(
        self,
        session: Session,
        registry: AlertRegistry,
        warning_days: int = 30,
        urgent_days: int = 7,
    ):
        self._session = session
        self._registry = registry
        self._warning_days = warning_days
        self._urgent_days = urgent_days

    def candidate_lot_ids(self) -> list[UUID]:
        return list(
            self._session.execute(
                select(InventoryLot.id)
                .where(
                    InventoryLot.status == LotStatus.ACTIVE.value,
                    InventoryLot.expiry_date.is_not(None),
                    InventoryLot.available_qty > 0,
                )
                .order_by(InventoryLot.expiry_date, InventoryLot.lot_number)
            ).scalars().all()
        )

    def check_lot(
        self,
        lot_id: UUID,
        today: date,
        actor_id: UUID = SYSTEM_ACTOR_ID,
    ) -> tuple[ExpiryAssessment | None, bool]:
        """Assess one lot; returns the assessment and whether a new alert was created."""
        lot = self._session.get(InventoryLot, lot_id)
        if lot is None:
            return None, False
        assessment = classify_expiry(
            lot.expiry_date, today, self._warning_days, self._urgent_days,
        )
        subject = AlertSubject.lot(lot.id)
        if assessment is None:
            return None, False

        stale = EXPIRY_ALERT_TYPES - {assessment.alert_type}
        self._registry.resolve(subject, stale, resolution="superseded")

        item = self._session.get(Item, lot.item_id)
        outcome = self._registry.raise_alert(
            subject,
            assessment.alert_type,
            assessment.severity,
            expiry_message(
                lot.lot_number,
                item.item_name if item is not None else str(lot.item_id),
                assessment,
                lot.available_qty,
            ),
            item_id=lot.item_id,
            warehouse_id=lot.warehouse_id,
            actor_id=actor_id,
        )
        return assessment, outcome.created

    def run(self, today: date, actor_id: UUID = SYSTEM_ACTOR_ID) -> ExpiryCheckResult:
        lot_ids = self.candidate_lot_ids()
        expired = soon = created = 0
        for lot_id in lot_ids:
            assessment, was_created = self.check_lot(lot_id, today, actor_id)
            if assessment is None:
                continue
            if assessment.alert_type == AlertType.EXPIRED:
                expired += 1
            else:
                soon += 1
            created += int(was_created)

        logger.info(
            "expiry_check_completed",
            extra={
                "lots_examined": len(lot_ids),
                "expired": expired,
                "expiring_soon": soon,
                "alerts_created": created,
            },
        )
        return ExpiryCheckResult(
            lots_examined=len(lot_ids),
            expired=expired,
            expiring_soon=soon,
            alerts_created=created,
        )
