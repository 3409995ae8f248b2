"""
Alert domain models.

Frozen DTOs and enums.  Severity rank and escalation order live here so
that sorting and escalation stay pure.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class AlertType(str, Enum):
    """What condition an alert reports."""

    REORDER = "Reorder"
    CRITICAL_STOCK = "Critical Stock"
    LOW_STOCK = "Low Stock"
    EXPIRY_WARNING_30 = "Expiry Warning - 30 Days"
    EXPIRY_WARNING_7 = "Expiry Warning - 7 Days"
    EXPIRED = "Expired"


REORDER_ALERT_TYPES: frozenset[AlertType] = frozenset(
    {AlertType.REORDER, AlertType.CRITICAL_STOCK}
)
EXPIRY_ALERT_TYPES: frozenset[AlertType] = frozenset(
    {AlertType.EXPIRY_WARNING_30, AlertType.EXPIRY_WARNING_7, AlertType.EXPIRED}
)


class AlertSeverity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


_SEVERITY_RANK = {
    AlertSeverity.CRITICAL.value: 0,
    AlertSeverity.HIGH.value: 1,
    AlertSeverity.MEDIUM.value: 2,
}

_ESCALATION_ORDER = (
    AlertSeverity.LOW,
    AlertSeverity.MEDIUM,
    AlertSeverity.HIGH,
    AlertSeverity.CRITICAL,
)


def severity_rank(severity: str) -> int:
    """Display sort key: Critical < High < Medium < anything else."""
    value = severity.value if isinstance(severity, AlertSeverity) else severity
    return _SEVERITY_RANK.get(value, len(_SEVERITY_RANK))


def escalate_severity(severity: str) -> AlertSeverity:
    """One step up the ladder; Critical stays Critical."""
    current = AlertSeverity(severity)
    idx = _ESCALATION_ORDER.index(current)
    return _ESCALATION_ORDER[min(idx + 1, len(_ESCALATION_ORDER) - 1)]


class SubjectType(str, Enum):
    ITEM = "item"
    LOT = "lot"


@dataclass(frozen=True)
class AlertSubject:
    """The thing an alert is about; half of the dedup key."""

    subject_type: SubjectType
    subject_id: UUID

    @classmethod
    def item(cls, item_id: UUID) -> "AlertSubject":
        return cls(SubjectType.ITEM, item_id)

    @classmethod
    def lot(cls, lot_id: UUID) -> "AlertSubject":
        return cls(SubjectType.LOT, lot_id)


@dataclass(frozen=True)
class Alert:
    alert_id: UUID
    alert_type: AlertType
    severity: AlertSeverity
    subject: AlertSubject
    message: str
    is_read: bool
    created_at: datetime
    item_id: UUID | None = None
    warehouse_id: UUID | None = None
    assigned_to: UUID | None = None
    read_at: datetime | None = None
    read_by: UUID | None = None
    resolution: str | None = None
    escalation_count: int = 0
    last_escalated_at: datetime | None = None

    def days_pending(self, now: datetime) -> int:
        return max(0, (now - self.created_at).days)


@dataclass(frozen=True)
class RaiseOutcome:
    """Result of AlertRegistry.raise_alert: the open alert and whether it is new."""

    alert: Alert
    created: bool


@dataclass(frozen=True)
class AlertListing:
    alerts: tuple[Alert, ...]
    unread_count: int
    critical_count: int


@dataclass(frozen=True)
class EscalatedAlert:
    alert: Alert
    previous_severity: AlertSeverity
    renotify_only: bool


@dataclass(frozen=True)
class EscalationResult:
    examined: int
    escalated: int
    renotified: int
    alerts: tuple[EscalatedAlert, ...] = ()


@dataclass(frozen=True)
class ExpiryCheckResult:
    lots_examined: int
    expired: int
    expiring_soon: int
    alerts_created: int
