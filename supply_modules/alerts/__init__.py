"""
Alerts module: deduplicated threshold alerts for stock and lot expiry.

The registry is shared by two trigger domains (reorder evaluation and lot
expiry); both use the same dedup key (subject type, subject id, alert
type) among unread alerts.
"""

from supply_modules.alerts.assignment import (
    AssignmentStrategy,
    FirstActiveUserAssignment,
    FixedAssignment,
)
from supply_modules.alerts.config import AlertConfig
from supply_modules.alerts.models import (
    Alert,
    AlertListing,
    AlertSeverity,
    AlertSubject,
    AlertType,
    EscalationResult,
    ExpiryCheckResult,
    RaiseOutcome,
    SubjectType,
    escalate_severity,
    severity_rank,
)
from supply_modules.alerts.registry import AlertRegistry
from supply_modules.alerts.service import AlertService

__all__ = [
    "Alert",
    "AlertConfig",
    "AlertListing",
    "AlertRegistry",
    "AlertService",
    "AlertSeverity",
    "AlertSubject",
    "AlertType",
    "AssignmentStrategy",
    "EscalationResult",
    "ExpiryCheckResult",
    "FirstActiveUserAssignment",
    "FixedAssignment",
    "RaiseOutcome",
    "SubjectType",
    "escalate_severity",
    "severity_rank",
]
