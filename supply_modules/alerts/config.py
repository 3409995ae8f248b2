"""
Alerts Configuration Schema.

Defaults match the values the alerting rules were tuned with; every field
can be overridden from the pipeline YAML.
"""

from dataclasses import dataclass

from supply_kernel.domain.identity import Role


@dataclass(frozen=True)
class AlertConfig:
    """
    Thresholds for escalation and expiry alerting.

    Attributes:
        escalation_after_hours: unread alerts older than this step up one
            severity level (and again after each further period).
        critical_renotify_after_hours: unread Critical alerts re-notify
            their assignee after this long.
        expiry_warning_days: lots expiring within this many days raise a
            Medium warning.
        expiry_urgent_days: lots expiring within this many days raise a
            High warning.
        assignee_roles: roles eligible for alert assignment.
    """

    escalation_after_hours: int = 24
    critical_renotify_after_hours: int = 6
    expiry_warning_days: int = 30
    expiry_urgent_days: int = 7
    assignee_roles: tuple[str, ...] = (Role.ADMIN.value, Role.MANAGER.value)

    def __post_init__(self):
        if self.escalation_after_hours <= 0:
            raise ValueError("escalation_after_hours must be positive")
        if self.critical_renotify_after_hours <= 0:
            raise ValueError("critical_renotify_after_hours must be positive")
        if not 0 < self.expiry_urgent_days <= self.expiry_warning_days:
            raise ValueError(
                "expiry_urgent_days must be positive and not exceed expiry_warning_days"
            )
        if not self.assignee_roles:
            raise ValueError("assignee_roles must not be empty")
