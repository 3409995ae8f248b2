"""
Pipeline settings schema.

Defines the deployment-level settings for the replenishment pipeline.
YAML documents are parsed into these types by the loader; module
services receive the narrower module configs built by the ``to_*``
bridges below.

Every section is a frozen dataclass that validates itself in
``__post_init__`` and raises ``ConfigurationError`` naming the offending
setting.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from supply_kernel.domain.identity import Role
from supply_kernel.exceptions import ConfigurationError
from supply_modules.alerts.config import AlertConfig
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.reorder.config import ReorderConfig

_KNOWN_ROLES = frozenset(r.value for r in Role)
NOTIFICATION_BACKENDS = ("log", "smtp")


def _require_roles(setting: str, roles: tuple[str, ...]) -> None:
    if not roles:
        raise ConfigurationError(setting, "must name at least one role")
    unknown = sorted(set(roles) - _KNOWN_ROLES)
    if unknown:
        raise ConfigurationError(setting, f"unknown role(s) {unknown}")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings. ``url`` falls back to ``DATABASE_URL``."""

    url: str = "sqlite:///supply_pipeline.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10

    def __post_init__(self):
        if not self.url:
            raise ConfigurationError("database.url", "must not be empty")
        if self.pool_size <= 0:
            raise ConfigurationError("database.pool_size", "must be positive")
        if self.max_overflow < 0:
            raise ConfigurationError("database.max_overflow", "cannot be negative")


@dataclass(frozen=True)
class ReorderSettings:
    auto_resolve_recovered: bool = True
    notify_assignee: bool = True


@dataclass(frozen=True)
class ProcurementSettings:
    pr_prefix: str = "PR"
    po_prefix: str = "PO"
    min_rejection_reason_length: int = 10
    approver_roles: tuple[str, ...] = (Role.MANAGER.value, Role.ADMIN.value)
    default_justification: str = "Stock below reorder point"

    def __post_init__(self):
        for name in ("pr_prefix", "po_prefix"):
            value = getattr(self, name)
            if not value or not value.isalnum():
                raise ConfigurationError(f"procurement.{name}", "must be alphanumeric")
        if self.pr_prefix == self.po_prefix:
            raise ConfigurationError("procurement.po_prefix", "must differ from pr_prefix")
        if self.min_rejection_reason_length < 0:
            raise ConfigurationError(
                "procurement.min_rejection_reason_length", "cannot be negative"
            )
        _require_roles("procurement.approver_roles", self.approver_roles)


@dataclass(frozen=True)
class AlertSettings:
    escalation_after_hours: int = 24
    critical_renotify_after_hours: int = 6
    expiry_warning_days: int = 30
    expiry_urgent_days: int = 7
    assignee_roles: tuple[str, ...] = (Role.ADMIN.value, Role.MANAGER.value)

    def __post_init__(self):
        if self.escalation_after_hours <= 0:
            raise ConfigurationError("alerts.escalation_after_hours", "must be positive")
        if self.critical_renotify_after_hours <= 0:
            raise ConfigurationError(
                "alerts.critical_renotify_after_hours", "must be positive"
            )
        if not 0 < self.expiry_urgent_days <= self.expiry_warning_days:
            raise ConfigurationError(
                "alerts.expiry_urgent_days",
                "must be positive and not exceed expiry_warning_days",
            )
        _require_roles("alerts.assignee_roles", self.assignee_roles)


@dataclass(frozen=True)
class SchedulerSettings:
    """Cron expressions are validated by the scheduler when registered."""

    enabled: bool = True
    tick_interval_seconds: int = 60
    reorder_check_cron: str = "0 * * * *"
    expiry_check_cron: str = "0 2 * * *"
    escalation_cron: str = "30 * * * *"

    def __post_init__(self):
        if self.tick_interval_seconds <= 0:
            raise ConfigurationError("scheduler.tick_interval_seconds", "must be positive")


@dataclass(frozen=True)
class NotificationSettings:
    backend: str = "log"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    sender: str = "replenishment@localhost"

    def __post_init__(self):
        if self.backend not in NOTIFICATION_BACKENDS:
            raise ConfigurationError(
                "notifications.backend", f"must be one of {list(NOTIFICATION_BACKENDS)}"
            )
        if not 0 < self.smtp_port < 65536:
            raise ConfigurationError("notifications.smtp_port", "out of range")


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PipelineConfig:
    """Every settings section of one deployment."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    reorder: ReorderSettings = field(default_factory=ReorderSettings)
    procurement: ProcurementSettings = field(default_factory=ProcurementSettings)
    alerts: AlertSettings = field(default_factory=AlertSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    # Bridges to module configs

    def to_reorder_config(self) -> ReorderConfig:
        return ReorderConfig(
            auto_resolve_recovered=self.reorder.auto_resolve_recovered,
            notify_assignee=self.reorder.notify_assignee,
        )

    def to_procurement_config(self) -> ProcurementConfig:
        p = self.procurement
        return ProcurementConfig(
            pr_prefix=p.pr_prefix,
            po_prefix=p.po_prefix,
            min_rejection_reason_length=p.min_rejection_reason_length,
            approver_roles=p.approver_roles,
            default_justification=p.default_justification,
        )

    def to_alert_config(self) -> AlertConfig:
        a = self.alerts
        return AlertConfig(
            escalation_after_hours=a.escalation_after_hours,
            critical_renotify_after_hours=a.critical_renotify_after_hours,
            expiry_warning_days=a.expiry_warning_days,
            expiry_urgent_days=a.expiry_urgent_days,
            assignee_roles=a.assignee_roles,
        )
