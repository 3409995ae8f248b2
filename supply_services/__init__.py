"""
supply_services -- package init and public API.

Responsibility:
    Composition over the module services: the ``ReplenishmentPipeline``
    facade, notifier construction from settings and scheduler wiring.

Architecture position:
    Services -- the outermost layer.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        supply_services/ -> supply_modules/, supply_batch/, supply_config/  (allowed)
        supply_kernel/   -> supply_services/                                 (FORBIDDEN)
        supply_modules/  -> supply_services/                                 (FORBIDDEN)
"""

from supply_services.pipeline import (
    ALERT_ESCALATION_JOB,
    EXPIRY_CHECK_JOB,
    REORDER_CHECK_JOB,
    ReplenishmentPipeline,
    build_scheduler,
    install_schedules,
    notifier_from_settings,
)

__all__ = [
    "ALERT_ESCALATION_JOB",
    "EXPIRY_CHECK_JOB",
    "REORDER_CHECK_JOB",
    "ReplenishmentPipeline",
    "build_scheduler",
    "install_schedules",
    "notifier_from_settings",
]
