"""
supply_config -- deployment settings for the replenishment pipeline.

Responsibility:
    Reads YAML settings (packaged defaults plus an optional deployment
    file) into a frozen ``PipelineConfig`` and bridges it to the module
    configs (``ReorderConfig``, ``ProcurementConfig``, ``AlertConfig``).

Architecture position:
    Configuration -- sits above ``supply_kernel`` and ``supply_modules``
    and below ``supply_services``.  The kernel MUST NEVER import from
    ``supply_config``.

Failure modes:
    - ``FileNotFoundError`` -- the deployment file does not exist.
    - ``ConfigurationError`` -- unknown key or invalid value.
"""

from supply_config.loader import (
    config_checksum,
    load_pipeline_config,
    load_yaml_file,
    parse_pipeline_config,
)
from supply_config.schema import (
    AlertSettings,
    DatabaseSettings,
    NotificationSettings,
    PipelineConfig,
    ProcurementSettings,
    ReorderSettings,
    SchedulerSettings,
)

__all__ = [
    "AlertSettings",
    "DatabaseSettings",
    "NotificationSettings",
    "PipelineConfig",
    "ProcurementSettings",
    "ReorderSettings",
    "SchedulerSettings",
    "config_checksum",
    "load_pipeline_config",
    "load_yaml_file",
    "parse_pipeline_config",
]
