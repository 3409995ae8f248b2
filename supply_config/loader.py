"""
Configuration Loader (``supply_config.loader``).

Responsibility
--------------
Loads the packaged ``defaults.yaml``, overlays an optional deployment
file section by section, and parses the result into a frozen
``PipelineConfig``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by
``supply_services`` and the scripts.  The kernel and modules never read
configuration files themselves; they receive their module configs.

Invariants enforced
-------------------
* Unknown sections or keys are rejected, so a typo in a deployment file
  is a ``ConfigurationError`` instead of a silently ignored setting.
* ``DATABASE_URL`` in the environment wins over ``database.url`` in any
  file.
* ``config_checksum`` produces a deterministic SHA-256 hash of the
  effective settings.

Failure modes
-------------
* Missing deployment file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shape or invalid value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from supply_config.schema import (
    AlertSettings,
    DatabaseSettings,
    NotificationSettings,
    PipelineConfig,
    ProcurementSettings,
    ReorderSettings,
    SchedulerSettings,
)
from supply_kernel.exceptions import ConfigurationError
from supply_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
DATABASE_URL_ENV = "DATABASE_URL"

_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "reorder": ReorderSettings,
    "procurement": ProcurementSettings,
    "alerts": AlertSettings,
    "scheduler": SchedulerSettings,
    "notifications": NotificationSettings,
}

# Sequence-valued settings are tuples on the frozen dataclasses
_TUPLE_KEYS = frozenset({"approver_roles", "assignee_roles"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def merge_documents(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``overlay`` onto ``base`` one section deep."""
    merged = {name: dict(values or {}) for name, values in base.items()}
    for name, values in overlay.items():
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigurationError(name, "section must be a mapping")
        merged.setdefault(name, {}).update(values)
    return merged


def _parse_section(name: str, data: dict[str, Any]):
    cls = _SECTIONS[name]
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(name, f"unknown key(s) {unknown}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in _TUPLE_KEYS:
            if isinstance(value, str):
                value = [value]
            value = tuple(str(v) for v in value or ())
        kwargs[key] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ConfigurationError(name, str(exc)) from exc


def parse_pipeline_config(data: dict[str, Any]) -> PipelineConfig:
    """
    Build a ``PipelineConfig`` from a merged document.

    Raises:
        ConfigurationError: on unknown sections or keys and on invalid values.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ConfigurationError("<root>", f"unknown section(s) {unknown}")

    sections = {
        name: _parse_section(name, data.get(name) or {}) for name in _SECTIONS
    }
    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        db = sections["database"]
        sections["database"] = DatabaseSettings(
            url=env_url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
        )
    return PipelineConfig(**sections)


def load_pipeline_config(path: Path | str | None = None) -> PipelineConfig:
    """
    Load the packaged defaults, then overlay ``path`` when given.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        ConfigurationError: on an invalid setting.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = merge_documents(data, load_yaml_file(Path(path)))

    config = parse_pipeline_config(data)
    logger.info(
        "pipeline_config_loaded",
        extra={
            "source": str(path) if path is not None else "defaults",
            "checksum": config_checksum(config),
            "dialect": config.database.url.split(":", 1)[0],
        },
    )
    return config


def config_checksum(config: PipelineConfig) -> str:
    """
    SHA-256 of the canonical JSON serialization of ``config``.

    The database URL is left out so that credentials never reach the
    hash input and environments that differ only by URL compare equal.
    """
    data = asdict(config)
    data["database"].pop("url", None)
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
