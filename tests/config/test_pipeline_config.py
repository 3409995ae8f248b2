"""
Tests for supply_config: packaged defaults, deployment overlays,
validation and the bridges to module configs.
"""

from pathlib import Path

import pytest
import yaml

from supply_config import (
    PipelineConfig,
    config_checksum,
    load_pipeline_config,
    load_yaml_file,
    parse_pipeline_config,
)
from supply_config.loader import DEFAULTS_PATH, merge_documents
from supply_config.schema import DatabaseSettings, NotificationSettings
from supply_kernel.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _no_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)


def _write(tmp_path: Path, document: dict) -> Path:
    path = tmp_path / "pipeline.yaml"
    path.write_text(yaml.safe_dump(document))
    return path


class TestDefaults:
    def test_packaged_defaults_match_schema_defaults(self):
        assert load_pipeline_config() == PipelineConfig()

    def test_defaults_file_names_every_section(self):
        assert set(load_yaml_file(DEFAULTS_PATH)) == {
            "database", "reorder", "procurement", "alerts", "scheduler", "notifications",
        }

    def test_default_values(self):
        config = load_pipeline_config()
        assert config.procurement.approver_roles == ("Manager", "Admin")
        assert config.procurement.min_rejection_reason_length == 10
        assert config.alerts.expiry_warning_days == 30
        assert config.scheduler.reorder_check_cron == "0 * * * *"
        assert config.notifications.backend == "log"


class TestOverlay:
    def test_overlay_keeps_unmentioned_keys(self, tmp_path):
        path = _write(tmp_path, {"procurement": {"pr_prefix": "REQ"}, "alerts": None})
        config = load_pipeline_config(path)
        assert config.procurement.pr_prefix == "REQ"
        assert config.procurement.po_prefix == "PO"
        assert config.alerts == PipelineConfig().alerts

    def test_single_role_string_accepted(self, tmp_path):
        path = _write(tmp_path, {"procurement": {"approver_roles": "Admin"}})
        assert load_pipeline_config(path).procurement.approver_roles == ("Admin",)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(tmp_path / "absent.yaml")

    def test_empty_file_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_pipeline_config(path) == PipelineConfig()

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_pipeline_config(path)

    def test_merge_is_one_section_deep(self):
        merged = merge_documents({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": {"z": 4}})
        assert merged == {"a": {"x": 1, "y": 3}, "b": {"z": 4}}

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            merge_documents({}, {"reorder": "yes"})


class TestValidation:
    def test_unknown_section(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_pipeline_config({"reports": {}})
        assert "reports" in str(exc_info.value)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_pipeline_config({"alerts": {"escalate_after": 3}})
        assert exc_info.value.setting == "alerts"

    @pytest.mark.parametrize(
        "document, setting",
        [
            ({"database": {"url": ""}}, "database.url"),
            ({"database": {"pool_size": 0}}, "database.pool_size"),
            ({"procurement": {"pr_prefix": "PR-"}}, "procurement.pr_prefix"),
            ({"procurement": {"po_prefix": "PR"}}, "procurement.po_prefix"),
            ({"procurement": {"approver_roles": []}}, "procurement.approver_roles"),
            ({"procurement": {"approver_roles": ["Boss"]}}, "procurement.approver_roles"),
            ({"alerts": {"expiry_urgent_days": 40}}, "alerts.expiry_urgent_days"),
            ({"alerts": {"escalation_after_hours": 0}}, "alerts.escalation_after_hours"),
            ({"scheduler": {"tick_interval_seconds": 0}}, "scheduler.tick_interval_seconds"),
            ({"notifications": {"backend": "pager"}}, "notifications.backend"),
            ({"notifications": {"smtp_port": 70000}}, "notifications.smtp_port"),
        ],
    )
    def test_invalid_values(self, document, setting):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_pipeline_config(document)
        assert exc_info.value.setting == setting
        assert exc_info.value.code == "CONFIGURATION_ERROR"


class TestDatabaseUrl:
    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://supply@db/supply")
        path = _write(tmp_path, {"database": {"url": "sqlite:///other.db", "pool_size": 5}})

        config = load_pipeline_config(path)

        assert config.database.url == "postgresql://supply@db/supply"
        assert config.database.pool_size == 5

    def test_file_used_without_environment(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "sqlite:///other.db"}})
        assert load_pipeline_config(path).database.url == "sqlite:///other.db"


class TestChecksum:
    def test_stable(self):
        assert config_checksum(PipelineConfig()) == config_checksum(load_pipeline_config())
        assert len(config_checksum(PipelineConfig())) == 64

    def test_ignores_database_url(self):
        a = PipelineConfig(database=DatabaseSettings(url="sqlite:///a.db"))
        b = PipelineConfig(database=DatabaseSettings(url="postgresql://user:secret@db/b"))
        assert config_checksum(a) == config_checksum(b)

    def test_changes_with_settings(self):
        changed = PipelineConfig(notifications=NotificationSettings(backend="smtp"))
        assert config_checksum(changed) != config_checksum(PipelineConfig())


class TestModuleConfigBridges:
    def test_values_carried_over(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "reorder": {"auto_resolve_recovered": False},
                "procurement": {"pr_prefix": "REQ", "min_rejection_reason_length": 3},
                "alerts": {"escalation_after_hours": 12, "assignee_roles": ["Manager"]},
            },
        )
        config = load_pipeline_config(path)

        reorder = config.to_reorder_config()
        assert reorder.auto_resolve_recovered is False
        assert reorder.notify_assignee is True

        procurement = config.to_procurement_config()
        assert procurement.pr_prefix == "REQ"
        assert procurement.min_rejection_reason_length == 3
        assert procurement.approver_roles == ("Manager", "Admin")

        alerts = config.to_alert_config()
        assert alerts.escalation_after_hours == 12
        assert alerts.assignee_roles == ("Manager",)
