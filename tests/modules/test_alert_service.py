"""
Tests for lot expiry alerting and the AlertService entry points
(listing, read-marking, expiry check, escalation notifications).
"""

from datetime import date, timedelta

import pytest

from supply_kernel.domain.identity import ActorContext, Role
from supply_kernel.exceptions import InsufficientRoleError
from supply_kernel.models import LotStatus
from supply_modules.alerts.assignment import FixedAssignment
from supply_modules.alerts.config import AlertConfig
from supply_modules.alerts.expiry import classify_expiry, expiry_message
from supply_modules.alerts.models import AlertSeverity, AlertSubject, AlertType
from supply_modules.alerts.service import AlertService

TODAY = date(2026, 3, 2)


@pytest.fixture
def service(session, clock, notifier):
    return AlertService(session, clock=clock, notifier=notifier)


class TestClassifyExpiry:
    @pytest.mark.parametrize(
        "offset, alert_type, severity",
        [
            (-1, AlertType.EXPIRED, AlertSeverity.CRITICAL),
            (0, AlertType.EXPIRY_WARNING_7, AlertSeverity.HIGH),
            (7, AlertType.EXPIRY_WARNING_7, AlertSeverity.HIGH),
            (8, AlertType.EXPIRY_WARNING_30, AlertSeverity.MEDIUM),
            (30, AlertType.EXPIRY_WARNING_30, AlertSeverity.MEDIUM),
        ],
    )
    def test_bands(self, offset, alert_type, severity):
        result = classify_expiry(TODAY + timedelta(days=offset), TODAY)
        assert result.alert_type == alert_type
        assert result.severity == severity
        assert result.days_to_expiry == offset

    def test_far_future_and_missing_dates(self):
        assert classify_expiry(TODAY + timedelta(days=31), TODAY) is None
        assert classify_expiry(None, TODAY) is None

    def test_custom_windows(self):
        result = classify_expiry(TODAY + timedelta(days=10), TODAY, warning_days=60, urgent_days=14)
        assert result.alert_type == AlertType.EXPIRY_WARNING_7

    def test_messages(self):
        expired = classify_expiry(TODAY - timedelta(days=2), TODAY)
        assert expiry_message("LOT-1", "Saline", expired, 4) == (
            "Lot LOT-1 of Saline has EXPIRED. Quantity: 4"
        )
        soon = classify_expiry(TODAY + timedelta(days=5), TODAY)
        assert expiry_message("LOT-1", "Saline", soon, 4) == (
            "Lot LOT-1 of Saline expires in 5 days. Quantity: 4"
        )


class TestExpiryCheck:
    def test_counts_and_alerts(self, service, make_item, warehouse, make_lot):
        item = make_item(item_name="Saline")
        make_lot(item, warehouse, TODAY - timedelta(days=1))
        make_lot(item, warehouse, TODAY + timedelta(days=3))
        make_lot(item, warehouse, TODAY + timedelta(days=20))
        make_lot(item, warehouse, TODAY + timedelta(days=90))

        result = service.run_expiry_check()

        assert result.lots_examined == 4
        assert result.expired == 1
        assert result.expiring_soon == 2
        assert result.alerts_created == 3
        types = sorted(a.alert_type.value for a in service.list_alerts().alerts)
        assert types == sorted(
            [AlertType.EXPIRED.value, AlertType.EXPIRY_WARNING_7.value,
             AlertType.EXPIRY_WARNING_30.value]
        )

    def test_skips_empty_inactive_and_undated_lots(self, service, make_item, warehouse, make_lot):
        item = make_item()
        make_lot(item, warehouse, TODAY, available_qty=0)
        make_lot(item, warehouse, TODAY, status=LotStatus.QUARANTINED)
        make_lot(item, warehouse, None)

        result = service.run_expiry_check()
        assert result.lots_examined == 0
        assert result.alerts_created == 0

    def test_rerun_does_not_duplicate(self, service, make_item, warehouse, make_lot):
        make_lot(make_item(), warehouse, TODAY + timedelta(days=3))
        assert service.run_expiry_check().alerts_created == 1
        assert service.run_expiry_check().alerts_created == 0
        assert len(service.list_alerts().alerts) == 1

    def test_later_stage_supersedes_earlier(self, service, clock, make_item, warehouse, make_lot):
        lot = make_lot(make_item(), warehouse, TODAY + timedelta(days=10))
        service.run_expiry_check()

        clock.advance(days=5)
        service.run_expiry_check()

        alerts = {a.alert_type: a for a in service.list_alerts().alerts}
        assert alerts[AlertType.EXPIRY_WARNING_30].is_read
        assert alerts[AlertType.EXPIRY_WARNING_30].resolution == "superseded"
        assert not alerts[AlertType.EXPIRY_WARNING_7].is_read
        assert alerts[AlertType.EXPIRY_WARNING_7].subject == AlertSubject.lot(lot.id)


class TestMarkRead:
    def test_elevated_role_required(self, service, make_item, random_id):
        outcome = service.registry.raise_alert(
            AlertSubject.item(make_item().id), AlertType.REORDER, AlertSeverity.MEDIUM, "m",
        )
        with pytest.raises(InsufficientRoleError):
            service.mark_read(ActorContext.of(random_id, Role.STOREKEEPER), outcome.alert.alert_id)

    def test_manager_marks_read(self, service, session, manager_actor, make_item):
        outcome = service.registry.raise_alert(
            AlertSubject.item(make_item().id), AlertType.REORDER, AlertSeverity.MEDIUM, "m",
        )
        session.commit()

        alert = service.mark_read(manager_actor, outcome.alert.alert_id)
        assert alert.is_read
        assert alert.read_by == manager_actor.actor_id
        assert service.list_alerts(is_read=False).alerts == ()


class TestEscalateStaleAlerts:
    def test_escalation_notifies_assignee(
        self, session, clock, notifier, make_item, make_user,
    ):
        boss = make_user("boss", Role.MANAGER.value, email="boss@example.com")
        service = AlertService(
            session, clock=clock, notifier=notifier, assignment=FixedAssignment(boss.id),
        )
        service.registry.raise_alert(
            AlertSubject.item(make_item().id), AlertType.REORDER, AlertSeverity.MEDIUM, "low",
        )
        session.commit()

        clock.advance(hours=25)
        result = service.escalate_stale_alerts()

        assert result.escalated == 1
        assert notifier.kinds() == ["alert_escalated"]
        sent = notifier.sent[0]
        assert sent.recipient == "boss@example.com"
        assert sent.data["previous_severity"] == "Medium"
        assert sent.data["severity"] == "High"

    def test_uses_configured_thresholds(self, session, clock, notifier, make_item):
        service = AlertService(
            session,
            clock=clock,
            notifier=notifier,
            config=AlertConfig(escalation_after_hours=2),
            assignment=FixedAssignment(None),
        )
        service.registry.raise_alert(
            AlertSubject.item(make_item().id), AlertType.REORDER, AlertSeverity.MEDIUM, "low",
        )
        session.commit()

        clock.advance(hours=2)
        assert service.escalate_stale_alerts().escalated == 1
        # no assignee, so nothing to deliver
        assert notifier.sent == []

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            AlertConfig(expiry_urgent_days=40, expiry_warning_days=30)
