"""
Tests for ReorderService: evaluation over the ledger, alert creation,
supersession between Reorder and Critical Stock, recovery and the
assignee notification.
"""

import pytest

from supply_kernel.domain.identity import Role
from supply_modules.alerts.assignment import FixedAssignment
from supply_modules.alerts.models import AlertSeverity, AlertType
from supply_modules.reorder.config import ReorderConfig
from supply_modules.reorder.models import ReorderClassification
from supply_modules.reorder.service import ReorderService, reorder_message


@pytest.fixture
def service(session, clock, notifier):
    return ReorderService(session, clock=clock, notifier=notifier)


class TestEvaluateReorderNeeds:
    def test_item_between_thresholds_needs_reorder(self, service, make_item, warehouse, ledger):
        item = make_item(item_name="Gauze", reorder_point=50, safety_stock=20)
        ledger(item, warehouse, 30)

        result = service.evaluate_reorder_needs()

        assert result.items_needing_reorder == 1
        assert result.critical_count == 0
        assert result.alerts_created == 1
        line = result.items[0]
        assert line.status == ReorderClassification.REORDER
        assert line.urgency == AlertSeverity.MEDIUM
        assert line.current_stock == 30
        assert line.recommended_order_qty == 50
        assert line.warehouse_id == warehouse.id

        alert = service.registry.list_alerts(item_id=item.id).alerts[0]
        assert alert.alert_id == line.alert_id
        assert alert.message == "Item Gauze stock is 30, below reorder point of 50"

    def test_healthy_and_inactive_items_excluded(self, service, make_item, warehouse, ledger):
        healthy = make_item(reorder_point=50)
        ledger(healthy, warehouse, 51)
        make_item(is_active=False)

        result = service.evaluate_reorder_needs()

        assert result.items_needing_reorder == 0
        assert result.items == ()

    def test_item_without_history_counts_as_zero(self, service, make_item):
        make_item(reorder_point=50, safety_stock=20)
        line = service.evaluate_reorder_needs().items[0]
        assert line.current_stock == 0
        assert line.status == ReorderClassification.CRITICAL_STOCK
        assert line.recommended_order_qty == 70
        assert line.warehouse_id is None

    def test_stock_summed_across_warehouses(self, service, make_item, make_warehouse, ledger):
        item = make_item(reorder_point=50, safety_stock=20)
        east, west = make_warehouse("EAST"), make_warehouse("WEST")
        ledger(item, east, 30)
        ledger(item, west, 25)

        assert service.evaluate_reorder_needs().items == ()

    def test_latest_entry_wins(self, service, make_item, warehouse, ledger):
        item = make_item(reorder_point=50, safety_stock=20)
        ledger(item, warehouse, 100)
        ledger(item, warehouse, 10, quantity=-90, transaction_type="OUT")

        line = service.evaluate_reorder_needs().items[0]
        assert line.current_stock == 10

    def test_critical_first_then_sku(self, service, make_item, warehouse, ledger):
        for sku, balance in [("B-2", 40), ("A-1", 45), ("C-3", 5)]:
            ledger(make_item(sku=sku, reorder_point=50, safety_stock=20), warehouse, balance)

        result = service.evaluate_reorder_needs()

        assert [ln.sku for ln in result.items] == ["C-3", "A-1", "B-2"]
        assert result.critical_count == 1

    def test_rerun_reuses_open_alert(self, service, make_item, warehouse, ledger):
        ledger(make_item(), warehouse, 30)
        first = service.evaluate_reorder_needs()
        second = service.evaluate_reorder_needs()

        assert first.alerts_created == 1
        assert second.alerts_created == 0
        assert second.items[0].alert_id == first.items[0].alert_id
        assert not second.items[0].alert_created


class TestSupersession:
    def test_dropping_below_safety_stock_supersedes_reorder(
        self, service, make_item, warehouse, ledger,
    ):
        item = make_item(reorder_point=50, safety_stock=20)
        ledger(item, warehouse, 30)
        service.evaluate_reorder_needs()

        ledger(item, warehouse, 5, quantity=-25, transaction_type="OUT")
        result = service.evaluate_reorder_needs()

        assert result.alerts_resolved == 1
        alerts = {a.alert_type: a for a in service.registry.list_alerts(item_id=item.id).alerts}
        assert alerts[AlertType.REORDER].resolution == "superseded"
        assert not alerts[AlertType.CRITICAL_STOCK].is_read
        assert alerts[AlertType.CRITICAL_STOCK].severity == AlertSeverity.CRITICAL

    def test_recovery_resolves_open_alerts(self, service, make_item, warehouse, ledger):
        item = make_item(reorder_point=50, safety_stock=20)
        ledger(item, warehouse, 30)
        service.evaluate_reorder_needs()

        ledger(item, warehouse, 200, quantity=170)
        result = service.evaluate_reorder_needs()

        assert result.items_needing_reorder == 0
        assert result.alerts_resolved == 1
        listing = service.registry.list_alerts(item_id=item.id)
        assert listing.unread_count == 0
        assert listing.alerts[0].resolution == "resolved"

    def test_recovery_left_open_when_disabled(
        self, session, clock, notifier, make_item, warehouse, ledger,
    ):
        service = ReorderService(
            session, clock=clock, notifier=notifier,
            config=ReorderConfig(auto_resolve_recovered=False),
        )
        item = make_item()
        ledger(item, warehouse, 30)
        service.evaluate_reorder_needs()
        ledger(item, warehouse, 200, quantity=170)

        assert service.evaluate_reorder_needs().alerts_resolved == 0
        assert service.registry.list_alerts(item_id=item.id).unread_count == 1


class TestNotification:
    def test_assignee_notified_once_per_run(
        self, session, clock, notifier, make_item, make_user, warehouse, ledger,
    ):
        boss = make_user("boss", Role.ADMIN.value, email="boss@example.com")
        service = ReorderService(
            session, clock=clock, notifier=notifier, assignment=FixedAssignment(boss.id),
        )
        ledger(make_item(sku="A"), warehouse, 30)
        ledger(make_item(sku="B"), warehouse, 10)

        service.evaluate_reorder_needs()

        assert notifier.kinds() == ["reorder_alert"]
        assert notifier.sent[0].recipient == "boss@example.com"
        assert len(notifier.sent[0].data["item_ids"]) == 2

        service.evaluate_reorder_needs()
        assert len(notifier.sent) == 1

    def test_notification_failure_does_not_fail_run(
        self, session, clock, notifier, make_item, make_user, warehouse, ledger,
    ):
        boss = make_user("boss", Role.ADMIN.value, email="boss@example.com")
        notifier.fail = True
        service = ReorderService(
            session, clock=clock, notifier=notifier, assignment=FixedAssignment(boss.id),
        )
        ledger(make_item(), warehouse, 30)

        result = service.evaluate_reorder_needs()
        assert result.alerts_created == 1
        assert service.registry.list_alerts().unread_count == 1

    def test_notify_disabled(self, session, clock, notifier, make_item, make_user, warehouse, ledger):
        boss = make_user("boss", Role.ADMIN.value, email="boss@example.com")
        service = ReorderService(
            session, clock=clock, notifier=notifier,
            config=ReorderConfig(notify_assignee=False),
            assignment=FixedAssignment(boss.id),
        )
        ledger(make_item(), warehouse, 30)
        service.evaluate_reorder_needs()
        assert notifier.sent == []


def test_reorder_message_format():
    assert reorder_message("Gloves", 12, 40) == (
        "Item Gloves stock is 12, below reorder point of 40"
    )
