"""
Tests for requisition lookups and the replenishment dashboard counts.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.exceptions import RequisitionNotFoundError
from supply_modules.alerts.models import AlertSeverity, AlertSubject, AlertType
from supply_modules.alerts.registry import AlertRegistry
from supply_modules.procurement.models import RequisitionStatus
from supply_modules.procurement.queries import MAX_PAGE_SIZE
from supply_modules.reorder.dashboard import ReorderDashboard


class TestGetRequisition:
    def test_enriched_lines_and_estimate(self, queries, pending_requisition, make_item):
        priced = make_item(sku="P-1", item_name="Priced", unit_price="2.50")
        unpriced = make_item(sku="U-1", unit_price=None)
        pr = pending_requisition((priced, 4), (unpriced, 3))

        found = queries.get_requisition(pr.pr_id)

        assert found.pr_number == pr.pr_number
        assert found.estimated_total == Decimal("10.00")
        first, second = found.lines
        assert (first.sku, first.item_name) == ("P-1", "Priced")
        assert first.estimated_amount == Decimal("10.00")
        assert second.estimated_unit_price is None
        assert second.estimated_amount is None

    def test_days_pending_only_while_pending(
        self, queries, workflow, pending_requisition, manager_actor, clock, make_item,
    ):
        pr = pending_requisition((make_item(), 1))
        clock.advance(days=4)
        assert queries.get_requisition(pr.pr_id).days_pending == 4

        workflow.approve_requisition(manager_actor, pr.pr_id)
        assert queries.get_requisition(pr.pr_id).days_pending is None

    def test_unknown(self, queries):
        with pytest.raises(RequisitionNotFoundError):
            queries.get_requisition(uuid4())


class TestListRequisitions:
    def test_newest_first_with_paging(self, queries, pending_requisition, clock, make_item):
        item = make_item()
        numbers = []
        for _ in range(5):
            numbers.append(pending_requisition((item, 1)).pr_number)
            clock.advance(60)

        page = queries.list_requisitions(page=1, limit=2)
        assert page.total == 5
        assert page.pages == 3
        assert [r.pr_number for r in page.requisitions] == [numbers[4], numbers[3]]

        last = queries.list_requisitions(page=3, limit=2)
        assert [r.pr_number for r in last.requisitions] == [numbers[0]]

    def test_filters(
        self, queries, workflow, pending_requisition, manager_actor, clerk_actor, clock, make_item,
    ):
        item = make_item()
        early = pending_requisition((item, 1))
        clock.advance(days=2)
        late = pending_requisition((item, 1))
        workflow.approve_requisition(manager_actor, late.pr_id)

        approved = queries.list_requisitions(status=RequisitionStatus.APPROVED)
        assert [r.pr_id for r in approved.requisitions] == [late.pr_id]

        by_date = queries.list_requisitions(date_to=date(2026, 3, 3))
        assert [r.pr_id for r in by_date.requisitions] == [early.pr_id]

        from_date = queries.list_requisitions(date_from=date(2026, 3, 3))
        assert [r.pr_id for r in from_date.requisitions] == [late.pr_id]

        mine = queries.list_requisitions(requested_by=clerk_actor.actor_id)
        assert mine.total == 2
        assert queries.list_requisitions(requested_by=uuid4()).total == 0

    def test_limit_is_capped(self, queries):
        page = queries.list_requisitions(page=0, limit=1_000)
        assert page.limit == MAX_PAGE_SIZE
        assert page.page == 1
        assert page.requisitions == ()


class TestDashboard:
    def test_stock_health_buckets(self, session, clock, make_item, warehouse, ledger):
        for balance in (0, -2, 10, 40, 80):
            ledger(make_item(reorder_point=50, safety_stock=20), warehouse, balance)
        make_item(reorder_point=50, safety_stock=20)  # no history

        health = ReorderDashboard(session, clock=clock).stock_health()

        assert health.total_items == 6
        assert health.out_of_stock == 3
        assert health.critical == 1
        assert health.low == 1
        assert health.healthy == 1

    def test_summary_counts(
        self, session, clock, workflow, converter, pending_requisition, approved_requisition,
        manager_actor, supplier, make_item,
    ):
        item = make_item()
        registry = AlertRegistry(session, clock=clock)
        registry.raise_alert(
            AlertSubject.item(item.id), AlertType.CRITICAL_STOCK, AlertSeverity.CRITICAL, "c",
        )
        registry.raise_alert(AlertSubject.item(item.id), AlertType.REORDER, AlertSeverity.MEDIUM, "r")
        session.commit()

        pending_requisition((item, 1))
        rejected = pending_requisition((item, 1))
        workflow.reject_requisition(manager_actor, rejected.pr_id, "Not needed this month")
        approved_requisition((item, 1))
        converted = approved_requisition((item, 1))
        converter.convert_to_purchase_order(
            manager_actor, converted.pr_id, supplier.id, date(2026, 3, 5),
        )

        clock.advance(days=5)
        summary = ReorderDashboard(session, clock=clock).summary()

        assert summary.unread_alerts == 2
        assert summary.critical_alerts == 1
        assert summary.pending_requisitions == 1
        assert summary.rejected_requisitions == 1
        assert summary.approved_awaiting_po == 1
        assert summary.active_purchase_orders == 1
        assert summary.overdue_purchase_orders == 1

    def test_empty_database(self, session, clock):
        summary = ReorderDashboard(session, clock=clock).summary()
        assert summary.stock_health.total_items == 0
        assert summary.unread_alerts == 0
        assert summary.overdue_purchase_orders == 0


def test_request_date_tracks_clock(pending_requisition, clock, make_item):
    clock.advance(days=1)
    assert pending_requisition((make_item(), 1)).request_date == date(2026, 3, 3)
