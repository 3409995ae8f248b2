"""
Tests for ProcurementConverter: precondition order, price resolution
(negotiated first, catalog fallback), line merging, totals and the
one-PO-per-requisition rule.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.exceptions import (
    DuplicatePurchaseOrderError,
    InactiveSupplierError,
    InsufficientRoleError,
    InvalidDeliveryDateError,
    PriceUnavailableError,
    RequisitionNotApprovedError,
    RequisitionNotFoundError,
    SupplierNotFoundError,
)
from supply_kernel.models import SupplierStatus
from supply_modules.procurement.converter import parse_delivery_date
from supply_modules.procurement.models import PurchaseOrderStatus
from supply_modules.procurement.orm import PurchaseOrderModel

NEXT_WEEK = date(2026, 3, 9)


class TestParseDeliveryDate:
    def test_accepted_forms(self):
        assert parse_delivery_date(date(2026, 4, 1)) == date(2026, 4, 1)
        assert parse_delivery_date(datetime(2026, 4, 1, 17, 30, tzinfo=timezone.utc)) == date(2026, 4, 1)
        assert parse_delivery_date(" 2026-04-01 ") == date(2026, 4, 1)

    @pytest.mark.parametrize("value", ["2026-13-01", "next tuesday", "", 20260401, None])
    def test_rejected_forms(self, value):
        with pytest.raises(InvalidDeliveryDateError):
            parse_delivery_date(value)


class TestConversion:
    def test_catalog_price_fallback(
        self, converter, approved_requisition, manager_actor, supplier, notifier, make_item,
    ):
        item = make_item(unit_price="12.50")
        pr = approved_requisition((item, 12))

        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        assert po.po_number == "PO202600001"
        assert po.status == PurchaseOrderStatus.ISSUED
        assert po.pr_id == pr.pr_id
        assert po.supplier_id == supplier.id
        assert po.order_date == date(2026, 3, 2)
        assert po.expected_delivery_date == NEXT_WEEK
        assert po.total_amount == Decimal("150.00")
        line = po.lines[0]
        assert line.ordered_qty == 12
        assert line.unit_price == Decimal("12.50")
        assert line.total_price == Decimal("150.00")
        assert line.price_source == "catalog"
        assert notifier.kinds()[-1] == "po_created"
        assert notifier.sent[-1].recipient == "orders@supplier.example"

    def test_negotiated_price_wins(
        self, converter, approved_requisition, manager_actor, supplier, make_item, make_price,
    ):
        item = make_item(unit_price="12.50")
        make_price(supplier, item, "11.00", effective_from=date(2026, 1, 1))
        pr = approved_requisition((item, 10))

        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        assert po.lines[0].unit_price == Decimal("11.00")
        assert po.lines[0].price_source == "negotiated"
        assert po.total_amount == Decimal("110.00")

    def test_preferred_then_latest_price(
        self, converter, approved_requisition, manager_actor, supplier, make_item, make_price,
    ):
        item = make_item()
        make_price(supplier, item, "9.00", effective_from=date(2025, 1, 1), is_preferred=True)
        make_price(supplier, item, "8.00", effective_from=date(2026, 1, 1))
        make_price(supplier, item, "7.00", effective_from=date(2026, 6, 1))  # not yet effective
        pr = approved_requisition((item, 1))

        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)
        assert po.lines[0].unit_price == Decimal("9.00")

    def test_other_suppliers_prices_ignored(
        self, converter, approved_requisition, manager_actor, supplier, make_supplier,
        make_item, make_price,
    ):
        item = make_item(unit_price="5.00")
        make_price(make_supplier(), item, "1.00")
        pr = approved_requisition((item, 2))

        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)
        assert po.lines[0].price_source == "catalog"

    def test_repeated_items_merged(
        self, converter, approved_requisition, manager_actor, supplier, make_item,
    ):
        a, b = make_item(unit_price="2.00"), make_item(unit_price="3.333")
        pr = approved_requisition((a, 4), (b, 3), (a, 6))

        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        assert [(ln.item_id, ln.ordered_qty) for ln in po.lines] == [(a.id, 10), (b.id, 3)]
        assert po.lines[1].total_price == Decimal("10.00")
        assert po.total_amount == Decimal("30.00")

    def test_accepts_iso_string_date(
        self, converter, approved_requisition, manager_actor, supplier, make_item,
    ):
        pr = approved_requisition((make_item(), 1))
        po = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, "2026-03-03")
        assert po.expected_delivery_date == date(2026, 3, 3)


class TestPreconditions:
    def test_unknown_requisition(self, converter, manager_actor, supplier):
        with pytest.raises(RequisitionNotFoundError):
            converter.convert_to_purchase_order(manager_actor, uuid4(), supplier.id, NEXT_WEEK)

    def test_pending_requisition(
        self, converter, pending_requisition, manager_actor, supplier, make_item,
    ):
        pr = pending_requisition((make_item(), 1))
        with pytest.raises(RequisitionNotApprovedError) as exc_info:
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)
        assert str(exc_info.value) == "PR must be approved before creating PO"

    def test_second_conversion_is_duplicate(
        self, converter, approved_requisition, manager_actor, supplier, session, make_item,
    ):
        pr = approved_requisition((make_item(), 1))
        first = converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        with pytest.raises(DuplicatePurchaseOrderError) as exc_info:
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)
        assert exc_info.value.po_number == first.po_number
        assert session.query(PurchaseOrderModel).count() == 1

    def test_unknown_supplier(self, converter, approved_requisition, manager_actor, make_item):
        pr = approved_requisition((make_item(), 1))
        with pytest.raises(SupplierNotFoundError):
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, uuid4(), NEXT_WEEK)

    @pytest.mark.parametrize(
        "status, is_active",
        [(SupplierStatus.ACTIVE, False), (SupplierStatus.ON_HOLD, True), (SupplierStatus.BLOCKED, True)],
    )
    def test_supplier_that_cannot_transact(
        self, converter, approved_requisition, manager_actor, make_supplier, make_item,
        status, is_active,
    ):
        pr = approved_requisition((make_item(), 1))
        dormant = make_supplier(status=status, is_active=is_active)
        with pytest.raises(InactiveSupplierError):
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, dormant.id, NEXT_WEEK)

    @pytest.mark.parametrize("when", [date(2026, 3, 2), date(2026, 3, 1), "garbage"])
    def test_delivery_date_must_be_after_today(
        self, converter, approved_requisition, manager_actor, supplier, make_item, when,
    ):
        pr = approved_requisition((make_item(), 1))
        with pytest.raises(InvalidDeliveryDateError):
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, when)

    def test_not_approved_reported_before_bad_supplier(
        self, converter, pending_requisition, manager_actor, make_item,
    ):
        pr = pending_requisition((make_item(), 1))
        with pytest.raises(RequisitionNotApprovedError):
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, uuid4(), "garbage")

    def test_supplier_reported_before_bad_date(
        self, converter, approved_requisition, manager_actor, make_item,
    ):
        pr = approved_requisition((make_item(), 1))
        with pytest.raises(SupplierNotFoundError):
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, uuid4(), "garbage")

    def test_purchaser_cannot_convert(
        self, converter, approved_requisition, clerk_actor, supplier, make_item,
    ):
        pr = approved_requisition((make_item(), 1))
        with pytest.raises(InsufficientRoleError):
            converter.convert_to_purchase_order(clerk_actor, pr.pr_id, supplier.id, NEXT_WEEK)


class TestPriceUnavailable:
    def test_whole_conversion_aborted(
        self, converter, approved_requisition, manager_actor, supplier, session, make_item,
    ):
        priced, unpriced = make_item(unit_price="4.00"), make_item(unit_price=None)
        pr = approved_requisition((priced, 1), (unpriced, 1))

        with pytest.raises(PriceUnavailableError) as exc_info:
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        assert exc_info.value.item_id == str(unpriced.id)
        assert session.query(PurchaseOrderModel).count() == 0

    def test_number_not_consumed_by_failed_conversion(
        self, converter, approved_requisition, manager_actor, supplier, make_item,
    ):
        failing = approved_requisition((make_item(unit_price=None), 1))
        with pytest.raises(PriceUnavailableError):
            converter.convert_to_purchase_order(manager_actor, failing.pr_id, supplier.id, NEXT_WEEK)

        ok = approved_requisition((make_item(unit_price="1.00"), 1))
        po = converter.convert_to_purchase_order(manager_actor, ok.pr_id, supplier.id, NEXT_WEEK)
        assert po.po_number == "PO202600001"

    def test_zero_catalog_price_counts_as_missing(
        self, converter, approved_requisition, manager_actor, supplier, session, make_item,
    ):
        free = make_item(unit_price="0")
        pr = approved_requisition((free, 5))

        with pytest.raises(PriceUnavailableError) as exc_info:
            converter.convert_to_purchase_order(manager_actor, pr.pr_id, supplier.id, NEXT_WEEK)

        assert exc_info.value.item_id == str(free.id)
        assert session.query(PurchaseOrderModel).count() == 0
