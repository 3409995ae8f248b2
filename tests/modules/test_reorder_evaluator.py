"""
Tests for the pure reorder arithmetic: recommended quantity and
classification thresholds, including property tests.
"""

from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from supply_kernel.selectors.catalog_selector import ItemInfo
from supply_modules.alerts.models import AlertSeverity, AlertType
from supply_modules.reorder.evaluator import (
    ReorderEvaluator,
    classify_stock,
    recommended_order_qty,
)
from supply_modules.reorder.models import ReorderClassification

stock = st.integers(min_value=-500, max_value=5_000)
threshold = st.integers(min_value=0, max_value=1_000)


class TestRecommendedOrderQty:
    @pytest.mark.parametrize(
        "current, rp, ss, expected",
        [
            (30, 50, 20, 50),    # 70 - 30 = 40, floor at reorder point
            (10, 50, 20, 60),    # 70 - 10
            (0, 50, 20, 70),
            (-5, 50, 20, 75),    # oversold ledger
            (200, 50, 20, 50),
            (0, 0, 0, 0),
        ],
    )
    def test_examples(self, current, rp, ss, expected):
        assert recommended_order_qty(current, rp, ss) == expected

    @given(current=stock, rp=threshold, ss=threshold)
    def test_never_below_reorder_point(self, current, rp, ss):
        assert recommended_order_qty(current, rp, ss) >= rp

    @given(current=stock, rp=threshold, ss=threshold)
    def test_restores_target_level(self, current, rp, ss):
        assert current + recommended_order_qty(current, rp, ss) >= rp + ss

    @given(current=stock, rp=threshold, ss=threshold, drop=st.integers(1, 100))
    def test_lower_stock_never_recommends_less(self, current, rp, ss, drop):
        assert recommended_order_qty(current - drop, rp, ss) >= recommended_order_qty(current, rp, ss)


class TestClassifyStock:
    def test_below_safety_stock_is_critical(self):
        result = classify_stock(19, reorder_point=50, safety_stock=20)
        assert result.classification == ReorderClassification.CRITICAL_STOCK
        assert result.severity == AlertSeverity.CRITICAL
        assert result.recommended_qty == 51

    def test_at_safety_stock_is_reorder(self):
        result = classify_stock(20, reorder_point=50, safety_stock=20)
        assert result.classification == ReorderClassification.REORDER
        assert result.severity == AlertSeverity.MEDIUM

    def test_at_reorder_point_is_reorder(self):
        result = classify_stock(50, reorder_point=50, safety_stock=20)
        assert result.classification == ReorderClassification.REORDER
        assert result.recommended_qty == 50

    def test_above_reorder_point_needs_nothing(self):
        assert classify_stock(51, reorder_point=50, safety_stock=20) is None

    def test_zero_thresholds_never_trigger_on_positive_stock(self):
        assert classify_stock(1, reorder_point=0, safety_stock=0) is None

    def test_classification_maps_to_alert_type(self):
        assert ReorderClassification.CRITICAL_STOCK.alert_type == AlertType.CRITICAL_STOCK
        assert ReorderClassification.REORDER.alert_type == AlertType.REORDER

    @given(current=stock, rp=threshold, ss=threshold)
    def test_classification_matches_thresholds(self, current, rp, ss):
        result = classify_stock(current, rp, ss)
        if current < ss:
            assert result.classification == ReorderClassification.CRITICAL_STOCK
        elif current <= rp:
            assert result.classification == ReorderClassification.REORDER
        else:
            assert result is None

    @given(current=stock, rp=threshold, ss=threshold)
    def test_recommendation_matches_formula(self, current, rp, ss):
        result = classify_stock(current, rp, ss)
        if result is not None:
            assert result.recommended_qty == max(rp, rp + ss - current)


class TestReorderEvaluator:
    def _item(self, rp=50, ss=20):
        return ItemInfo(
            item_id=uuid4(),
            sku="SKU-1",
            item_name="Widget",
            unit_price=None,
            reorder_point=rp,
            safety_stock=ss,
            min_stock=0,
            max_stock=None,
            is_active=True,
        )

    def test_assess_uses_item_thresholds(self):
        evaluator = ReorderEvaluator()
        assert evaluator.assess(self._item(), 30).classification == ReorderClassification.REORDER
        assert evaluator.assess(self._item(), 80) is None

    def test_recommended_for(self):
        assert ReorderEvaluator().recommended_for(self._item(), 30) == 50
