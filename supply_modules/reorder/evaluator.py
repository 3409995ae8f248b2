"""
ReorderEvaluator -- pure threshold arithmetic.

Compares an item's aggregated stock with its reorder point and safety
stock.  No I/O: the same inputs always give the same answer.

    recommended = max(reorder_point, (reorder_point + safety_stock) - current)

    current <  safety_stock   -> Critical Stock / Critical
    current <= reorder_point  -> Reorder / Medium
    otherwise                 -> no action
"""

from supply_kernel.selectors.catalog_selector import ItemInfo
from supply_modules.alerts.models import AlertSeverity
from supply_modules.reorder.models import ReorderAssessment, ReorderClassification


def recommended_order_qty(current_stock: int, reorder_point: int, safety_stock: int) -> int:
    """Quantity that restores stock to reorder point + safety stock, never below reorder_point."""
    return max(reorder_point, (reorder_point + safety_stock) - current_stock)


def classify_stock(
    current_stock: int,
    reorder_point: int,
    safety_stock: int,
) -> ReorderAssessment | None:
    if current_stock < safety_stock:
        classification = ReorderClassification.CRITICAL_STOCK
        severity = AlertSeverity.CRITICAL
    elif current_stock <= reorder_point:
        classification = ReorderClassification.REORDER
        severity = AlertSeverity.MEDIUM
    else:
        return None
    return ReorderAssessment(
        classification=classification,
        severity=severity,
        recommended_qty=recommended_order_qty(current_stock, reorder_point, safety_stock),
    )


class ReorderEvaluator:
    """Item-level convenience over the pure functions."""

    def assess(self, item: ItemInfo, current_stock: int) -> ReorderAssessment | None:
        return classify_stock(current_stock, item.reorder_point, item.safety_stock)

    def recommended_for(self, item: ItemInfo, current_stock: int) -> int:
        return recommended_order_qty(current_stock, item.reorder_point, item.safety_stock)
