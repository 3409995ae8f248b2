"""
Reorder module: threshold evaluation over aggregated stock.
"""

from supply_modules.reorder.config import ReorderConfig
from supply_modules.reorder.dashboard import DashboardSummary, ReorderDashboard, StockHealth
from supply_modules.reorder.evaluator import (
    ReorderEvaluator,
    classify_stock,
    recommended_order_qty,
)
from supply_modules.reorder.models import (
    ReorderAssessment,
    ReorderClassification,
    ReorderEvaluationResult,
    ReorderLine,
)
from supply_modules.reorder.service import ReorderService

__all__ = [
    "DashboardSummary",
    "ReorderAssessment",
    "ReorderClassification",
    "ReorderConfig",
    "ReorderDashboard",
    "ReorderEvaluationResult",
    "ReorderEvaluator",
    "ReorderLine",
    "ReorderService",
    "StockHealth",
    "classify_stock",
    "recommended_order_qty",
]
