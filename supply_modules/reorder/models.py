"""
Reorder domain models.

Frozen DTOs returned by the evaluator, the reorder service and the
dashboard.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from supply_modules.alerts.models import AlertSeverity, AlertType


class ReorderClassification(str, Enum):
    """Why an item needs replenishment. Values double as alert types."""

    CRITICAL_STOCK = "Critical Stock"
    REORDER = "Reorder"

    @property
    def alert_type(self) -> AlertType:
        return AlertType(self.value)


@dataclass(frozen=True)
class ReorderAssessment:
    """Outcome of comparing one item's stock with its thresholds."""

    classification: ReorderClassification
    severity: AlertSeverity
    recommended_qty: int


@dataclass(frozen=True)
class ReorderLine:
    """One item that needs replenishment, as reported by an evaluation run."""

    item_id: UUID
    sku: str
    item_name: str
    current_stock: int
    reorder_point: int
    safety_stock: int
    recommended_order_qty: int
    status: ReorderClassification
    urgency: AlertSeverity
    warehouse_id: UUID | None = None
    alert_id: UUID | None = None
    alert_created: bool = False


@dataclass(frozen=True)
class ReorderEvaluationResult:
    items_needing_reorder: int
    critical_count: int
    alerts_created: int
    items: tuple[ReorderLine, ...] = ()
    alerts_resolved: int = 0

