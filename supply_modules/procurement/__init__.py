"""
Procurement module: requisitions, purchase orders and their completion.
"""

from supply_modules.procurement.completion import advance_status, compute_completion
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.procurement.converter import ProcurementConverter, parse_delivery_date
from supply_modules.procurement.models import (
    Completion,
    LineProgress,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    PurchaseOrderStatusReport,
    Requisition,
    RequisitionAction,
    RequisitionLine,
    RequisitionLineInput,
    RequisitionPage,
    RequisitionStatus,
)
from supply_modules.procurement.queries import RequisitionQueries
from supply_modules.procurement.requisition import RequisitionWorkflow
from supply_modules.procurement.tracker import CompletionTracker

__all__ = [
    "Completion",
    "CompletionTracker",
    "LineProgress",
    "ProcurementConfig",
    "ProcurementConverter",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderLineStatus",
    "PurchaseOrderStatus",
    "PurchaseOrderStatusReport",
    "Requisition",
    "RequisitionAction",
    "RequisitionLine",
    "RequisitionLineInput",
    "RequisitionPage",
    "RequisitionQueries",
    "RequisitionStatus",
    "RequisitionWorkflow",
    "advance_status",
    "compute_completion",
    "parse_delivery_date",
]
