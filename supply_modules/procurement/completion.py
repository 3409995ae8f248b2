"""
Purchase order completion as a pure projection of receipts.

    credited(line)  = min(received, ordered)
    completion_pct  = 100 * sum(credited) / sum(ordered)     (0 if nothing ordered)

    nothing credited          -> Issued
    every line fully credited -> Completed
    otherwise                 -> In-Transit

Over-receipt on one line never makes up for a shortfall on another.
"""

from collections.abc import Iterable
from decimal import Decimal

from supply_kernel.db.types import round_percent
from supply_modules.procurement.models import (
    Completion,
    LineProgress,
    PurchaseOrderStatus,
)
from supply_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW

FULL_PERCENT = Decimal("100.00")


def compute_completion(lines: Iterable[LineProgress]) -> Completion:
    progress = list(lines)
    ordered = sum(line.ordered_qty for line in progress)
    credited = sum(line.credited_qty for line in progress)

    if ordered <= 0:
        return Completion(
            completion_pct=round_percent(Decimal(0)),
            status=PurchaseOrderStatus.ISSUED,
            ordered_total=0,
            credited_total=0,
        )

    if credited == 0:
        status = PurchaseOrderStatus.ISSUED
    elif credited >= ordered:
        status = PurchaseOrderStatus.COMPLETED
    else:
        status = PurchaseOrderStatus.IN_TRANSIT

    return Completion(
        completion_pct=round_percent(Decimal(100 * credited) / Decimal(ordered)),
        status=status,
        ordered_total=ordered,
        credited_total=credited,
    )


def advance_status(
    stored: PurchaseOrderStatus,
    derived: PurchaseOrderStatus,
) -> PurchaseOrderStatus:
    """
    Status to persist given the stored and freshly derived ones.

    Moves forward only along the purchase order workflow; a derived status
    that is lower than the stored one (lagging receipts) keeps the stored
    status.
    """
    stored = PurchaseOrderStatus(stored)
    derived = PurchaseOrderStatus(derived)
    if derived.rank <= stored.rank:
        return stored
    for transition in PURCHASE_ORDER_WORKFLOW.transitions:
        if transition.from_state == stored.value and transition.to_state == derived.value:
            return derived
    return stored
