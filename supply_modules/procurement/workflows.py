"""
Procurement Workflows.

State machines for requisition approval and purchase order fulfillment.
Transitions are looked up by (status, action); anything not listed is
refused, so there is no string comparison of statuses in the services.
"""

from __future__ import annotations

from dataclasses import dataclass

from supply_modules.procurement.models import (
    PurchaseOrderStatus,
    RequisitionAction,
    RequisitionStatus,
)


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def transition_for(self, state: str, action: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == state and transition.action == action:
                return transition
        return None

    def terminal_states(self) -> frozenset[str]:
        sources = {t.from_state for t in self.transitions}
        return frozenset(s for s in self.states if s not in sources)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ELEVATED_ROLE = Guard(
    name="elevated_role",
    description="Caller holds an approver role (Manager or Admin)",
)

REASON_LONG_ENOUGH = Guard(
    name="reason_long_enough",
    description="Rejection reason meets the minimum length",
)

RECEIPTS_STARTED = Guard(
    name="receipts_started",
    description="Some ordered quantity has been received",
)

ALL_LINES_RECEIVED = Guard(
    name="all_lines_received",
    description="Every PO line fully received",
)


# -----------------------------------------------------------------------------
# Requisition Workflow
# -----------------------------------------------------------------------------

REQUISITION_WORKFLOW = Workflow(
    name="requisition",
    description="Purchase requisition approval",
    initial_state=RequisitionStatus.PENDING.value,
    states=tuple(s.value for s in RequisitionStatus),
    transitions=(
        Transition(
            RequisitionStatus.PENDING.value,
            RequisitionStatus.APPROVED.value,
            action=RequisitionAction.APPROVE.value,
            guard=ELEVATED_ROLE,
        ),
        Transition(
            RequisitionStatus.PENDING.value,
            RequisitionStatus.REJECTED.value,
            action=RequisitionAction.REJECT.value,
            guard=REASON_LONG_ENOUGH,
        ),
    ),
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order fulfillment driven by goods receipts",
    initial_state=PurchaseOrderStatus.ISSUED.value,
    states=tuple(s.value for s in PurchaseOrderStatus),
    transitions=(
        Transition(
            PurchaseOrderStatus.ISSUED.value,
            PurchaseOrderStatus.IN_TRANSIT.value,
            action="receive_partial",
            guard=RECEIPTS_STARTED,
        ),
        Transition(
            PurchaseOrderStatus.ISSUED.value,
            PurchaseOrderStatus.COMPLETED.value,
            action="receive_all",
            guard=ALL_LINES_RECEIVED,
        ),
        Transition(
            PurchaseOrderStatus.IN_TRANSIT.value,
            PurchaseOrderStatus.COMPLETED.value,
            action="receive_all",
            guard=ALL_LINES_RECEIVED,
        ),
    ),
)


def requisition_transition(
    status: RequisitionStatus,
    action: RequisitionAction,
) -> RequisitionStatus | None:
    """Target status of ``action`` from ``status``, or None when not allowed."""
    transition = REQUISITION_WORKFLOW.transition_for(
        RequisitionStatus(status).value, RequisitionAction(action).value,
    )
    return RequisitionStatus(transition.to_state) if transition else None
