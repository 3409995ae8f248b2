"""
Shared fixtures for module tests.

Provides the procurement services wired to the test clock and recording
notifier, plus helpers that walk a requisition to the state a test needs.

DESIGN RULE: Every fixture is opt-in.  No autouse.  Each test explicitly
declares which services and catalog rows it depends on in its function
signature.
"""

from datetime import date

import pytest

from supply_modules.procurement.converter import ProcurementConverter
from supply_modules.procurement.queries import RequisitionQueries
from supply_modules.procurement.requisition import RequisitionWorkflow
from supply_modules.procurement.tracker import CompletionTracker

# One week after the test clock's date
DELIVERY_DATE = date(2026, 3, 9)


@pytest.fixture
def workflow(session, clock, notifier) -> RequisitionWorkflow:
    return RequisitionWorkflow(session, clock=clock, notifier=notifier)


@pytest.fixture
def converter(session, clock, notifier) -> ProcurementConverter:
    return ProcurementConverter(session, clock=clock, notifier=notifier)


@pytest.fixture
def tracker(session, clock) -> CompletionTracker:
    return CompletionTracker(session, clock=clock)


@pytest.fixture
def queries(session, clock) -> RequisitionQueries:
    return RequisitionQueries(session, clock=clock)


@pytest.fixture
def pending_requisition(workflow, clerk_actor):
    """Create a Pending requisition for ``[(item, qty), ...]``, justified."""

    def _create(*lines, remarks=None):
        return workflow.create_requisition(
            clerk_actor,
            [
                {"item_id": item.id, "requested_qty": qty, "justification": "Weekly restock"}
                for item, qty in lines
            ],
            remarks=remarks,
        )

    return _create


@pytest.fixture
def approved_requisition(workflow, pending_requisition, manager_actor):
    """Create and approve a requisition for ``[(item, qty), ...]``."""

    def _create(*lines):
        pr = pending_requisition(*lines)
        return workflow.approve_requisition(manager_actor, pr.pr_id)

    return _create


@pytest.fixture
def issued_order(approved_requisition, converter, manager_actor, supplier):
    """Approve a requisition for ``[(item, qty), ...]`` and convert it to a PO."""

    def _create(*lines):
        pr = approved_requisition(*lines)
        return converter.convert_to_purchase_order(
            manager_actor, pr.pr_id, supplier.id, DELIVERY_DATE,
        )

    return _create
