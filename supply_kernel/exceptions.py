"""
Typed exception hierarchy for the supply kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the replenishment pipeline (HTTP handlers, the batch runner,
operator scripts) must decide between "tell the user", "retry" and "page
someone" without parsing message strings.  Every error therefore:

  1. Has its own class (catch by type, not by message).
  2. Carries a class-level ``code`` (machine-readable, API-safe).
  3. Carries a class-level ``category`` that maps onto the response class
     (``validation`` / ``conflict`` / ``not_found`` -> 4xx, ``transient``
     -> 5xx and safe to retry).
  4. Stores its context as attributes, never only in the message.

Example:
    try:
        converter.convert_to_purchase_order(actor, pr_id, supplier_id, date)
    except RequisitionNotApprovedError as e:
        return {"error": e.code, "status": e.status}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SupplyKernelError (base)
    |
    +-- ValidationError
    |   +-- ItemNotFoundError
    |   +-- InvalidQuantityError
    |   +-- JustificationRequiredError
    |   +-- EmptyRequisitionError
    |   +-- RejectionReasonTooShortError
    |   +-- InvalidDeliveryDateError
    |   +-- InactiveSupplierError
    |   +-- PriceUnavailableError
    |
    +-- ConflictError
    |   +-- InvalidTransitionError
    |   +-- RequisitionNotApprovedError
    |   +-- DuplicatePurchaseOrderError
    |
    +-- NotFoundError
    |   +-- RequisitionNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- AuthorizationError
    |   +-- InsufficientRoleError
    |
    +-- TransientError
    |   +-- StorageUnavailableError
    |
    +-- BatchError
    |   +-- JobNotFoundError
    |   +-- JobAlreadyRunningError
    |   +-- JobIdempotencyError
    |   +-- TaskNotRegisteredError
    |
    +-- ConfigurationError

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ``ItemNotFoundError`` is a validation error, not a not-found error: it is
   raised while checking requisition lines, where an unknown item id is
   bad input rather than a missing addressed resource.

2. ``PriceUnavailableError`` (no negotiated price, no catalog price) is
   the "dependency missing" case.  It is validation-class and aborts the
   whole conversion.

3. Every message names the precondition that failed, e.g.
   "PR must be approved before creating PO".
"""

from __future__ import annotations

from collections.abc import Iterable


class SupplyKernelError(Exception):
    """
    Base exception for all supply kernel errors.

    Every subclass must define ``code``; categories define ``category``.
    """

    code: str = "SUPPLY_KERNEL_ERROR"
    category: str = "internal"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(SupplyKernelError):
    """Bad input shape. No state change."""

    code: str = "VALIDATION_ERROR"
    category: str = "validation"


class ItemNotFoundError(ValidationError):
    """A requisition line references an item that does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class InvalidQuantityError(ValidationError):
    """Requested quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, item_id: str, quantity: object):
        self.item_id = item_id
        self.quantity = quantity
        super().__init__(
            f"Requested quantity for item {item_id} must be a positive integer, "
            f"got {quantity!r}"
        )


class JustificationRequiredError(ValidationError):
    """Requested quantity exceeds the recommendation and no justification was given."""

    code: str = "JUSTIFICATION_REQUIRED"

    def __init__(self, item_id: str, requested_qty: int, recommended_qty: int):
        self.item_id = item_id
        self.requested_qty = requested_qty
        self.recommended_qty = recommended_qty
        super().__init__(
            f"Justification required for item {item_id}: requested "
            f"{requested_qty} exceeds recommended {recommended_qty}"
        )


class EmptyRequisitionError(ValidationError):
    """A requisition must have at least one line."""

    code: str = "EMPTY_REQUISITION"

    def __init__(self) -> None:
        super().__init__("Requisition must contain at least one line")


class RejectionReasonTooShortError(ValidationError):
    code: str = "REJECTION_REASON_TOO_SHORT"

    def __init__(self, min_length: int, actual_length: int):
        self.min_length = min_length
        self.actual_length = actual_length
        super().__init__(
            f"Rejection reason must be at least {min_length} characters "
            f"(got {actual_length})"
        )


class InvalidDeliveryDateError(ValidationError):
    """Expected delivery date is unparseable or not strictly in the future."""

    code: str = "INVALID_DELIVERY_DATE"

    def __init__(self, value: object, reason: str):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid expected delivery date {value!r}: {reason}")


class InactiveSupplierError(ValidationError):
    code: str = "SUPPLIER_INACTIVE"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier {supplier_id} is not active")


class PriceUnavailableError(ValidationError):
    """Neither a negotiated supplier price nor a catalog price exists."""

    code: str = "PRICE_UNAVAILABLE"

    def __init__(self, item_id: str, supplier_id: str):
        self.item_id = item_id
        self.supplier_id = supplier_id
        super().__init__(
            f"No price available for item {item_id} from supplier {supplier_id} "
            f"and no catalog unit price"
        )


# =============================================================================
# Conflict
# =============================================================================


class ConflictError(SupplyKernelError):
    """Valid input, invalid current state. No state change."""

    code: str = "CONFLICT"
    category: str = "conflict"


class InvalidTransitionError(ConflictError):
    """Requested transition is not allowed from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity: str, entity_id: str, from_status: str, action: str):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity} {entity_id}: status is {from_status}, "
            f"only Pending may transition"
        )


class RequisitionNotApprovedError(ConflictError):
    code: str = "REQUISITION_NOT_APPROVED"

    def __init__(self, pr_id: str, status: str):
        self.pr_id = pr_id
        self.status = status
        super().__init__("PR must be approved before creating PO")


class DuplicatePurchaseOrderError(ConflictError):
    """A purchase order already exists for the requisition."""

    code: str = "DUPLICATE_PURCHASE_ORDER"

    def __init__(self, pr_id: str, po_number: str | None = None):
        self.pr_id = pr_id
        self.po_number = po_number
        suffix = f" ({po_number})" if po_number else ""
        super().__init__(f"PO already exists for PR {pr_id}{suffix}")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(SupplyKernelError):
    code: str = "NOT_FOUND"
    category: str = "not_found"


class RequisitionNotFoundError(NotFoundError):
    code: str = "REQUISITION_NOT_FOUND"

    def __init__(self, pr_id: str):
        self.pr_id = pr_id
        super().__init__(f"Purchase requisition not found: {pr_id}")


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, po_id: str):
        self.po_id = po_id
        super().__init__(f"Purchase order not found: {po_id}")


class SupplierNotFoundError(NotFoundError):
    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


class AlertNotFoundError(NotFoundError):
    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


# =============================================================================
# Authorization
# =============================================================================


class AuthorizationError(SupplyKernelError):
    code: str = "AUTHORIZATION_ERROR"
    category: str = "authorization"


class InsufficientRoleError(AuthorizationError):
    """Caller lacks every role that permits the action."""

    code: str = "INSUFFICIENT_ROLE"

    def __init__(self, action: str, required_roles: Iterable[str], actual_roles: Iterable[str]):
        self.action = action
        self.required_roles = tuple(sorted(required_roles))
        self.actual_roles = tuple(sorted(actual_roles))
        super().__init__(
            f"Action '{action}' requires one of roles {list(self.required_roles)}"
        )


# =============================================================================
# Transient
# =============================================================================


class TransientError(SupplyKernelError):
    """Infrastructure failure; nothing partial was committed, safe to retry."""

    code: str = "TRANSIENT_ERROR"
    category: str = "transient"


class StorageUnavailableError(TransientError):
    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage unavailable during {operation}: {detail}")


# =============================================================================
# Batch
# =============================================================================


class BatchError(SupplyKernelError):
    code: str = "BATCH_ERROR"
    category: str = "batch"


class JobNotFoundError(BatchError):
    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job run not found: {job_id}")


class JobAlreadyRunningError(BatchError):
    code: str = "JOB_ALREADY_RUNNING"

    def __init__(self, job_name: str, job_id: str):
        self.job_name = job_name
        self.job_id = job_id
        super().__init__(f"Job '{job_name}' is already running or finished ({job_id})")


class JobIdempotencyError(BatchError):
    code: str = "JOB_IDEMPOTENCY_CONFLICT"

    def __init__(self, idempotency_key: str, existing_job_id: str):
        self.idempotency_key = idempotency_key
        self.existing_job_id = existing_job_id
        super().__init__(
            f"Idempotency key '{idempotency_key}' already used by job {existing_job_id}"
        )


class TaskNotRegisteredError(BatchError):
    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: Iterable[str] = ()):
        self.task_type = task_type
        self.available = tuple(available)
        super().__init__(
            f"No task registered for type '{task_type}'. Available: {list(self.available)}"
        )


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(SupplyKernelError):
    code: str = "CONFIGURATION_ERROR"
    category: str = "configuration"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting '{setting}': {reason}")
