"""
ProcurementConverter -- turn an approved requisition into a purchase order.

Responsibility
--------------
Checks the conversion preconditions, resolves one unit price per item,
allocates the PO number and writes header plus lines in one transaction.

Architecture position
---------------------
**Modules layer**.  Owns its transaction; the "PO created" notification
goes to the supplier after commit.

Invariants enforced
-------------------
* Preconditions are checked in a fixed order and the first failure wins:
  requisition exists, is Approved, has no PO yet, supplier exists and can
  transact, delivery date strictly after today.
* One PO line per distinct item of the requisition; repeated items are
  merged by summing their quantities.
* A line's price is the supplier's negotiated price, else the item's
  catalog price.  An item with neither aborts the whole conversion; a
  catalog price of zero counts as no price.
* ``total_amount`` is the sum of the rounded line totals and is written
  after the last line.
* At most one PO per requisition, backed by the unique ``pr_id`` column.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.db.types import round_money
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import ActorContext, require_role
from supply_kernel.exceptions import (
    DuplicatePurchaseOrderError,
    InactiveSupplierError,
    InvalidDeliveryDateError,
    ItemNotFoundError,
    PriceUnavailableError,
    RequisitionNotApprovedError,
    RequisitionNotFoundError,
    SupplierNotFoundError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector, SupplierInfo
from supply_kernel.services.notification import (
    Notification,
    NotificationSender,
    send_best_effort,
)
from supply_kernel.services.sequence_service import DocumentNumberService
from supply_modules._transaction import owned_transaction
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.procurement.models import (
    PurchaseOrder,
    PurchaseOrderStatus,
    RequisitionStatus,
)
from supply_modules.procurement.orm import (
    PurchaseOrderLineModel,
    PurchaseOrderModel,
    PurchaseRequisitionModel,
)

logger = get_logger("modules.procurement.converter")

PRICE_NEGOTIATED = "negotiated"
PRICE_CATALOG = "catalog"


def parse_delivery_date(value: date | datetime | str) -> date:
    """
    Accept a date, a datetime (date part) or an ISO ``YYYY-MM-DD`` string.

    Raises:
        InvalidDeliveryDateError: If the value is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDeliveryDateError(value, "not a valid ISO date") from None
    raise InvalidDeliveryDateError(value, "not a valid ISO date")


class ProcurementConverter:
    """
    Approved requisition -> purchase order.

    Guarantees
    ----------
    * Either the header, every line and the total commit, or nothing does.
    * The PO is created with status Issued.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ProcurementConfig | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ProcurementConfig()
        self._notifier = notifier
        self._catalog = CatalogSelector(session)
        self._numbers = DocumentNumberService(session)

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _approved_requisition(self, pr_id: UUID) -> PurchaseRequisitionModel:
        model = self._session.execute(
            select(PurchaseRequisitionModel)
            .where(PurchaseRequisitionModel.id == pr_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RequisitionNotFoundError(str(pr_id))
        if RequisitionStatus(model.status) != RequisitionStatus.APPROVED:
            raise RequisitionNotApprovedError(str(pr_id), model.status)
        return model

    def _ensure_no_purchase_order(self, pr_id: UUID) -> None:
        existing = self._session.execute(
            select(PurchaseOrderModel.po_number).where(PurchaseOrderModel.pr_id == pr_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicatePurchaseOrderError(str(pr_id), existing)

    def _active_supplier(self, supplier_id: UUID) -> SupplierInfo:
        supplier = self._catalog.get_supplier(supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        if not supplier.can_transact:
            raise InactiveSupplierError(str(supplier_id))
        return supplier

    def _future_date(self, value: date | datetime | str, today: date) -> date:
        delivery = parse_delivery_date(value)
        if delivery <= today:
            raise InvalidDeliveryDateError(value, f"must be after {today.isoformat()}")
        return delivery

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def resolve_unit_price(
        self,
        supplier_id: UUID,
        item_id: UUID,
        on: date,
    ) -> tuple[Decimal, str]:
        """
        Unit price and its source for one item.

        Raises:
            ItemNotFoundError: If the item no longer exists.
            PriceUnavailableError: If neither price exists.
        """
        negotiated = self._catalog.negotiated_price(supplier_id, item_id, on)
        if negotiated is not None:
            return negotiated, PRICE_NEGOTIATED
        item = self._catalog.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        if item.unit_price is None or item.unit_price <= 0:
            raise PriceUnavailableError(str(item_id), str(supplier_id))
        return item.unit_price, PRICE_CATALOG

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def convert_to_purchase_order(
        self,
        actor: ActorContext,
        pr_id: UUID,
        supplier_id: UUID,
        expected_delivery_date: date | datetime | str,
    ) -> PurchaseOrder:
        require_role(actor, "convert_requisition", self._config.approver_roles)

        today = self._clock.today()
        now = self._clock.now()
        with owned_transaction(self._session, "convert_to_purchase_order"):
            requisition = self._approved_requisition(pr_id)
            self._ensure_no_purchase_order(pr_id)
            supplier = self._active_supplier(supplier_id)
            delivery = self._future_date(expected_delivery_date, today)

            po_number = self._numbers.next_number(self._config.po_prefix, today.year)
            order = PurchaseOrderModel(
                po_number=po_number,
                pr_id=requisition.id,
                supplier_id=supplier.supplier_id,
                status=PurchaseOrderStatus.ISSUED.value,
                order_date=today,
                expected_delivery_date=delivery,
                total_amount=Decimal("0"),
                created_by_id=actor.actor_id,
                created_at=now,
                updated_at=now,
            )
            self._session.add(order)
            try:
                self._session.flush()
            except IntegrityError as exc:
                # A concurrent conversion of the same requisition committed first.
                raise DuplicatePurchaseOrderError(str(pr_id)) from exc

            quantities: dict[UUID, int] = {}
            for line in requisition.lines:
                quantities[line.item_id] = quantities.get(line.item_id, 0) + line.requested_qty

            total = Decimal("0")
            for number, (item_id, qty) in enumerate(quantities.items(), start=1):
                unit_price, source = self.resolve_unit_price(supplier.supplier_id, item_id, today)
                line_total = round_money(unit_price * qty)
                order.lines.append(
                    PurchaseOrderLineModel(
                        line_number=number,
                        item_id=item_id,
                        ordered_qty=qty,
                        unit_price=unit_price,
                        total_price=line_total,
                        price_source=source,
                        created_by_id=actor.actor_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
                total += line_total

            order.total_amount = round_money(total)
            self._session.flush()
            purchase_order = order.to_dto()

        with LogContext.bind(document_number=po_number, actor_id=str(actor.actor_id)):
            logger.info(
                "purchase_order_created",
                extra={
                    "po_id": str(purchase_order.po_id),
                    "pr_id": str(pr_id),
                    "supplier_id": str(supplier_id),
                    "line_count": len(purchase_order.lines),
                    "total_amount": purchase_order.total_amount,
                },
            )

        send_best_effort(
            self._notifier,
            Notification(
                kind="po_created",
                recipient=supplier.email or "",
                subject=f"Purchase order {po_number}",
                body=(
                    f"Purchase order {po_number} for {purchase_order.total_amount} "
                    f"is due for delivery on {delivery.isoformat()}."
                ),
                data={
                    "po_id": str(purchase_order.po_id),
                    "po_number": po_number,
                    "supplier_id": str(supplier_id),
                },
            ),
        )
        return purchase_order
