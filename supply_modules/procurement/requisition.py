"""
RequisitionWorkflow -- purchase requisition creation, approval and rejection.

Responsibility
--------------
Validates requested lines against the catalog and the current reorder
recommendation, allocates the PR number and drives the Pending ->
Approved / Rejected state machine.

Architecture position
---------------------
**Modules layer**.  Every public method owns its transaction through
``owned_transaction``; notifications are sent after commit.

Invariants enforced
-------------------
* A requisition has at least one line and every ``requested_qty`` is a
  positive integer.
* A line asking for more than the recommended quantity carries a
  justification.
* Creation is all-or-nothing: header, lines, PR number and alert linkage
  commit together or not at all.  An ``alert_id`` that matches no alert
  is logged and left unlinked; it never blocks creation.
* Only Pending requisitions transition, and only once.  The row is locked
  before the status check so two approvers cannot both succeed.

Failure modes
-------------
* EmptyRequisitionError, InvalidQuantityError, ItemNotFoundError,
  JustificationRequiredError -- creation refused, nothing written.
* InsufficientRoleError -- approve/reject by a non-elevated caller.
* RequisitionNotFoundError, InvalidTransitionError -- approve/reject of an
  unknown or already decided requisition.
* RejectionReasonTooShortError -- reason below the configured minimum.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import ActorContext, require_role
from supply_kernel.exceptions import (
    AlertNotFoundError,
    EmptyRequisitionError,
    InvalidQuantityError,
    InvalidTransitionError,
    ItemNotFoundError,
    JustificationRequiredError,
    RejectionReasonTooShortError,
    RequisitionNotFoundError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.selectors.catalog_selector import CatalogSelector
from supply_kernel.selectors.stock_selector import StockAggregator
from supply_kernel.selectors.user_selector import UserSelector
from supply_kernel.services.notification import (
    Notification,
    NotificationSender,
    send_best_effort,
)
from supply_kernel.services.sequence_service import DocumentNumberService
from supply_modules._transaction import owned_transaction
from supply_modules.alerts.registry import AlertRegistry
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.procurement.models import (
    Requisition,
    RequisitionAction,
    RequisitionLineInput,
    RequisitionStatus,
)
from supply_modules.procurement.orm import PurchaseRequisitionModel, RequisitionLineModel
from supply_modules.procurement.workflows import requisition_transition
from supply_modules.reorder.evaluator import ReorderEvaluator

logger = get_logger("modules.procurement.requisition")


def _coerce_line(raw: RequisitionLineInput | Mapping) -> RequisitionLineInput:
    if isinstance(raw, RequisitionLineInput):
        return raw
    return RequisitionLineInput(
        item_id=raw["item_id"],
        requested_qty=raw["requested_qty"],
        justification=raw.get("justification"),
    )


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class RequisitionWorkflow:
    """
    Purchase requisition lifecycle.

    Guarantees
    ----------
    * Recommendations come from the same evaluator the reorder check uses,
      computed on a fresh stock snapshot at creation time.
    * Lines that needed no justification and were given none store the
      configured default justification.
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
        self._aggregator = StockAggregator(session)
        self._users = UserSelector(session)
        self._evaluator = ReorderEvaluator()
        self._numbers = DocumentNumberService(session)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_requisition(
        self,
        actor: ActorContext,
        lines: Iterable[RequisitionLineInput | Mapping],
        remarks: str | None = None,
        alert_id: UUID | None = None,
    ) -> Requisition:
        requested = [_coerce_line(raw) for raw in lines]
        if not requested:
            raise EmptyRequisitionError()

        for line in requested:
            if not _is_positive_int(line.requested_qty):
                raise InvalidQuantityError(str(line.item_id), line.requested_qty)

        items = self._catalog.get_items(line.item_id for line in requested)
        for line in requested:
            if line.item_id not in items:
                raise ItemNotFoundError(str(line.item_id))

        snapshot = self._aggregator.snapshot(item_ids=list(items))
        validated: list[tuple[RequisitionLineInput, int, str]] = []
        for line in requested:
            recommended = self._evaluator.recommended_for(
                items[line.item_id], snapshot.total_for(line.item_id),
            )
            justification = (line.justification or "").strip()
            if line.requested_qty > recommended and not justification:
                raise JustificationRequiredError(
                    str(line.item_id), line.requested_qty, recommended,
                )
            validated.append(
                (line, recommended, justification or self._config.default_justification)
            )

        now = self._clock.now()
        with owned_transaction(self._session, "create_requisition"):
            if alert_id is not None:
                alert_id = self._mark_source_alert_read(alert_id, actor)
            pr_number = self._numbers.next_number(self._config.pr_prefix, now.year)
            model = PurchaseRequisitionModel(
                pr_number=pr_number,
                status=RequisitionStatus.PENDING.value,
                requested_by=actor.actor_id,
                request_date=now.date(),
                remarks=remarks,
                alert_id=alert_id,
                created_by_id=actor.actor_id,
                created_at=now,
                updated_at=now,
            )
            for number, (line, recommended, justification) in enumerate(validated, start=1):
                model.lines.append(
                    RequisitionLineModel(
                        line_number=number,
                        item_id=line.item_id,
                        requested_qty=line.requested_qty,
                        recommended_qty=recommended,
                        justification=justification,
                        created_by_id=actor.actor_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
            self._session.add(model)
            self._session.flush()
            requisition = model.to_dto()

        with LogContext.bind(document_number=pr_number, actor_id=str(actor.actor_id)):
            logger.info(
                "requisition_created",
                extra={
                    "pr_id": str(requisition.pr_id),
                    "line_count": len(requisition.lines),
                    "alert_id": str(alert_id) if alert_id else None,
                },
            )
        return requisition

    def _mark_source_alert_read(self, alert_id: UUID, actor: ActorContext) -> UUID | None:
        """Mark the originating alert read; an unknown alert is not linked."""
        try:
            AlertRegistry(self._session, clock=self._clock).mark_read(alert_id, actor.actor_id)
        except AlertNotFoundError:
            logger.warning(
                "requisition_source_alert_missing",
                extra={"alert_id": str(alert_id), "actor_id": str(actor.actor_id)},
            )
            return None
        return alert_id

    # -------------------------------------------------------------------------
    # Approval / rejection
    # -------------------------------------------------------------------------

    def _locked_requisition(self, pr_id: UUID) -> PurchaseRequisitionModel:
        model = self._session.execute(
            select(PurchaseRequisitionModel)
            .where(PurchaseRequisitionModel.id == pr_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RequisitionNotFoundError(str(pr_id))
        return model

    def _transition(
        self,
        model: PurchaseRequisitionModel,
        action: RequisitionAction,
    ) -> RequisitionStatus:
        target = requisition_transition(RequisitionStatus(model.status), action)
        if target is None:
            logger.warning(
                "requisition_transition_refused",
                extra={
                    "pr_id": str(model.id),
                    "status": model.status,
                    "requested_action": action.value,
                },
            )
            raise InvalidTransitionError(
                "requisition", model.pr_number, model.status, action.value,
            )
        return target

    def approve_requisition(
        self,
        actor: ActorContext,
        pr_id: UUID,
        remarks: str | None = None,
    ) -> Requisition:
        require_role(actor, "approve_requisition", self._config.approver_roles)

        with owned_transaction(self._session, "approve_requisition"):
            model = self._locked_requisition(pr_id)
            target = self._transition(model, RequisitionAction.APPROVE)
            now = self._clock.now()
            model.status = target.value
            model.approved_by = actor.actor_id
            model.approved_at = now
            if remarks:
                model.remarks = remarks
            model.updated_by_id = actor.actor_id
            model.updated_at = now
            self._session.flush()
            requisition = model.to_dto()

        logger.info(
            "requisition_approved",
            extra={"pr_id": str(pr_id), "document_number": requisition.pr_number},
        )
        self._notify_requester(
            requisition,
            kind="requisition_approved",
            subject=f"Purchase requisition {requisition.pr_number} approved",
            body=remarks or "Your purchase requisition has been approved.",
        )
        return requisition

    def reject_requisition(
        self,
        actor: ActorContext,
        pr_id: UUID,
        reason: str,
    ) -> Requisition:
        require_role(actor, "reject_requisition", self._config.approver_roles)

        reason = (reason or "").strip()
        if len(reason) < self._config.min_rejection_reason_length:
            raise RejectionReasonTooShortError(
                self._config.min_rejection_reason_length, len(reason),
            )

        with owned_transaction(self._session, "reject_requisition"):
            model = self._locked_requisition(pr_id)
            target = self._transition(model, RequisitionAction.REJECT)
            now = self._clock.now()
            model.status = target.value
            model.rejected_by = actor.actor_id
            model.rejected_at = now
            model.rejection_reason = reason
            model.updated_by_id = actor.actor_id
            model.updated_at = now
            self._session.flush()
            requisition = model.to_dto()

        logger.info(
            "requisition_rejected",
            extra={"pr_id": str(pr_id), "document_number": requisition.pr_number},
        )
        self._notify_requester(
            requisition,
            kind="requisition_rejected",
            subject=f"Purchase requisition {requisition.pr_number} rejected",
            body=reason,
        )
        return requisition

    def _notify_requester(
        self,
        requisition: Requisition,
        kind: str,
        subject: str,
        body: str,
    ) -> None:
        send_best_effort(
            self._notifier,
            Notification(
                kind=kind,
                recipient=self._users.email_for(requisition.requested_by) or "",
                subject=subject,
                body=body,
                data={
                    "pr_id": str(requisition.pr_id),
                    "pr_number": requisition.pr_number,
                    "status": requisition.status.value,
                },
            ),
        )
