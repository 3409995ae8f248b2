"""
Read side of purchase requisitions.

Lines are enriched with catalog details and an estimated amount (catalog
unit price x requested quantity).  Items without a catalog price
contribute nothing to the estimated total.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.db.types import round_money
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import RequisitionNotFoundError
from supply_kernel.selectors.catalog_selector import CatalogSelector, ItemInfo
from supply_modules.procurement.models import (
    Requisition,
    RequisitionLine,
    RequisitionPage,
    RequisitionStatus,
)
from supply_modules.procurement.orm import PurchaseRequisitionModel

MAX_PAGE_SIZE = 100


class RequisitionQueries:
    """Requisition lookups. Read-only; never commits."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._catalog = CatalogSelector(session)

    def _enrich(
        self,
        model: PurchaseRequisitionModel,
        items: dict[UUID, ItemInfo],
        today: date,
    ) -> Requisition:
        lines: list[RequisitionLine] = []
        total = Decimal("0")
        for line in model.lines:
            item = items.get(line.item_id)
            price = item.unit_price if item else None
            amount = round_money(price * line.requested_qty) if price is not None else None
            if amount is not None:
                total += amount
            lines.append(
                RequisitionLine(
                    line_id=line.id,
                    line_number=line.line_number,
                    item_id=line.item_id,
                    requested_qty=line.requested_qty,
                    justification=line.justification,
                    recommended_qty=line.recommended_qty,
                    sku=item.sku if item else None,
                    item_name=item.item_name if item else None,
                    estimated_unit_price=price,
                    estimated_amount=amount,
                )
            )

        days_pending = None
        if RequisitionStatus(model.status) == RequisitionStatus.PENDING:
            days_pending = max((today - model.request_date).days, 0)

        return model.to_dto(
            lines=tuple(lines),
            estimated_total=round_money(total),
            days_pending=days_pending,
        )

    def get_requisition(self, pr_id: UUID) -> Requisition:
        """
        Raises:
            RequisitionNotFoundError: If ``pr_id`` is unknown.
        """
        model = self._session.get(PurchaseRequisitionModel, pr_id)
        if model is None:
            raise RequisitionNotFoundError(str(pr_id))
        items = self._catalog.get_items(line.item_id for line in model.lines)
        return self._enrich(model, items, self._clock.today())

    def list_requisitions(
        self,
        status: RequisitionStatus | None = None,
        requested_by: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> RequisitionPage:
        """Newest first. ``page`` starts at 1; ``limit`` is capped at 100."""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        stmt = select(PurchaseRequisitionModel)
        if status is not None:
            stmt = stmt.where(
                PurchaseRequisitionModel.status == RequisitionStatus(status).value
            )
        if requested_by is not None:
            stmt = stmt.where(PurchaseRequisitionModel.requested_by == requested_by)
        if date_from is not None:
            stmt = stmt.where(PurchaseRequisitionModel.request_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(PurchaseRequisitionModel.request_date <= date_to)

        total = self._session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        models = self._session.execute(
            stmt.order_by(
                PurchaseRequisitionModel.created_at.desc(),
                PurchaseRequisitionModel.pr_number.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()

        items = self._catalog.get_items(
            line.item_id for model in models for line in model.lines
        )
        today = self._clock.today()
        return RequisitionPage(
            requisitions=tuple(self._enrich(m, items, today) for m in models),
            total=total,
            page=page,
            limit=limit,
        )
