"""
Module: supply_kernel.selectors.catalog_selector
Responsibility: Read access to items, suppliers and negotiated prices.
Architecture position: Kernel > Selectors.  Read-only.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from supply_kernel.models.catalog import Item
from supply_kernel.models.supplier import Supplier, SupplierPrice
from supply_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ItemInfo:
    item_id: UUID
    sku: str
    item_name: str
    unit_price: Decimal | None
    reorder_point: int
    safety_stock: int
    min_stock: int
    max_stock: int | None
    is_active: bool

    @classmethod
    def from_model(cls, model: Item) -> "ItemInfo":
        return cls(
            item_id=model.id,
            sku=model.sku,
            item_name=model.item_name,
            unit_price=model.unit_price,
            reorder_point=model.reorder_point,
            safety_stock=model.safety_stock,
            min_stock=model.min_stock,
            max_stock=model.max_stock,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class SupplierInfo:
    supplier_id: UUID
    supplier_code: str
    name: str
    email: str | None
    can_transact: bool


class CatalogSelector(BaseSelector):
    """Items, suppliers and price lookups as frozen DTOs."""

    def get_item(self, item_id: UUID) -> ItemInfo | None:
        model = self.session.get(Item, item_id)
        return ItemInfo.from_model(model) if model is not None else None

    def get_items(self, item_ids: Iterable[UUID]) -> dict[UUID, ItemInfo]:
        wanted = list(set(item_ids))
        if not wanted:
            return {}
        models = self.session.execute(
            select(Item).where(Item.id.in_(wanted))
        ).scalars().all()
        return {m.id: ItemInfo.from_model(m) for m in models}

    def active_items(self) -> tuple[ItemInfo, ...]:
        models = self.session.execute(
            select(Item).where(Item.is_active == True).order_by(Item.sku)  # noqa: E712
        ).scalars().all()
        return tuple(ItemInfo.from_model(m) for m in models)

    def get_supplier(self, supplier_id: UUID) -> SupplierInfo | None:
        model = self.session.get(Supplier, supplier_id)
        if model is None:
            return None
        return SupplierInfo(
            supplier_id=model.id,
            supplier_code=model.supplier_code,
            name=model.name,
            email=model.email,
            can_transact=model.can_transact,
        )

    def negotiated_price(
        self,
        supplier_id: UUID,
        item_id: UUID,
        on: date,
    ) -> Decimal | None:
        """
        The supplier's price for the item effective on ``on``.

        Preferred rows win, then the most recent effective_from.  Returns
        None when the supplier has no effective price for the item.
        """
        rows = self.session.execute(
            select(SupplierPrice).where(
                SupplierPrice.supplier_id == supplier_id,
                SupplierPrice.item_id == item_id,
            )
        ).scalars().all()

        effective = [r for r in rows if r.is_effective_on(on)]
        if not effective:
            return None
        best = max(
            effective,
            key=lambda r: (r.is_preferred, r.effective_from or date.min),
        )
        return best.unit_price
