"""
Module: supply_kernel.selectors.stock_selector
Responsibility: StockAggregator -- current on-hand quantity per item and per
    (item, warehouse) derived from the append-only stock ledger.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Latest wins: for each (item, warehouse) the balance is the balance_qty
      of the entry with the highest seq.  Balances are never re-summed from
      movement quantities; the ledger writer's running balance is trusted.
    - Item total = sum of its warehouse balances.
    - Items with no ledger history have stock 0.  An empty ledger yields an
      empty snapshot, never an error.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.models.stock_ledger import StockLedgerEntry
from supply_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class WarehouseBalance:
    """Latest balance of one item in one warehouse."""

    item_id: UUID
    warehouse_id: UUID
    balance_qty: int
    seq: int


@dataclass(frozen=True)
class StockSnapshot:
    """
    Point-in-time view of the ledger.

    Guarantees:
        - ``total_for`` returns 0 for items that never moved.
        - ``lowest_warehouse`` breaks ties by warehouse id so results are
          stable across runs.
    """

    balances: tuple[WarehouseBalance, ...] = ()
    as_of: datetime | None = None
    totals: Mapping[UUID, int] = field(default_factory=dict)

    @classmethod
    def from_balances(
        cls,
        balances: Iterable[WarehouseBalance],
        as_of: datetime | None = None,
    ) -> "StockSnapshot":
        ordered = tuple(sorted(balances, key=lambda b: (str(b.item_id), str(b.warehouse_id))))
        totals: dict[UUID, int] = {}
        for b in ordered:
            totals[b.item_id] = totals.get(b.item_id, 0) + b.balance_qty
        return cls(balances=ordered, as_of=as_of, totals=totals)

    def total_for(self, item_id: UUID) -> int:
        return self.totals.get(item_id, 0)

    def by_warehouse(self, item_id: UUID) -> dict[UUID, int]:
        return {b.warehouse_id: b.balance_qty for b in self.balances if b.item_id == item_id}

    def lowest_warehouse(self, item_id: UUID) -> UUID | None:
        per_wh = self.by_warehouse(item_id)
        if not per_wh:
            return None
        return min(per_wh, key=lambda wh: (per_wh[wh], str(wh)))

    @property
    def item_ids(self) -> frozenset[UUID]:
        return frozenset(self.totals)


class StockAggregator(BaseSelector):
    """
    Grouped latest-balance reader over ``stock_ledger``.

    Contract:
        ``snapshot()`` runs one grouped query: max(seq) per (item, warehouse),
        joined back to the ledger for the balance.  ``as_of`` restricts the
        ledger to entries with transaction_date <= as_of.
    """

    def snapshot(
        self,
        as_of: datetime | None = None,
        item_ids: Iterable[UUID] | None = None,
    ) -> StockSnapshot:
        latest = select(
            StockLedgerEntry.item_id,
            StockLedgerEntry.warehouse_id,
            func.max(StockLedgerEntry.seq).label("max_seq"),
        ).group_by(StockLedgerEntry.item_id, StockLedgerEntry.warehouse_id)

        if as_of is not None:
            latest = latest.where(StockLedgerEntry.transaction_date <= as_of)
        if item_ids is not None:
            wanted = list(item_ids)
            if not wanted:
                return StockSnapshot(as_of=as_of)
            latest = latest.where(StockLedgerEntry.item_id.in_(wanted))

        latest_sq = latest.subquery()
        rows = self.session.execute(
            select(
                StockLedgerEntry.item_id,
                StockLedgerEntry.warehouse_id,
                StockLedgerEntry.balance_qty,
                StockLedgerEntry.seq,
            ).join(latest_sq, StockLedgerEntry.seq == latest_sq.c.max_seq)
        ).all()

        return StockSnapshot.from_balances(
            (
                WarehouseBalance(
                    item_id=row.item_id,
                    warehouse_id=row.warehouse_id,
                    balance_qty=row.balance_qty,
                    seq=row.seq,
                )
                for row in rows
            ),
            as_of=as_of,
        )

    def current_stock(self, item_id: UUID, as_of: datetime | None = None) -> int:
        return self.snapshot(as_of=as_of, item_ids=[item_id]).total_for(item_id)
