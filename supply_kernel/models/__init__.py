"""Kernel ORM models: catalog, ledger, suppliers, receipts, lots and users."""

from supply_kernel.models.catalog import Item, Warehouse
from supply_kernel.models.lot import InventoryLot, LotStatus
from supply_kernel.models.receipt import ReceiptFact
from supply_kernel.models.stock_ledger import StockLedgerEntry
from supply_kernel.models.supplier import Supplier, SupplierPrice, SupplierStatus
from supply_kernel.models.user import UserAccount

__all__ = [
    "InventoryLot",
    "Item",
    "LotStatus",
    "ReceiptFact",
    "StockLedgerEntry",
    "Supplier",
    "SupplierPrice",
    "SupplierStatus",
    "UserAccount",
    "Warehouse",
]
