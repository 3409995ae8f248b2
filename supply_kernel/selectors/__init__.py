"""Read-only selectors over kernel tables."""

from supply_kernel.selectors.catalog_selector import CatalogSelector, ItemInfo, SupplierInfo
from supply_kernel.selectors.receipt_selector import ReceiptSelector
from supply_kernel.selectors.stock_selector import StockAggregator, StockSnapshot, WarehouseBalance
from supply_kernel.selectors.user_selector import UserSelector

__all__ = [
    "CatalogSelector",
    "ItemInfo",
    "ReceiptSelector",
    "StockAggregator",
    "StockSnapshot",
    "SupplierInfo",
    "UserSelector",
    "WarehouseBalance",
]
