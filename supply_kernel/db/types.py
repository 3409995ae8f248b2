"""
Module: supply_kernel.db.types
Responsibility: Annotated column aliases and the rounding helpers used for
    prices, line totals and completion percentages.
Architecture position: Kernel > DB.  Importable from every kernel layer.

Invariants enforced:
    - round_money() is the only rounding applied to prices and totals.
    - round_percent() is the only rounding applied to completion percentages.
    - No floats: quantities are integers, money and percentages are Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Integer, Numeric, String

# Unit prices and totals
Money = Annotated[Decimal, Numeric(38, 9)]

# Whole units of stock
Quantity = Annotated[int, Integer]

# Ledger sequence ids
Sequence = Annotated[int, BigInteger]

# Document numbers such as PR202600001
DocumentNumber = Annotated[str, String(32)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
PERCENT_DECIMAL_PLACES = 2


def round_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round a monetary amount half-up."""
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def round_percent(value: Decimal) -> Decimal:
    quantum = Decimal(1).scaleb(-PERCENT_DECIMAL_PLACES)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def to_decimal(value: int | str | Decimal) -> Decimal:
    """Coerce an int, str or Decimal to Decimal. Floats are refused."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted; pass str or Decimal")
    return value if isinstance(value, Decimal) else Decimal(value)
