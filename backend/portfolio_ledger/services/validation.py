from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from portfolio_ledger.core.exceptions import InvalidInput
from portfolio_ledger.models.asset import AssetPosition
from portfolio_ledger.services.accountant import round_quantity

# 与持仓表 symbol 列宽一致，超长代码在写库前就拒绝
MAX_SYMBOL_LENGTH = AssetPosition.__table__.c.symbol.type.length


def normalize_symbol(symbol: Any) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidInput("Invalid symbol")
    symbol = symbol.strip().upper()
    if len(symbol) > MAX_SYMBOL_LENGTH:
        raise InvalidInput(f"Symbol must be at most {MAX_SYMBOL_LENGTH} characters")
    return symbol


def parse_amount(value: Any, field: str, allow_zero: bool = False) -> Decimal:
    """
    Parse a numeric request field into a 4-dp Decimal.

    Accepts ints, floats and numeric strings; rejects booleans, NaN/Infinity,
    negatives, and zero unless ``allow_zero``.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"Invalid {field}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Invalid {field}")
    if not amount.is_finite():
        raise InvalidInput(f"Invalid {field}")

    amount = round_quantity(amount)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidInput(f"Invalid {field}")
    return amount


def parse_page(value: Optional[int], default: int, field: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInput(f"Invalid {field}")
    return value
