from decimal import Decimal, DivisionByZero, ROUND_HALF_UP
from typing import Tuple, Union

from portfolio_ledger.models.asset import AssetType

# 持仓会计 (Position Accountant)
# 纯函数：只做十进制计算，不做任何 I/O。
# 舍入规则统一为 ROUND_HALF_UP：恰好处在中点时远离零舍入 (2.345 -> 2.35, -2.345 -> -2.35)。

MONEY_QUANTUM = Decimal("0.01")
QUANTITY_QUANTUM = Decimal("0.0001")
CASH_PRICE = Decimal("1")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # float 先转 str，避免把二进制误差带进账本
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round to 2 decimal places, ties away from zero."""
    return to_decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def round_quantity(value: Number) -> Decimal:
    """Round to 4 decimal places, ties away from zero. Also used for stored average prices."""
    return to_decimal(value).quantize(QUANTITY_QUANTUM, rounding=ROUND_HALF_UP)


def compute_weighted_average(
    asset_type: str,
    existing_qty: Number,
    existing_avg: Number,
    added_qty: Number,
    added_price: Number,
) -> Tuple[Decimal, Decimal]:
    """
    Fold a newly acquired lot into a position.

    Returns ``(new_qty, new_avg)``. Cash always keeps an average price of 1.
    Raises ``DivisionByZero`` when the resulting quantity is zero; callers only
    reach this path while acquiring, so ``added_qty`` is expected to be positive.
    """
    existing_qty = to_decimal(existing_qty)
    added_qty = to_decimal(added_qty)
    new_qty = existing_qty + added_qty

    if asset_type == AssetType.CASH.value:
        return new_qty, CASH_PRICE

    if new_qty == 0:
        raise DivisionByZero("weighted average of an empty position")

    total_cost = existing_qty * to_decimal(existing_avg) + added_qty * to_decimal(added_price)
    return new_qty, round_quantity(total_cost / new_qty)


def sufficient_cash(balance: Number, cost: Number) -> bool:
    # 精确比较，没有容差
    return to_decimal(balance) >= to_decimal(cost)


def sufficient_holdings(held: Number, requested: Number) -> bool:
    return to_decimal(held) >= to_decimal(requested)


def cost_basis(quantity: Number, average_price: Number) -> Decimal:
    return to_decimal(quantity) * to_decimal(average_price)


def market_value(quantity: Number, price: Number) -> Decimal:
    return to_decimal(quantity) * to_decimal(price)
