from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable
import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.core.exceptions import (
    LedgerConflict, LedgerError, InsufficientFunds, InsufficientHoldings, InvalidInput, PriceUnavailable,
    StoreFailure,
)
from portfolio_ledger.models.asset import AssetType
from portfolio_ledger.models.transaction import TransactionType
from portfolio_ledger.schemas.portfolio import TradeReceipt
from portfolio_ledger.services.accountant import (
    CASH_PRICE, compute_weighted_average, round_money, round_quantity, sufficient_cash, sufficient_holdings,
)
from portfolio_ledger.services.ledger_store import LedgerStore
from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.validation import normalize_symbol, parse_amount

logger = logging.getLogger(__name__)


class TradeState(str, enum.Enum):
    VALIDATING = "VALIDATING"
    PRICE_RESOLVED = "PRICE_RESOLVED"
    BALANCE_CHECKED = "BALANCE_CHECKED"
    APPLIED = "APPLIED"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


@dataclass
class TradeTicket:
    """In-flight state of a single buy or sell request."""
    side: TransactionType
    user_id: str
    symbol: str = ""
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    state: TradeState = TradeState.VALIDATING

    def advance(self, state: TradeState) -> None:
        logger.debug(f"{self.side.value} {self.user_id}:{self.symbol} {self.state.value} -> {state.value}")
        self.state = state

    def abort(self, reason: Exception) -> None:
        logger.warning(
            f"{self.side.value} aborted for user {self.user_id} {self.symbol or '?'} "
            f"at {self.state.value}: {type(reason).__name__}: {reason}"
        )
        self.state = TradeState.ABORTED


# 交易执行器 (Trade Executor)
# 职责：把一次买入/卖出编排成一个原子工作单元。
# 流程：校验 -> 取价（在事务之外）-> 开事务 -> 余额/持仓检查 -> 更新持仓与现金 -> 写流水 -> 提交。
# 买卖两条路径都先锁现金行、再锁股票行，避免同一用户的并发买卖互相死锁。
class TradeExecutor:
    def __init__(self, store: LedgerStore, quotes: MarketDataProvider, cash_symbol: str = "USD", max_retries: int = 3):
        self.store = store
        self.quotes = quotes
        self.cash_symbol = cash_symbol
        self.max_retries = max(1, max_retries)

    async def buy(self, user_id: str, symbol, quantity) -> TradeReceipt:
        ticket = TradeTicket(side=TransactionType.BUY, user_id=user_id)
        await self._execute(ticket, symbol, quantity, self._apply_buy)
        logger.info(f"BUY {ticket.quantity} {ticket.symbol} @ {ticket.price} for user {user_id} (cost {ticket.total})")
        return TradeReceipt(
            symbol=ticket.symbol,
            quantity=ticket.quantity,
            price=ticket.price,
            total_cost=round_money(ticket.total),
        )

    async def sell(self, user_id: str, symbol, quantity) -> TradeReceipt:
        ticket = TradeTicket(side=TransactionType.SELL, user_id=user_id)
        await self._execute(ticket, symbol, quantity, self._apply_sell)
        logger.info(f"SELL {ticket.quantity} {ticket.symbol} @ {ticket.price} for user {user_id} (revenue {ticket.total})")
        return TradeReceipt(
            symbol=ticket.symbol,
            quantity=ticket.quantity,
            price=ticket.price,
            total_revenue=round_money(ticket.total),
        )

    async def _execute(
        self,
        ticket: TradeTicket,
        symbol,
        quantity,
        apply: Callable[[AsyncSession, TradeTicket], Awaitable[None]],
    ) -> None:
        try:
            # 1. 校验 (Validate)
            ticket.symbol = normalize_symbol(symbol)
            ticket.quantity = parse_amount(quantity, "quantity")

            # 2. 取价：必须在任何数据库锁之外完成，慢接口不能阻塞其他交易
            ticket.price = await self._resolve_price(ticket.symbol)
            ticket.total = round_quantity(ticket.price * ticket.quantity)
            # 成交额四舍五入后为 0 的碎单不允许成交，否则股数凭空增减而现金不动
            if ticket.total <= 0:
                raise InvalidInput("Order value is too small")
            ticket.advance(TradeState.PRICE_RESOLVED)

            # 3. 原子工作单元，遇到并发冲突整体重试
            await self._run_unit(ticket, apply)
        except LedgerError as e:
            ticket.abort(e)
            raise

    async def _resolve_price(self, symbol: str) -> Decimal:
        price = await self.quotes.get_current_price(symbol)
        if price is None:
            raise PriceUnavailable(symbol)
        # 成交价按流水精度（2 位小数）归一，现金、成本和流水三者一致
        price = round_money(price)
        if price <= 0:
            raise PriceUnavailable(symbol)
        return price

    async def _run_unit(self, ticket: TradeTicket, apply: Callable[[AsyncSession, TradeTicket], Awaitable[None]]) -> None:
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.store.unit_of_work() as session:
                    await apply(session, ticket)
                ticket.advance(TradeState.COMMITTED)
                return
            except LedgerConflict as e:
                if attempt == self.max_retries:
                    logger.error(f"{ticket.side.value} for user {ticket.user_id} {ticket.symbol} gave up after {attempt} conflicts")
                    raise StoreFailure() from e
                logger.warning(f"{ticket.side.value} for user {ticket.user_id} {ticket.symbol} conflicted, retry {attempt}/{self.max_retries - 1}")
                ticket.state = TradeState.PRICE_RESOLVED

    async def _apply_buy(self, session: AsyncSession, ticket: TradeTicket) -> None:
        store = self.store

        # 现金余额；没有现金行视为 0
        cash = await store.get_position(session, ticket.user_id, AssetType.CASH.value, self.cash_symbol, for_update=True)
        balance = cash.quantity if cash is not None else Decimal("0")
        if not sufficient_cash(balance, ticket.total):
            raise InsufficientFunds()
        ticket.advance(TradeState.BALANCE_CHECKED)

        # 已有持仓则重新计算加权均价，否则按成交价新建
        stock = await store.get_position(session, ticket.user_id, AssetType.STOCK.value, ticket.symbol, for_update=True)
        if stock is not None:
            new_qty, new_avg = compute_weighted_average(
                AssetType.STOCK.value, stock.quantity, stock.average_price, ticket.quantity, ticket.price
            )
        else:
            new_qty, new_avg = ticket.quantity, ticket.price
        await store.save_position(
            session, ticket.user_id, AssetType.STOCK.value, ticket.symbol, new_qty, new_avg, existing=stock
        )

        remaining = _remaining_cash(cash, ticket.total)
        await store.save_position(
            session, ticket.user_id, AssetType.CASH.value, self.cash_symbol, remaining, CASH_PRICE, existing=cash
        )

        await store.append_transaction(
            session, ticket.user_id, ticket.symbol, TransactionType.BUY, ticket.quantity, ticket.price
        )
        ticket.advance(TradeState.APPLIED)

    async def _apply_sell(self, session: AsyncSession, ticket: TradeTicket) -> None:
        store = self.store

        # 加锁顺序与买入一致：先现金行、后股票行
        cash = await store.get_position(session, ticket.user_id, AssetType.CASH.value, self.cash_symbol, for_update=True)
        stock = await store.get_position(session, ticket.user_id, AssetType.STOCK.value, ticket.symbol, for_update=True)
        held = stock.quantity if stock is not None else Decimal("0")
        if not sufficient_holdings(held, ticket.quantity):
            raise InsufficientHoldings()
        ticket.advance(TradeState.BALANCE_CHECKED)

        if held == ticket.quantity:
            # 全部卖出：删除持仓行
            await store.delete_position(session, stock)
        else:
            # 部分卖出：均价保持不变，它代表剩余股份的成本
            await store.save_position(
                session, ticket.user_id, AssetType.STOCK.value, ticket.symbol,
                held - ticket.quantity, stock.average_price, existing=stock,
            )

        current = cash.quantity if cash is not None else Decimal("0")
        new_cash, _ = compute_weighted_average(AssetType.CASH.value, current, CASH_PRICE, ticket.total, CASH_PRICE)
        await store.save_position(
            session, ticket.user_id, AssetType.CASH.value, self.cash_symbol, new_cash, CASH_PRICE, existing=cash
        )

        await store.append_transaction(
            session, ticket.user_id, ticket.symbol, TransactionType.SELL, ticket.quantity, ticket.price
        )
        ticket.advance(TradeState.APPLIED)


def _remaining_cash(cash, cost: Decimal) -> Decimal:
    # 余额已在同一事务内检查过；这里再失败说明账本内部不一致，而不是用户错误
    remaining = (cash.quantity if cash is not None else Decimal("0")) - cost
    if cash is None or remaining < 0:
        logger.error(f"Cash re-check failed for position {cash!r} against cost {cost}")
        raise StoreFailure()
    return remaining
