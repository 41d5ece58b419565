from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import asyncio
import logging

from portfolio_ledger.core.exceptions import InvalidInput, NotFound
from portfolio_ledger.models.asset import AssetPosition, AssetType
from portfolio_ledger.models.transaction import TransactionType
from portfolio_ledger.schemas.portfolio import (
    AssetDetail, PortfolioSummary, TransactionOut, TransactionPage,
)
from portfolio_ledger.services.accountant import (
    CASH_PRICE, cost_basis, market_value, round_money, round_quantity,
)
from portfolio_ledger.services.ledger_store import LedgerStore
from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.validation import normalize_symbol, parse_page

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# 持仓查询服务 (Portfolio Query Service)
# 只读：从账本读取持仓，再用实时行情做估值。
# 行情不可用时该持仓按 0 估值并记 warning，整体查询仍然成功。
class PortfolioQueryService:
    def __init__(self, store: LedgerStore, quotes: MarketDataProvider):
        self.store = store
        self.quotes = quotes

    async def _live_prices(self, symbols: List[str]) -> Dict[str, Optional[Decimal]]:
        """并发抓取多个代码的现价；失败的代码值为 None"""
        unique = sorted(set(symbols))
        prices = await asyncio.gather(*(self.quotes.get_current_price(s) for s in unique))
        result = dict(zip(unique, prices))
        for symbol, price in result.items():
            if price is None:
                logger.warning(f"Quote unavailable for {symbol}, valuing position at 0")
        return result

    async def _stock_positions(self, user_id: str) -> List[AssetPosition]:
        async with self.store.read_session() as session:
            return await self.store.list_positions(session, user_id, AssetType.STOCK.value)

    async def total_cash(self, user_id: str) -> Decimal:
        async with self.store.read_session() as session:
            cash = await self.store.list_positions(session, user_id, AssetType.CASH.value)
        return round_money(sum((p.quantity for p in cash), ZERO))

    async def total_stock_cost(self, user_id: str) -> Decimal:
        stocks = await self._stock_positions(user_id)
        return round_money(sum((cost_basis(p.quantity, p.average_price) for p in stocks), ZERO))

    async def total_stock_value(self, user_id: str) -> Decimal:
        value, _ = await self._stock_value(await self._stock_positions(user_id))
        return value

    async def _stock_value(self, stocks: List[AssetPosition]) -> Tuple[Decimal, List[str]]:
        prices = await self._live_prices([p.symbol for p in stocks])
        total = ZERO
        for p in stocks:
            price = prices.get(p.symbol)
            if price is not None:
                total += market_value(p.quantity, price)
        unavailable = [s for s, price in prices.items() if price is None]
        return round_money(total), unavailable

    async def portfolio_summary(self, user_id: str) -> PortfolioSummary:
        async with self.store.read_session() as session:
            positions = await self.store.list_positions(session, user_id)

        cash = [p for p in positions if p.is_cash]
        stocks = [p for p in positions if not p.is_cash]

        total_cash = round_money(sum((p.quantity for p in cash), ZERO))
        total_cost = round_money(sum((cost_basis(p.quantity, p.average_price) for p in stocks), ZERO))
        total_value, unavailable = await self._stock_value(stocks)

        return PortfolioSummary(
            user_id=user_id,
            total_cash=total_cash,
            total_stock_cost=total_cost,
            total_stock_value=total_value,
            total_value=total_cash + total_value,
            unrealized_pl=total_value - total_cost,
            unavailable_symbols=unavailable,
        )

    def _detail(self, position: AssetPosition, price: Optional[Decimal]) -> AssetDetail:
        if position.is_cash:
            current_price, status = CASH_PRICE, "live"
        elif price is None:
            current_price, status = ZERO, "unavailable"
        else:
            current_price, status = price, "live"

        return AssetDetail(
            asset_type=position.asset_type,
            symbol=position.symbol,
            quantity=position.quantity,
            average_price=round_quantity(position.average_price),
            current_price=current_price,
            total_cost=round_money(cost_basis(position.quantity, position.average_price)),
            current_value=round_money(market_value(position.quantity, current_price)),
            price_status=status,
        )

    async def asset_details(self, user_id: str) -> List[AssetDetail]:
        async with self.store.read_session() as session:
            positions = await self.store.list_positions(session, user_id)
        prices = await self._live_prices([p.symbol for p in positions if not p.is_cash])
        return [self._detail(p, prices.get(p.symbol)) for p in positions]

    async def asset_detail(self, user_id: str, asset_type: str, symbol: str) -> AssetDetail:
        symbol = normalize_symbol(symbol)
        async with self.store.read_session() as session:
            position = await self.store.get_position(session, user_id, asset_type, symbol)
        if position is None:
            raise NotFound()

        price = None
        if not position.is_cash:
            price = (await self._live_prices([position.symbol]))[position.symbol]
        return self._detail(position, price)

    async def held_symbols(self, user_id: str) -> List[str]:
        async with self.store.read_session() as session:
            return await self.store.held_symbols(session, user_id)

    async def transaction_history(
        self,
        user_id: str,
        symbol: Optional[str] = None,
        type: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> TransactionPage:
        """
        Newest-first transaction history. ``symbol`` is matched upper-cased;
        a ``type`` other than buy/sell is ignored rather than rejected.
        """
        page = parse_page(page, 1, "page")
        page_size = parse_page(page_size, 10, "pageSize")
        if page_size > 100:
            raise InvalidInput("pageSize must not exceed 100")

        symbol = symbol.strip().upper() if symbol and symbol.strip() else None
        if type not in (TransactionType.BUY.value, TransactionType.SELL.value):
            type = None

        async with self.store.read_session() as session:
            total, rows = await self.store.query_transactions(
                session, user_id, symbol=symbol, type=type, page=page, page_size=page_size
            )
        logger.debug(f"Total transactions for user {user_id}: {total}")

        return TransactionPage(
            user_id=user_id,
            total=total,
            page=page,
            page_size=page_size,
            transactions=[
                TransactionOut(
                    id=tx.id,
                    symbol=tx.symbol,
                    type=tx.type,
                    quantity=tx.quantity,
                    price=round_money(tx.price),
                    timestamp=tx.timestamp,
                )
                for tx in rows
            ],
        )
