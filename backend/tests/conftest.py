from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from portfolio_ledger.core.database import Database
from portfolio_ledger.models.asset import AssetType
from portfolio_ledger.schemas.market_data import OHLCVItem, ProviderQuote, SymbolMatch, TimeSeries
from portfolio_ledger.services.asset_service import AssetService
from portfolio_ledger.services.ledger_store import LedgerStore
from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.portfolio_query import PortfolioQueryService
from portfolio_ledger.services.trade_executor import TradeExecutor

USER = "42"


class FakeQuoteGateway(MarketDataProvider):
    """In-memory quote source; a symbol missing from ``prices`` is unavailable."""

    def __init__(self, prices: Optional[Dict[str, object]] = None):
        self.prices = dict(prices or {})
        self.calls: List[str] = []

    async def get_quote(self, symbol: str) -> Optional[ProviderQuote]:
        self.calls.append(symbol)
        price = self.prices.get(symbol)
        if price is None:
            return None
        return ProviderQuote(symbol=symbol, price=Decimal(str(price)), name=f"{symbol} Corp")

    async def get_time_series(self, symbol: str, interval: str = "1day", outputsize: int = 30) -> Optional[TimeSeries]:
        if symbol not in self.prices:
            return None
        close = float(self.prices[symbol])
        bar = OHLCVItem(time="2026-10-16", open=close, high=close, low=close, close=close, volume=1000.0)
        return TimeSeries(symbol=symbol, interval=interval, meta={"symbol": symbol}, values=[bar] * min(outputsize, 3))

    async def search_symbols(self, keywords: str) -> List[SymbolMatch]:
        return [SymbolMatch(symbol=s, name=f"{s} Corp") for s in self.prices if s.startswith(keywords.upper())]


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def store(database):
    return LedgerStore(database)


@pytest.fixture
def quotes():
    return FakeQuoteGateway({"ACME": 50})


@pytest.fixture
def executor(store, quotes):
    return TradeExecutor(store, quotes, cash_symbol="USD")


@pytest.fixture
def asset_service(store):
    return AssetService(store, cash_symbol="USD")


@pytest.fixture
def query_service(store, quotes):
    return PortfolioQueryService(store, quotes)


async def seed_position(store: LedgerStore, user_id: str, asset_type: str, symbol: str, quantity, average_price):
    async with store.unit_of_work() as session:
        position, _ = await store.save_position(
            session, user_id, asset_type, symbol, Decimal(str(quantity)), Decimal(str(average_price))
        )
    return position


async def seed_cash(store: LedgerStore, user_id: str, amount):
    return await seed_position(store, user_id, AssetType.CASH.value, "USD", amount, 1)


async def get_position(store: LedgerStore, user_id: str, asset_type: str, symbol: str):
    async with store.read_session() as session:
        return await store.get_position(session, user_id, asset_type, symbol)


async def snapshot(store: LedgerStore, user_id: str):
    """Every stored field of the user's positions plus the transaction count."""
    async with store.read_session() as session:
        positions = await store.list_positions(session, user_id)
        total, _ = await store.query_transactions(session, user_id, page_size=1)
    rows = [
        (p.id, p.asset_type, p.symbol, p.quantity, p.average_price, p.version, p.updated_at)
        for p in positions
    ]
    return rows, total
