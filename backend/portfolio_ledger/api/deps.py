from fastapi import Depends, Request

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.database import Database
from portfolio_ledger.services.asset_service import AssetService
from portfolio_ledger.services.ledger_store import LedgerStore
from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.portfolio_query import PortfolioQueryService
from portfolio_ledger.services.trade_executor import TradeExecutor

# 依赖注入：数据库句柄与行情网关在应用启动时挂到 app.state 上，
# 每个请求从这里取，而不是引用模块级全局变量。


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_quote_gateway(request: Request) -> MarketDataProvider:
    return request.app.state.quote_gateway


def get_ledger_store(database: Database = Depends(get_database)) -> LedgerStore:
    return LedgerStore(database)


def get_trade_executor(
    store: LedgerStore = Depends(get_ledger_store),
    quotes: MarketDataProvider = Depends(get_quote_gateway),
) -> TradeExecutor:
    return TradeExecutor(store, quotes, cash_symbol=settings.CASH_SYMBOL, max_retries=settings.TRADE_MAX_RETRIES)


def get_asset_service(store: LedgerStore = Depends(get_ledger_store)) -> AssetService:
    return AssetService(store, cash_symbol=settings.CASH_SYMBOL, max_retries=settings.TRADE_MAX_RETRIES)


def get_query_service(
    store: LedgerStore = Depends(get_ledger_store),
    quotes: MarketDataProvider = Depends(get_quote_gateway),
) -> PortfolioQueryService:
    return PortfolioQueryService(store, quotes)
