from typing import List
from fastapi import APIRouter, Depends

from portfolio_ledger.api.deps import get_asset_service, get_query_service
from portfolio_ledger.schemas.portfolio import (
    AssetCreate, AssetChange, AssetDetail, CashTotal, HeldSymbols, StockCostTotal, StockValueTotal,
    PortfolioSummary,
)
from portfolio_ledger.services.asset_service import AssetService
from portfolio_ledger.services.portfolio_query import PortfolioQueryService

router = APIRouter()

@router.post("/{user_id}/assets", response_model=AssetChange)
async def add_asset(
    user_id: str,
    item: AssetCreate,
    service: AssetService = Depends(get_asset_service),
):
    """
    手动录入资产（不是买入）：初始入金或补录已有持仓
    - 已存在则按加权平均合并；现金均价恒为 1
    """
    return await service.add_asset(user_id, item.asset_type, item.symbol, item.quantity, item.average_price)

# 注意：以下固定路径必须注册在 /{asset_type}/{symbol} 之前

@router.get("/{user_id}/assets/cash", response_model=CashTotal)
async def get_total_cash(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    """现金总额"""
    return CashTotal(user_id=user_id, total_cash=await query.total_cash(user_id))

@router.get("/{user_id}/assets/stocks/cost", response_model=StockCostTotal)
async def get_total_stock_cost(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    """股票持仓总成本"""
    return StockCostTotal(user_id=user_id, total_cost=await query.total_stock_cost(user_id))

@router.get("/{user_id}/assets/stocks", response_model=StockValueTotal)
async def get_total_stock_value(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    """股票持仓总市值（按实时价格）"""
    return StockValueTotal(user_id=user_id, total_value=await query.total_stock_value(user_id))

@router.get("/{user_id}/assets/details", response_model=List[AssetDetail])
async def get_asset_details(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    return await query.asset_details(user_id)

@router.get("/{user_id}/assets/summary", response_model=PortfolioSummary)
async def get_portfolio_summary(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    """
    投资组合汇总：现金、成本、市值、总资产与浮动盈亏
    """
    return await query.portfolio_summary(user_id)

@router.get("/{user_id}/assets/{asset_type}/{symbol}", response_model=AssetDetail)
async def get_asset(
    user_id: str,
    asset_type: str,
    symbol: str,
    query: PortfolioQueryService = Depends(get_query_service),
):
    return await query.asset_detail(user_id, asset_type, symbol)

@router.get("/{user_id}/held-stocks", response_model=HeldSymbols)
async def get_held_stocks(user_id: str, query: PortfolioQueryService = Depends(get_query_service)):
    """可卖出的股票代码列表"""
    return HeldSymbols(symbols=await query.held_symbols(user_id))
