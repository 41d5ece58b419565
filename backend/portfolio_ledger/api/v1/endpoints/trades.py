from typing import Optional
from fastapi import APIRouter, Depends, Query

from portfolio_ledger.api.deps import get_query_service, get_trade_executor
from portfolio_ledger.schemas.portfolio import TradeRequest, TradeReceipt, TransactionPage
from portfolio_ledger.services.portfolio_query import PortfolioQueryService
from portfolio_ledger.services.trade_executor import TradeExecutor

router = APIRouter()

@router.post("/{user_id}/buy", response_model=TradeReceipt, response_model_exclude_none=True)
async def buy(user_id: str, order: TradeRequest, executor: TradeExecutor = Depends(get_trade_executor)):
    """按实时价格买入，扣减现金并记录流水"""
    return await executor.buy(user_id, order.symbol, order.quantity)

@router.post("/{user_id}/sell", response_model=TradeReceipt, response_model_exclude_none=True)
async def sell(user_id: str, order: TradeRequest, executor: TradeExecutor = Depends(get_trade_executor)):
    """按实时价格卖出，增加现金并记录流水"""
    return await executor.sell(user_id, order.symbol, order.quantity)

@router.get("/{user_id}/transactions", response_model=TransactionPage)
async def get_transactions(
    user_id: str,
    symbol: Optional[str] = None,
    type: Optional[str] = None,
    page: int = Query(1),
    page_size: int = Query(10, alias="pageSize"),
    query: PortfolioQueryService = Depends(get_query_service),
):
    """
    交易流水分页查询（默认一页十条，按时间倒序）
    """
    return await query.transaction_history(user_id, symbol=symbol, type=type, page=page, page_size=page_size)
