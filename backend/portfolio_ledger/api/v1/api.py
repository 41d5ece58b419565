from fastapi import APIRouter
from portfolio_ledger.api.v1.endpoints import assets, trades, stock

# 创建 v1 版本的总路由对象
api_router = APIRouter()

# 行情模块：报价、搜索、K 线
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])

# 资产模块：手动录入、现金/成本/市值汇总、持仓明细
api_router.include_router(assets.router, prefix="/user", tags=["assets"])

# 交易模块：买入、卖出、交易流水
api_router.include_router(trades.router, prefix="/user", tags=["trades"])
