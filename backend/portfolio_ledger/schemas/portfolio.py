from pydantic import BaseModel
from typing import Any, Optional, List
from datetime import datetime

from portfolio_ledger.schemas.common import CamelModel, JsonDecimal

# ---------- 请求 (Requests) ----------

# 手动录入资产：字段故意全部可选，缺失字段由服务层统一报 InvalidInput
class AssetCreate(BaseModel):
    asset_type: Optional[str] = None
    symbol: Optional[str] = None
    quantity: Optional[Any] = None
    average_price: Optional[Any] = None

class TradeRequest(BaseModel):
    symbol: Optional[str] = None
    quantity: Optional[Any] = None

# ---------- 响应 (Responses) ----------

# 手动录入结果；action 为 created 或 updated
class AssetChange(BaseModel):
    id: int
    user_id: str
    asset_type: str
    symbol: str
    quantity: JsonDecimal
    average_price: JsonDecimal
    action: str

class TradeReceipt(CamelModel):
    success: bool = True
    symbol: str
    quantity: JsonDecimal
    price: JsonDecimal
    total_cost: Optional[JsonDecimal] = None
    total_revenue: Optional[JsonDecimal] = None

class AssetDetail(CamelModel):
    asset_type: str
    symbol: str
    quantity: JsonDecimal
    average_price: JsonDecimal
    current_price: JsonDecimal
    total_cost: JsonDecimal
    current_value: JsonDecimal
    price_status: str = "live"  # live | unavailable

class CashTotal(CamelModel):
    user_id: str
    total_cash: JsonDecimal

class StockCostTotal(CamelModel):
    user_id: str
    total_cost: JsonDecimal

class StockValueTotal(CamelModel):
    user_id: str
    total_value: JsonDecimal

class PortfolioSummary(CamelModel):
    user_id: str
    total_cash: JsonDecimal
    total_stock_cost: JsonDecimal
    total_stock_value: JsonDecimal
    total_value: JsonDecimal
    unrealized_pl: JsonDecimal
    unavailable_symbols: List[str] = []

class TransactionOut(CamelModel):
    id: int
    symbol: str
    type: str
    quantity: JsonDecimal
    price: JsonDecimal
    timestamp: datetime

class TransactionPage(CamelModel):
    user_id: str
    total: int
    page: int
    page_size: int
    transactions: List[TransactionOut]

class HeldSymbols(BaseModel):
    success: bool = True
    symbols: List[str]
