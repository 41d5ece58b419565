from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Any
from datetime import datetime

from portfolio_ledger.schemas.common import JsonDecimal

class ProviderQuote(BaseModel):
    symbol: str
    price: JsonDecimal
    name: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    change: Optional[JsonDecimal] = None
    change_percent: Optional[JsonDecimal] = None
    last_updated: Optional[datetime] = None

class OHLCVItem(BaseModel):
    time: str  # 原始时间字符串，如 2024-01-02 或 2024-01-02 15:30:00
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

class TimeSeries(BaseModel):
    symbol: str
    interval: str
    meta: Dict[str, Any] = Field(default_factory=dict)
    values: List[OHLCVItem] = Field(default_factory=list)

class SymbolMatch(BaseModel):
    symbol: str
    name: Optional[str] = None
    exchange: Optional[str] = None
    country: Optional[str] = None
    instrument_type: Optional[str] = None
