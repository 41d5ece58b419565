from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from portfolio_ledger.schemas.market_data import ProviderQuote, TimeSeries, SymbolMatch

# 行情网关抽象基类 (Quote Gateway Interface)
# 所有行情来源（Twelve Data, YFinance）都必须继承此类。
# 约定：任何传输错误、超时、格式错误或上游报错都统一返回 None / 空列表（即 "Unavailable"），
# 不抛异常，也不做隐藏的重试。
class MarketDataProvider(ABC):
    @abstractmethod
    async def get_quote(self, symbol: str) -> Optional[ProviderQuote]:
        """
        获取实时报价（最新价、涨跌幅等）
        """
        pass

    @abstractmethod
    async def get_time_series(self, symbol: str, interval: str = "1day", outputsize: int = 30) -> Optional[TimeSeries]:
        """
        获取历史 K 线数据
        """
        pass

    @abstractmethod
    async def search_symbols(self, keywords: str) -> List[SymbolMatch]:
        """
        按关键字搜索股票代码
        """
        pass

    async def get_current_price(self, symbol: str) -> Optional[Decimal]:
        """
        Current price for ``symbol`` or ``None`` when unavailable.

        A non-positive price is treated as unavailable, never as a valid quote.
        """
        quote = await self.get_quote(symbol)
        if quote is None:
            return None
        price = quote.price
        if not price.is_finite() or price <= 0:
            return None
        return price

    async def aclose(self) -> None:
        """Release any pooled connections. Default: nothing to release."""
        return None


def parse_decimal(value: Any) -> Optional[Decimal]:
    """上游返回的数字通常是字符串，如 "150.12000"；无法解析时返回 None"""
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None
