import yfinance as yf
from datetime import datetime
from typing import List, Optional
import os
import logging
import asyncio
import pandas as pd

from portfolio_ledger.schemas.market_data import ProviderQuote, TimeSeries, OHLCVItem, SymbolMatch
from portfolio_ledger.services.market_providers.base import MarketDataProvider, parse_decimal

logger = logging.getLogger(__name__)

# Twelve Data 风格的周期写法 -> yfinance 写法
_INTERVALS = {
    "1min": "1m", "5min": "5m", "15min": "15m", "30min": "30m",
    "1h": "1h", "1day": "1d", "1week": "1wk", "1month": "1mo",
}

# yfinance 只接受固定的 period 取值，按周期挑一个足够长的窗口再截取 outputsize 根
_PERIODS = {
    "1m": "5d", "5m": "1mo", "15m": "1mo", "30m": "1mo",
    "1h": "3mo", "1d": "2y", "1wk": "10y", "1mo": "max",
}

# Yahoo Finance 行情实现
class YFinanceProvider(MarketDataProvider):
    def __init__(self, timeout: float = 10.0, proxy: Optional[str] = None):
        self.timeout = timeout
        # 如果配置了代理，注入环境变量供 yfinance 使用
        if proxy:
            os.environ["HTTP_PROXY"] = proxy
            os.environ["HTTPS_PROXY"] = proxy

    async def _run_sync(self, func, *args, **kwargs):
        """
        将 yfinance 的同步网络调用放进线程池，并用 wait_for 限定最长等待时间。
        超时抛出 asyncio.TimeoutError，由调用方统一转成 "Unavailable"。
        """
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, lambda: func(*args, **kwargs)),
            timeout=self.timeout,
        )

    async def get_quote(self, symbol: str) -> Optional[ProviderQuote]:
        """抓取实时报价"""
        try:
            tick = yf.Ticker(symbol)
            info = await self._run_sync(getattr, tick, "info")
            if not info:
                return None
            price = parse_decimal(info.get("currentPrice") or info.get("regularMarketPrice"))
            if price is None:
                return None
            return ProviderQuote(
                symbol=symbol,
                price=price,
                name=info.get("shortName", symbol),
                exchange=info.get("exchange"),
                currency=info.get("currency"),
                change=parse_decimal(info.get("regularMarketChange")),
                change_percent=parse_decimal(info.get("regularMarketChangePercent")),
                last_updated=datetime.utcnow(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"yfinance get_quote timed out for {symbol}")
            return None
        except Exception as e:
            logger.error(f"yfinance get_quote error for {symbol}: {e}")
            return None

    async def get_time_series(self, symbol: str, interval: str = "1day", outputsize: int = 30) -> Optional[TimeSeries]:
        """抓取历史 K 线"""
        yf_interval = _INTERVALS.get(interval, interval)
        try:
            tick = yf.Ticker(symbol)
            hist = await self._run_sync(tick.history, period=_PERIODS.get(yf_interval, "1y"), interval=yf_interval)
            if hist is None or hist.empty:
                return None

            # 与 Twelve Data 保持一致：最新的一根在前
            hist = hist.tail(outputsize).iloc[::-1]
            time_format = "%Y-%m-%d" if yf_interval in ("1d", "1wk", "1mo") else "%Y-%m-%d %H:%M:%S"

            values = []
            for index, row in hist.iterrows():
                values.append(OHLCVItem(
                    time=index.strftime(time_format),
                    open=float(row["Open"]),
                    high=float(row["High"]),
                    low=float(row["Low"]),
                    close=float(row["Close"]),
                    volume=float(row["Volume"]) if "Volume" in row and not pd.isna(row["Volume"]) else None,
                ))
            return TimeSeries(
                symbol=symbol,
                interval=interval,
                meta={"symbol": symbol, "interval": interval, "source": "yfinance"},
                values=values,
            )
        except asyncio.TimeoutError:
            logger.warning(f"yfinance get_time_series timed out for {symbol}")
            return None
        except Exception as e:
            logger.error(f"yfinance get_time_series error for {symbol}: {e}")
            return None

    async def search_symbols(self, keywords: str) -> List[SymbolMatch]:
        try:
            search = await self._run_sync(yf.Search, keywords, max_results=10, news_count=0)
            return [
                SymbolMatch(
                    symbol=q["symbol"],
                    name=q.get("shortname") or q.get("longname"),
                    exchange=q.get("exchange"),
                    instrument_type=q.get("quoteType"),
                )
                for q in (search.quotes or [])
                if q.get("symbol")
            ]
        except asyncio.TimeoutError:
            logger.warning(f"yfinance search timed out for {keywords}")
            return []
        except Exception as e:
            logger.error(f"yfinance search error for {keywords}: {e}")
            return []
