import httpx
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from portfolio_ledger.schemas.market_data import ProviderQuote, TimeSeries, OHLCVItem, SymbolMatch
from portfolio_ledger.services.market_providers.base import MarketDataProvider, parse_decimal

logger = logging.getLogger(__name__)

# Twelve Data 行情实现
# 上游报错时返回 {"code": 400, "status": "error", "message": "..."}，HTTP 状态码可能仍是 200。
class TwelveDataProvider(MarketDataProvider):
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.twelvedata.com",
        timeout: float = 10.0,
        proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        if not self.api_key:
            logger.warning("TWELVE_DATA_API_KEY not set. Quotes will be unavailable.")
        # 显式超时：行情接口挂起不能拖住交易请求
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            proxy=proxy,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """单次 GET，不重试。任何失败都记日志并返回 None。"""
        if not self.api_key:
            return None
        try:
            response = await self._client.get(path, params={**params, "apikey": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            logger.warning(f"Twelve Data {path} timed out for {params}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Twelve Data {path} request failed for {params}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Twelve Data {path} returned a malformed payload for {params}")
            return None
        if data.get("status") == "error":
            logger.error(f"Twelve Data API error ({data.get('code')}): {data.get('message')}")
            return None
        return data

    async def get_quote(self, symbol: str) -> Optional[ProviderQuote]:
        data = await self._get("/quote", {"symbol": symbol})
        if data is None:
            return None

        price = parse_decimal(data.get("close"))
        if not data.get("symbol") or price is None:
            logger.error(f"No usable quote in Twelve Data response for {symbol}")
            return None

        last_updated = None
        if data.get("timestamp"):
            try:
                last_updated = datetime.utcfromtimestamp(int(data["timestamp"]))
            except (TypeError, ValueError):
                last_updated = None

        return ProviderQuote(
            symbol=data["symbol"],
            price=price,
            name=data.get("name"),
            exchange=data.get("exchange"),
            currency=data.get("currency"),
            change=parse_decimal(data.get("change")),
            change_percent=parse_decimal(data.get("percent_change")),
            last_updated=last_updated,
        )

    async def get_time_series(self, symbol: str, interval: str = "1day", outputsize: int = 30) -> Optional[TimeSeries]:
        data = await self._get("/time_series", {"symbol": symbol, "interval": interval, "outputsize": outputsize})
        if data is None:
            return None

        meta = data.get("meta")
        values = data.get("values")
        if not isinstance(meta, dict) or not isinstance(values, list):
            logger.error(f"Twelve Data time series for {symbol} is missing meta/values")
            return None

        items = []
        for row in values:
            try:
                items.append(OHLCVItem(
                    time=row["datetime"],
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row["volume"]) if row.get("volume") not in (None, "") else None,
                ))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Skipping malformed bar for {symbol}: {row}")

        return TimeSeries(symbol=meta.get("symbol", symbol), interval=meta.get("interval", interval), meta=meta, values=items)

    async def search_symbols(self, keywords: str) -> List[SymbolMatch]:
        data = await self._get("/symbol_search", {"symbol": keywords})
        if data is None:
            return []

        matches = []
        for row in data.get("data") or []:
            if not isinstance(row, dict) or not row.get("symbol"):
                continue
            matches.append(SymbolMatch(
                symbol=row["symbol"],
                name=row.get("instrument_name"),
                exchange=row.get("exchange"),
                country=row.get("country"),
                instrument_type=row.get("instrument_type"),
            ))
        return matches
