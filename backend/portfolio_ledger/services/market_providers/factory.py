import logging

from portfolio_ledger.core.config import Settings
from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.market_providers.twelve_data import TwelveDataProvider
from portfolio_ledger.services.market_providers.yfinance import YFinanceProvider

logger = logging.getLogger(__name__)

# 供应商工厂 (Factory Pattern)
# 职责：根据配置选择行情来源并实例化。实例在应用启动时创建一次，关闭时释放。
class ProviderFactory:
    SOURCES = ("TWELVE_DATA", "YFINANCE")

    @classmethod
    def create(cls, settings: Settings) -> MarketDataProvider:
        source = (settings.QUOTE_PROVIDER or "").upper()
        if source not in cls.SOURCES:
            logger.warning(f"Unknown QUOTE_PROVIDER {settings.QUOTE_PROVIDER!r}, falling back to TWELVE_DATA")
            source = "TWELVE_DATA"

        if source == "YFINANCE":
            return YFinanceProvider(timeout=settings.QUOTE_TIMEOUT_SECONDS, proxy=settings.HTTP_PROXY)

        return TwelveDataProvider(
            api_key=settings.TWELVE_DATA_API_KEY,
            base_url=settings.TWELVE_DATA_BASE_URL,
            timeout=settings.QUOTE_TIMEOUT_SECONDS,
            proxy=settings.HTTP_PROXY,
        )
