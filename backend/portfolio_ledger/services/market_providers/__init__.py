from portfolio_ledger.services.market_providers.base import MarketDataProvider
from portfolio_ledger.services.market_providers.twelve_data import TwelveDataProvider
from portfolio_ledger.services.market_providers.yfinance import YFinanceProvider
from portfolio_ledger.services.market_providers.factory import ProviderFactory

__all__ = ["MarketDataProvider", "TwelveDataProvider", "YFinanceProvider", "ProviderFactory"]
