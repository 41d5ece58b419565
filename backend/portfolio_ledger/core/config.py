from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Portfolio Ledger"
    DATABASE_URL: str = "sqlite+aiosqlite:///./portfolio_ledger.db"

    # Connection pool (ignored for in-memory SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_RECYCLE: int = 300  # seconds

    # Ledger
    CASH_SYMBOL: str = "USD"     # the single supported cash unit
    TRADE_MAX_RETRIES: int = 3   # optimistic-lock retries per trade

    # Market data
    QUOTE_PROVIDER: str = "TWELVE_DATA"  # TWELVE_DATA | YFINANCE
    TWELVE_DATA_API_KEY: Optional[str] = None
    TWELVE_DATA_BASE_URL: str = "https://api.twelvedata.com"
    QUOTE_TIMEOUT_SECONDS: float = 10.0
    HTTP_PROXY: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    ALLOWED_ORIGINS: List[str] = []

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
