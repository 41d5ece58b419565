from typing import List
from fastapi import APIRouter, Depends, HTTPException

from portfolio_ledger.api.deps import get_quote_gateway
from portfolio_ledger.schemas.market_data import ProviderQuote, TimeSeries, SymbolMatch
from portfolio_ledger.services.market_providers.base import MarketDataProvider

router = APIRouter()

@router.get("/quote/{symbol}", response_model=ProviderQuote)
async def get_stock_quote(symbol: str, quotes: MarketDataProvider = Depends(get_quote_gateway)):
    """实时报价"""
    symbol = symbol.upper().strip()
    quote = await quotes.get_quote(symbol)
    if quote is None:
        raise HTTPException(status_code=404, detail="Stock data not found")
    return quote

@router.get("/search/{keywords}", response_model=List[SymbolMatch])
async def search_stocks(keywords: str, quotes: MarketDataProvider = Depends(get_quote_gateway)):
    """股票代码搜索"""
    matches = await quotes.search_symbols(keywords.strip())
    if not matches:
        raise HTTPException(status_code=404, detail="No matching stocks found")
    return matches

@router.get("/{symbol}", response_model=TimeSeries)
async def get_stock_history(
    symbol: str,
    interval: str = "1day",   # 频率，如 1min / 1h / 1day / 1week
    outputsize: int = 30,     # K 线根数
    quotes: MarketDataProvider = Depends(get_quote_gateway),
):
    """
    历史 K 线数据，专为图表打造
    """
    if outputsize < 1 or outputsize > 5000:
        raise HTTPException(status_code=400, detail="outputsize must be between 1 and 5000")
    series = await quotes.get_time_series(symbol.upper().strip(), interval=interval, outputsize=outputsize)
    if series is None or not series.values:
        raise HTTPException(status_code=404, detail="Stock data not found")
    return series
