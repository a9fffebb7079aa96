import logging
import threading
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import ValidationError
from dotenv import load_dotenv

from swapstats.analytics import SwapAnalytics
from swapstats.errors import InvalidPeriod
from swapstats.options import TokenStatsOptions, TransactionFilter, WalletStatsOptions
from swapstats.period import parse_interval, validate_period

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SwapStats API",
    description="Token flow, OHLCV and wallet performance analytics over DEX swaps.",
    version="1.0.0"
)

_analytics: Optional[SwapAnalytics] = None
_analytics_lock = threading.Lock()


def get_analytics() -> SwapAnalytics:
    """Shared SwapAnalytics, built once on first use (one connection pool per process)"""
    global _analytics
    if _analytics is None:
        with _analytics_lock:
            if _analytics is None:
                _analytics = SwapAnalytics.from_env()
    return _analytics


def split_list(value: Optional[str]) -> Optional[List[str]]:
    """Comma separated query value -> list (None when absent)"""
    if value is None:
        return None
    return [v.strip() for v in value.split(',') if v.strip()]


def split_ints(value: Optional[str]) -> Optional[List[int]]:
    values = split_list(value)
    if values is None:
        return None
    try:
        return [int(v) for v in values]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid integer list: {value}")


def build(model, **params):
    """Build an options model, dropping absent params so model defaults apply"""
    try:
        if params.get('period') is not None:
            validate_period(params['period'])
        return model(**{k: v for k, v in params.items() if v is not None})
    except (InvalidPeriod, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))


def run(operation, *args):
    try:
        return operation(*args)
    except HTTPException:
        raise
    except InvalidPeriod as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Request failed")
        raise HTTPException(status_code=500, detail=str(e))


# --- Endpoints ---

@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


@app.get("/api/token-stats", tags=["Tokens"])
def token_stats(
    period: Optional[str] = Query(None, description="Lookback period, e.g. 5m, 1h, 1d"),
    start_timestamp: Optional[int] = None,
    end_timestamp: Optional[int] = None,
    dexes: Optional[str] = Query(None, description="Comma separated DEX names"),
    token_addresses: Optional[str] = Query(None, description="Comma separated token addresses"),
    token_refs: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    limit: Optional[int] = None,
    min_market_cap: Optional[float] = None,
    max_market_cap: Optional[float] = None,
    min_volume: Optional[float] = None,
    max_volume: Optional[float] = None,
    min_net_flow: Optional[float] = None,
    max_net_flow: Optional[float] = None,
    min_price_change: Optional[float] = None,
    max_price_change: Optional[float] = None,
    min_tx_count: Optional[int] = None,
    max_tx_count: Optional[int] = None,
    min_unique_makers: Optional[int] = None,
    max_unique_makers: Optional[int] = None,
    analytics: SwapAnalytics = Depends(get_analytics)
):
    """Per-token flow, volume, price and market cap over a window."""
    opts = build(
        TokenStatsOptions,
        period=period,
        start_timestamp=start_timestamp,
        end_timestamp=end_timestamp,
        dexes=split_list(dexes),
        token_addresses=split_list(token_addresses),
        token_refs=split_ints(token_refs),
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        min_market_cap=min_market_cap,
        max_market_cap=max_market_cap,
        min_volume=min_volume,
        max_volume=max_volume,
        min_net_flow=min_net_flow,
        max_net_flow=max_net_flow,
        min_price_change=min_price_change,
        max_price_change=max_price_change,
        min_tx_count=min_tx_count,
        max_tx_count=max_tx_count,
        min_unique_makers=min_unique_makers,
        max_unique_makers=max_unique_makers
    )
    return run(analytics.fetch_token_stats, opts)


@app.get("/api/token-ohlcv", tags=["Tokens"])
def token_ohlcv(
    token_address: str,
    time_from: int,
    time_to: int,
    period: str = Query('15m', description="Candle interval, e.g. 30s, 15m, 1h"),
    analytics: SwapAnalytics = Depends(get_analytics)
):
    """OHLCV candles for one token."""
    try:
        parse_interval(period)
    except InvalidPeriod as e:
        raise HTTPException(status_code=400, detail=str(e))
    return run(analytics.fetch_token_ohlcv, token_address, time_from, time_to, period)


@app.get("/api/wallet-stats", tags=["Wallets"])
def wallet_stats(
    period: Optional[str] = Query(None, description="Lookback period, e.g. 5m, 1h, 1d"),
    start_timestamp: Optional[int] = None,
    end_timestamp: Optional[int] = None,
    dexes: Optional[str] = None,
    wallet_addresses: Optional[str] = None,
    wallet_refs: Optional[str] = None,
    token_addresses: Optional[str] = None,
    token_refs: Optional[str] = None,
    include_swaps: Optional[bool] = None,
    include_top_tokens: Optional[bool] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    analytics: SwapAnalytics = Depends(get_analytics)
):
    """Volume, PnL approximation and hold time per wallet."""
    opts = build(
        WalletStatsOptions,
        period=period,
        start_timestamp=start_timestamp,
        end_timestamp=end_timestamp,
        dexes=split_list(dexes),
        wallet_addresses=split_list(wallet_addresses),
        wallet_refs=split_ints(wallet_refs),
        token_addresses=split_list(token_addresses),
        token_refs=split_ints(token_refs),
        include_swaps=include_swaps,
        include_top_tokens=include_top_tokens,
        sort_by=sort_by,
        sort_order=sort_order
    )
    return run(analytics.fetch_wallet_stats, opts)


@app.get("/api/transactions", tags=["Transactions"])
def transactions(
    period: Optional[str] = Query(None, description="Lookback period, e.g. 5m, 1h, 1d"),
    start_timestamp: Optional[int] = None,
    end_timestamp: Optional[int] = None,
    dexes: Optional[str] = None,
    wallet_addresses: Optional[str] = None,
    token_addresses: Optional[str] = None,
    enrich: bool = Query(False, description="Attach wallet and token addresses"),
    analytics: SwapAnalytics = Depends(get_analytics)
):
    """Raw swaps for a window, optionally narrowed to wallets and/or tokens."""
    opts = build(
        TransactionFilter,
        period=period,
        start_timestamp=start_timestamp,
        end_timestamp=end_timestamp,
        dexes=split_list(dexes),
        wallet_addresses=split_list(wallet_addresses),
        token_addresses=split_list(token_addresses)
    )
    swaps = run(analytics.fetch_transactions, opts)
    if enrich:
        return run(analytics.enrich_transactions, swaps)
    return swaps


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
