"""
Data models shared by the aggregation stages.

SwapEvent and the directory entries are produced outside this package and
are frozen. Result models are rebuilt on every request.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class SwapEvent(BaseModel):
    """One DEX trade from the append-only swaps log"""

    model_config = ConfigDict(frozen=True)

    time: int
    value_usd: float
    amount_in: float
    amount_out: float
    token_in_ref: int
    token_out_ref: int
    wallet_ref: int
    dex_key: int
    txn_hash: Optional[str] = None
    slot: Optional[int] = None


class TokenDirectoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    token_ref: int
    address: str
    circulating_supply: Optional[float] = None
    bundled_supply: Optional[float] = None


class WalletDirectoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    wallet_ref: int
    address: str
    txn_count: int = 0
    usd_value: float = 0.0


class TokenStatsResult(BaseModel):
    address: str
    net_flow: float
    volume: float
    tx_count: int
    unique_makers: int
    price: float
    market_cap: float
    price_change: float


class OHLCVBar(BaseModel):
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    net_flow: float


class TokenPnl(BaseModel):
    address: str
    pnl: float


class SwapReplay(BaseModel):
    timestamp: int
    token_in: str
    token_out: str
    amount_in: float
    amount_out: float
    value_usd: float
    dex: Optional[str] = None


class WalletStatsResult(BaseModel):
    address: str
    volume: float
    tokens_traded: int
    avg_hold_time: float
    avg_trade_size: float
    pnl: float
    tx_count: int
    top_tokens_by_pnl: Optional[List[TokenPnl]] = None
    swaps: Optional[List[SwapReplay]] = None


class EnrichedSwap(SwapEvent):
    """A swap with its wallet and token refs resolved to addresses"""

    wallet_address: str
    token_in_address: str
    token_out_address: str
