"""
Per-request options.

Each operation takes one fully specified options value. Every field has a
default, so `TokenStatsOptions()` describes the default request.
"""

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from swapstats.config import DEFAULT_DEXES, DEX_KEYS, QUERY_BATCH_SIZE
from swapstats.filters import Bounds
from swapstats.period import resolve_window

TokenSortKey = Literal['netFlow', 'volume', 'txCount', 'uniqueMakers', 'priceChange']
WalletSortKey = Literal['volume', 'pnl', 'txCount', 'tokensTraded', 'avgHoldTime', 'avgTradeSize']
SortOrder = Literal['asc', 'desc']


class WindowOptions(BaseModel):
    period: str = Field('5m', description="Lookback period ending now, used when start_timestamp is not set")
    start_timestamp: Optional[int] = Field(None, description="Window start (epoch seconds, inclusive)")
    end_timestamp: Optional[int] = Field(None, description="Window end (epoch seconds, inclusive); defaults to now")
    dexes: List[str] = Field(default_factory=lambda: list(DEFAULT_DEXES),
                             description="DEX names to include; defaults to every known DEX")

    @field_validator('dexes')
    @classmethod
    def check_dexes(cls, dexes: List[str]) -> List[str]:
        unknown = [d for d in dexes if d not in DEX_KEYS]
        if unknown:
            raise ValueError(f"Unknown dex(es): {', '.join(unknown)}. Use {', '.join(DEX_KEYS)}")
        return dexes

    def window(self, now: Optional[int] = None) -> Tuple[int, int]:
        return resolve_window(self.period, self.start_timestamp, self.end_timestamp, now)

    def dex_keys(self) -> List[int]:
        return [DEX_KEYS[d] for d in self.dexes]


class TokenStatsOptions(WindowOptions):
    token_refs: Optional[List[int]] = Field(None, description="Only report these token refs")
    token_addresses: Optional[List[str]] = Field(
        None, description="Only report these tokens; unknown addresses are ignored")
    sort_by: Optional[TokenSortKey] = Field(
        'netFlow', description="Sort key; None orders by absolute net flow, largest first")
    sort_order: SortOrder = Field('desc', description="Sort direction")
    limit: int = Field(100, ge=1, description="Maximum number of tokens returned")

    # Inclusive bounds, None = unbounded
    min_market_cap: Optional[float] = None
    max_market_cap: Optional[float] = None
    min_volume: Optional[float] = None
    max_volume: Optional[float] = None
    min_net_flow: Optional[float] = None
    max_net_flow: Optional[float] = None
    min_price_change: Optional[float] = None
    max_price_change: Optional[float] = None
    min_tx_count: Optional[int] = None
    max_tx_count: Optional[int] = None
    min_unique_makers: Optional[int] = None
    max_unique_makers: Optional[int] = None

    def ranges(self) -> Dict[str, Bounds]:
        """Only the fields that carry at least one bound"""
        ranges = {}
        for field in ('market_cap', 'volume', 'net_flow', 'price_change', 'tx_count', 'unique_makers'):
            low = getattr(self, f'min_{field}')
            high = getattr(self, f'max_{field}')
            if low is not None or high is not None:
                ranges[field] = (low, high)
        return ranges


class WalletStatsOptions(WindowOptions):
    wallet_refs: Optional[List[int]] = Field(None, description="Only these wallet refs")
    wallet_addresses: Optional[List[str]] = Field(
        None, description="Only these wallets; unknown addresses are ignored")
    token_refs: Optional[List[int]] = Field(None, description="Only swaps touching these token refs")
    token_addresses: Optional[List[str]] = Field(
        None, description="Only swaps touching these tokens; unknown addresses are ignored")
    include_swaps: bool = Field(True, description="Attach the ordered swap replay to each wallet")
    include_top_tokens: bool = Field(True, description="Attach the top tokens by PnL to each wallet")
    sort_by: Optional[WalletSortKey] = Field('volume', description="Sort key; None keeps first-seen order")
    sort_order: SortOrder = Field('desc', description="Sort direction")


class TransactionFilter(WindowOptions):
    wallet_addresses: Optional[List[str]] = Field(
        None, description="Only swaps by these wallets; unknown addresses are ignored")
    token_addresses: Optional[List[str]] = Field(
        None, description="Only swaps touching these tokens; unknown addresses are ignored")
    batch_size: int = Field(QUERY_BATCH_SIZE, ge=1, description="Max refs per sub-query")
