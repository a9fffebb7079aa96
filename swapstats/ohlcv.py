"""
OHLCV Bucketizer

Buckets one token's swap history into fixed-width candles aligned to the
interval boundary. Empty buckets are omitted.
"""

import logging
from typing import Dict, List

from swapstats.models import OHLCVBar, SwapEvent
from swapstats.period import parse_interval
from swapstats.predicates import All, TimeRange, TokenRefIn
from swapstats.store import Directory
from swapstats.store_client import StoreClient
from swapstats.token_flow import swap_price

logger = logging.getLogger(__name__)


class OHLCVBucketizer:
    def __init__(self, interval_seconds: int):
        if interval_seconds < 1:
            raise ValueError("interval must be at least one second")
        self.interval = interval_seconds

    def bucket_start(self, timestamp: int) -> int:
        return timestamp - timestamp % self.interval

    def leg(self, swap: SwapEvent, token_ref: int):
        """(price, signed flow) of the token's leg; flow is negative when the token is sold"""
        if swap.token_in_ref == token_ref:
            return swap_price(swap.value_usd, swap.amount_in), -swap.amount_in
        return swap_price(swap.value_usd, swap.amount_out), swap.amount_out

    def bucketize(self, swaps: List[SwapEvent], token_ref: int) -> List[OHLCVBar]:
        """
        Build candles from swaps in scan order.

        Swaps without a price (zero token amount) still count toward volume
        and net flow; a candle with no priced swap reports 0 for OHLC.
        """
        buckets: Dict[int, Dict] = {}
        for swap in swaps:
            if token_ref not in (swap.token_in_ref, swap.token_out_ref):
                continue
            price, flow = self.leg(swap, token_ref)
            ts = self.bucket_start(swap.time)
            bucket = buckets.get(ts)
            if bucket is None:
                bucket = buckets[ts] = {
                    'open': None, 'high': None, 'low': None, 'close': None,
                    'volume': 0.0, 'net_flow': 0.0,
                }
            bucket['volume'] += swap.value_usd
            bucket['net_flow'] += flow
            if price is None:
                continue
            if bucket['open'] is None:
                bucket['open'] = bucket['high'] = bucket['low'] = price
            bucket['high'] = max(bucket['high'], price)
            bucket['low'] = min(bucket['low'], price)
            bucket['close'] = price

        return [
            OHLCVBar(
                timestamp=ts,
                open=b['open'] or 0.0,
                high=b['high'] or 0.0,
                low=b['low'] or 0.0,
                close=b['close'] or 0.0,
                volume=b['volume'],
                net_flow=b['net_flow']
            )
            for ts, b in sorted(buckets.items())
        ]


class OHLCVQuery:
    def __init__(self, client: StoreClient, directory: Directory):
        self.client = client
        self.directory = directory

    def fetch_token_ohlcv(self, token_address: str, time_from: int, time_to: int,
                          period: str = '15m') -> List[OHLCVBar]:
        bucketizer = OHLCVBucketizer(parse_interval(period))

        tokens = self.directory.resolve_tokens_by_address([token_address])
        if not tokens:
            logger.debug("Unknown token %s, no candles", token_address)
            return []
        token_ref = next(iter(tokens))

        swaps = self.client.query(All(TimeRange(time_from, time_to), TokenRefIn([token_ref], 'any')))
        return bucketizer.bucketize(swaps, token_ref)
