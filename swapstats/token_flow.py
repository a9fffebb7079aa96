"""
Token Flow Aggregator

This module aggregates swap data per token and calculates buy/sell flow,
transaction counts, distinct makers and first/last prices. Buy and sell
direction is defined against the base tokens (SOL / wrapped SOL).
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from swapstats.config import BASE_TOKEN_REFS, NULL_TOKEN_REF
from swapstats.errors import InconsistentDirectory
from swapstats.filters import filter_stats, sort_stats
from swapstats.market_cap import MarketCapEnricher
from swapstats.models import SwapEvent, TokenStatsResult
from swapstats.options import TokenStatsOptions
from swapstats.predicates import All, DexIn, TimeRange, TokenRefIn
from swapstats.store import Directory
from swapstats.store_client import StoreClient
from swapstats.transactions import resolve_token_refs

logger = logging.getLogger(__name__)


def swap_price(value_usd: float, amount: float) -> Optional[float]:
    """USD price per token unit; None when the token amount is zero"""
    if not amount:
        return None
    return value_usd / amount


def price_change(first_price: Optional[float], last_price: Optional[float]) -> float:
    """Percentage change from first to last price, 0 when either is missing or first is 0"""
    if not first_price or last_price is None:
        return 0.0
    return (last_price - first_price) / first_price * 100


class TokenFlowAggregator:
    """Aggregates swaps into per-token flow statistics"""

    def __init__(self, base_token_refs: Iterable[int] = BASE_TOKEN_REFS):
        self.base_token_refs = frozenset(base_token_refs)
        self.excluded_refs = self.base_token_refs | {NULL_TOKEN_REF}

    def _new_token(self):
        return {
            'buy_flow': 0.0,
            'buy_count': 0,
            'buyers': set(),
            'sell_flow': 0.0,
            'sell_count': 0,
            'sellers': set(),
        }

    def role(self, swap: SwapEvent) -> Optional[str]:
        """
        'buy' when base goes in and a non-base token comes out, 'sell' for
        the reverse, None for swaps that do not cross the base token.
        """
        base_in = swap.token_in_ref in self.base_token_refs
        base_out = swap.token_out_ref in self.base_token_refs
        if base_in and not base_out:
            return 'buy'
        if base_out and not base_in:
            return 'sell'
        return None

    def track_prices(self, swaps: Iterable[SwapEvent]) -> Dict[int, Dict]:
        """
        First and last price per token over both legs.

        The out-leg is priced as value / amount_out and the in-leg as
        value / amount_in. Ties on timestamp keep the first swap in scan
        order for the first price and the last one for the last price.
        """
        prices: Dict[int, Dict] = {}
        for swap in swaps:
            for token, amount in ((swap.token_out_ref, swap.amount_out), (swap.token_in_ref, swap.amount_in)):
                price = swap_price(swap.value_usd, amount)
                if price is None:
                    continue
                entry = prices.get(token)
                if entry is None:
                    prices[token] = {
                        'first_time': swap.time, 'first_price': price,
                        'last_time': swap.time, 'last_price': price,
                    }
                    continue
                if swap.time < entry['first_time']:
                    entry['first_time'], entry['first_price'] = swap.time, price
                if swap.time >= entry['last_time']:
                    entry['last_time'], entry['last_price'] = swap.time, price
        return prices

    def aggregate(self, swaps: List[SwapEvent], allowed_refs: Optional[Set[int]] = None) -> Dict[int, Dict]:
        """
        Aggregate swaps per token.

        Args:
            swaps: Swap events for one window/dex set, in time order
            allowed_refs: Only report these tokens (None reports all)

        Returns:
            Dictionary mapping token refs to net_flow, volume, tx_count,
            unique_makers, first_price, last_price and price_change
        """
        flows = defaultdict(self._new_token)

        for swap in swaps:
            role = self.role(swap)
            if role == 'buy':
                data = flows[swap.token_out_ref]
                data['buy_flow'] += swap.value_usd
                data['buy_count'] += 1
                data['buyers'].add(swap.wallet_ref)
            elif role == 'sell':
                data = flows[swap.token_in_ref]
                data['sell_flow'] += swap.value_usd
                data['sell_count'] += 1
                data['sellers'].add(swap.wallet_ref)

        prices = self.track_prices(swaps)

        results = {}
        for token, data in flows.items():
            if token in self.excluded_refs:
                continue
            if allowed_refs is not None and token not in allowed_refs:
                continue
            price = prices.get(token, {})
            first_price = price.get('first_price')
            last_price = price.get('last_price')
            results[token] = {
                'buy_flow': data['buy_flow'],
                'sell_flow': data['sell_flow'],
                'net_flow': data['buy_flow'] - data['sell_flow'],
                'volume': data['buy_flow'] + data['sell_flow'],
                'tx_count': data['buy_count'] + data['sell_count'],
                # A wallet on both sides counts once as buyer and once as seller
                'unique_makers': len(data['buyers']) + len(data['sellers']),
                'first_price': first_price,
                'last_price': last_price,
                'price_change': price_change(first_price, last_price),
            }
        return results


class TokenStatsQuery:
    """Window query -> token aggregation -> market cap -> filter/sort -> limit"""

    def __init__(self, client: StoreClient, directory: Directory, enricher: MarketCapEnricher,
                 aggregator: Optional[TokenFlowAggregator] = None):
        self.client = client
        self.directory = directory
        self.enricher = enricher
        self.aggregator = aggregator or TokenFlowAggregator()

    def fetch_token_stats(self, opts: TokenStatsOptions, now: Optional[int] = None) -> List[TokenStatsResult]:
        start, end = opts.window(now)
        allowed = resolve_token_refs(self.directory, opts.token_refs, opts.token_addresses)
        if allowed is not None and not allowed:
            logger.debug("Token filter matched no directory entries")
            return []

        predicate = All(
            TimeRange(start, end),
            DexIn(opts.dex_keys()),
            TokenRefIn(allowed, 'any') if allowed is not None else None
        )
        swaps = self.client.query(predicate)
        logger.debug("Aggregating %d swaps between %d and %d", len(swaps), start, end)

        rows = self.aggregator.aggregate(swaps, allowed)
        if not rows:
            return []

        entries = self.directory.resolve_tokens_by_ref(rows.keys())
        missing = set(rows) - set(entries)
        if missing:
            raise InconsistentDirectory('token', missing)

        prices = {token: row['last_price'] or 0.0 for token, row in rows.items()}
        market_caps = self.enricher.market_caps(prices, entries)

        stats = [
            TokenStatsResult(
                address=entries[token].address,
                net_flow=row['net_flow'],
                volume=row['volume'],
                tx_count=row['tx_count'],
                unique_makers=row['unique_makers'],
                price=prices[token],
                market_cap=market_caps[token],
                price_change=row['price_change']
            )
            for token, row in rows.items()
        ]

        stats = filter_stats(stats, opts.ranges())
        stats = sort_stats(stats, opts.sort_by, opts.sort_order)
        return stats[:opts.limit]
