"""
Wallet Performance Aggregator

Regroups swaps by wallet and computes volume, a PnL approximation, hold
times and the tokens each wallet did best on.

PnL here is one-sided: every swap adds its USD value to the token that was
acquired (the out-leg) and disposals are not netted against it. It is a
cheap activity-weighted score, not realized PnL.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from swapstats.config import DEX_NAMES, TOP_TOKENS_LIMIT
from swapstats.errors import InconsistentDirectory
from swapstats.filters import stable_sort
from swapstats.models import SwapEvent, SwapReplay, TokenPnl, WalletStatsResult
from swapstats.options import WalletStatsOptions
from swapstats.predicates import All, DexIn, TimeRange, TokenRefIn, WalletRefIn
from swapstats.store import Directory
from swapstats.store_client import StoreClient
from swapstats.transactions import resolve_token_refs, resolve_wallet_refs

logger = logging.getLogger(__name__)

WALLET_SORT_KEYS: Dict[str, Callable[[WalletStatsResult], float]] = {
    'volume': lambda w: w.volume,
    'pnl': lambda w: w.pnl,
    'txCount': lambda w: w.tx_count,
    'tokensTraded': lambda w: w.tokens_traded,
    'avgHoldTime': lambda w: w.avg_hold_time,
    'avgTradeSize': lambda w: w.avg_trade_size,
}


class WalletPerformanceAggregator:
    def __init__(self, top_tokens_limit: int = TOP_TOKENS_LIMIT):
        self.top_tokens_limit = top_tokens_limit

    @staticmethod
    def group_by_wallet(swaps: List[SwapEvent]) -> Dict[int, List[SwapEvent]]:
        """Group swaps per wallet, keeping scan order inside each group"""
        wallets = defaultdict(list)
        for swap in swaps:
            wallets[swap.wallet_ref].append(swap)
        return dict(wallets)

    def wallet_stats(self, swaps: List[SwapEvent]) -> Dict:
        """
        Stats for one wallet's swaps (in time order).

        Returns:
            Dictionary with volume, tx_count, tokens_traded, avg_hold_time,
            avg_trade_size, pnl and token_pnl (token ref -> pnl, in
            first-encounter order)
        """
        hold_times: Dict[int, Dict[str, int]] = {}
        token_pnl: Dict[int, float] = {}
        total_volume = 0.0

        for swap in swaps:
            total_volume += swap.value_usd

            # Hold time is tracked for acquired tokens; any later swap touching
            # the token moves its last_sell forward.
            acquired = hold_times.get(swap.token_out_ref)
            if acquired is None:
                hold_times[swap.token_out_ref] = {'first_buy': swap.time, 'last_sell': swap.time}
            else:
                acquired['last_sell'] = swap.time
            disposed = hold_times.get(swap.token_in_ref)
            if disposed is not None:
                disposed['last_sell'] = swap.time

            token_pnl[swap.token_out_ref] = token_pnl.get(swap.token_out_ref, 0.0) + swap.value_usd

        held = [t['last_sell'] - t['first_buy'] for t in hold_times.values()]
        return {
            'volume': total_volume,
            'tx_count': len(swaps),
            'tokens_traded': len(hold_times),
            'avg_hold_time': sum(held) / len(held) if held else 0.0,
            'avg_trade_size': total_volume / len(swaps) if swaps else 0.0,
            'pnl': sum(token_pnl.values()),
            'token_pnl': token_pnl,
        }

    def top_tokens(self, token_pnl: Dict[int, float]) -> List[tuple]:
        """Top tokens by descending PnL; ties keep first-encounter order"""
        ranked = stable_sort(list(token_pnl.items()), lambda item: item[1], 'desc')
        return ranked[:self.top_tokens_limit]


class WalletStatsQuery:
    def __init__(self, client: StoreClient, directory: Directory,
                 aggregator: Optional[WalletPerformanceAggregator] = None):
        self.client = client
        self.directory = directory
        self.aggregator = aggregator or WalletPerformanceAggregator()

    def fetch_wallet_stats(self, opts: WalletStatsOptions, now: Optional[int] = None) -> List[WalletStatsResult]:
        start, end = opts.window(now)

        wallet_refs = resolve_wallet_refs(self.directory, opts.wallet_refs, opts.wallet_addresses)
        if wallet_refs is not None and not wallet_refs:
            logger.debug("Wallet filter matched no directory entries")
            return []
        token_refs = resolve_token_refs(self.directory, opts.token_refs, opts.token_addresses)
        if token_refs is not None and not token_refs:
            logger.debug("Token filter matched no directory entries")
            return []

        predicate = All(
            TimeRange(start, end),
            DexIn(opts.dex_keys()),
            WalletRefIn(wallet_refs) if wallet_refs is not None else None,
            TokenRefIn(token_refs, 'any') if token_refs is not None else None
        )
        swaps = self.client.query(predicate)
        if not swaps:
            return []

        grouped = self.aggregator.group_by_wallet(swaps)
        logger.debug("Aggregating %d swaps across %d wallets", len(swaps), len(grouped))

        wallets = self.directory.resolve_wallets_by_ref(grouped.keys())
        missing = set(grouped) - set(wallets)
        if missing:
            raise InconsistentDirectory('wallet', missing)

        tokens = {}
        if opts.include_swaps or opts.include_top_tokens:
            needed = {s.token_in_ref for s in swaps} | {s.token_out_ref for s in swaps}
            tokens = self.directory.resolve_tokens_by_ref(needed)
            missing = needed - set(tokens)
            if missing:
                raise InconsistentDirectory('token', missing)

        results = []
        for wallet_ref, wallet_swaps in grouped.items():
            stats = self.aggregator.wallet_stats(wallet_swaps)
            result = WalletStatsResult(
                address=wallets[wallet_ref].address,
                volume=stats['volume'],
                tokens_traded=stats['tokens_traded'],
                avg_hold_time=stats['avg_hold_time'],
                avg_trade_size=stats['avg_trade_size'],
                pnl=stats['pnl'],
                tx_count=stats['tx_count']
            )
            if opts.include_top_tokens:
                result.top_tokens_by_pnl = [
                    TokenPnl(address=tokens[ref].address, pnl=pnl)
                    for ref, pnl in self.aggregator.top_tokens(stats['token_pnl'])
                ]
            if opts.include_swaps:
                result.swaps = [
                    SwapReplay(
                        timestamp=s.time,
                        token_in=tokens[s.token_in_ref].address,
                        token_out=tokens[s.token_out_ref].address,
                        amount_in=s.amount_in,
                        amount_out=s.amount_out,
                        value_usd=s.value_usd,
                        dex=DEX_NAMES.get(s.dex_key)
                    )
                    for s in wallet_swaps
                ]
            results.append(result)

        if opts.sort_by:
            results = stable_sort(results, WALLET_SORT_KEYS[opts.sort_by], opts.sort_order)
        return results
