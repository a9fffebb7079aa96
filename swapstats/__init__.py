"""Swap analytics: token flow, OHLCV candles and wallet performance from DEX swap events."""

from swapstats.analytics import SwapAnalytics
from swapstats.options import TokenStatsOptions, TransactionFilter, WalletStatsOptions

__all__ = ['SwapAnalytics', 'TokenStatsOptions', 'TransactionFilter', 'WalletStatsOptions']
