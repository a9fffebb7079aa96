"""
Filter & Sort Stage

Pure functions applied to aggregated results: inclusive range filters and
a single-key stable sort.
"""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from swapstats.models import TokenStatsResult

T = TypeVar('T')

Bounds = Tuple[Optional[float], Optional[float]]

# Result fields that accept a (min, max) range
RANGE_FIELDS = ('market_cap', 'net_flow', 'price_change', 'tx_count', 'unique_makers', 'volume')

# 'volume' is the total flow, buy + sell
TOKEN_SORT_KEYS: Dict[str, Callable[[TokenStatsResult], float]] = {
    'netFlow': lambda s: s.net_flow,
    'volume': lambda s: s.volume,
    'txCount': lambda s: s.tx_count,
    'uniqueMakers': lambda s: s.unique_makers,
    'priceChange': lambda s: s.price_change,
}


def within(value: float, low: Optional[float], high: Optional[float]) -> bool:
    """Inclusive range check; a None bound is unbounded"""
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def filter_stats(stats: Sequence[TokenStatsResult], ranges: Mapping[str, Bounds]) -> List[TokenStatsResult]:
    """Keep results whose every bounded field lies inside its range"""
    unknown = set(ranges) - set(RANGE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot filter on: {', '.join(sorted(unknown))}")
    return [
        s for s in stats
        if all(within(getattr(s, field), low, high) for field, (low, high) in ranges.items())
    ]


def stable_sort(items: Sequence[T], key: Callable[[T], float], sort_order: str = 'desc') -> List[T]:
    if sort_order not in ('asc', 'desc'):
        raise ValueError(f"Invalid sort order: {sort_order}. Use 'asc' or 'desc'")
    # reverse=True keeps equal elements in input order
    return sorted(items, key=key, reverse=sort_order == 'desc')


def sort_stats(stats: Sequence[TokenStatsResult], sort_by: Optional[str] = None,
               sort_order: str = 'desc') -> List[TokenStatsResult]:
    """
    Sort token stats by one key.

    With no key, results are ordered by absolute net flow, largest first.
    """
    if sort_by is None:
        return stable_sort(stats, lambda s: abs(s.net_flow), 'desc')
    if sort_by not in TOKEN_SORT_KEYS:
        raise ValueError(f"Invalid sort key: {sort_by}. Use one of {', '.join(TOKEN_SORT_KEYS)}")
    return stable_sort(stats, TOKEN_SORT_KEYS[sort_by], sort_order)
