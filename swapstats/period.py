"""
Period Resolver

Turns relative period strings ('5m', '1h', '2d', ...) into absolute
query windows, and candle interval strings into seconds.
"""

import re
import time
from typing import Optional, Tuple

from swapstats.errors import InvalidPeriod

PERIOD_PATTERN = re.compile(r'^(\d+)([smhdw])$')

UNIT_SECONDS = {
    's': 1,
    'm': 60,
    'h': 3600,
    'd': 86400,
    'w': 604800,
}

# Largest value accepted per unit when a period comes from a request
PERIOD_LIMITS = {
    's': 3600,
    'm': 60,
    'h': 24,
    'd': 7,
    'w': 52,
}

INTERVAL_UNITS = ('s', 'm', 'h')


def _split(period: str) -> Tuple[int, str]:
    match = PERIOD_PATTERN.fullmatch(period or '')
    if not match:
        raise InvalidPeriod(f"Invalid period format: {period!r}. Use '30s', '5m', '1h', '1d' or '1w'")
    return int(match.group(1)), match.group(2)


def period_seconds(period: str) -> int:
    """Length of a period string in seconds"""
    value, unit = _split(period)
    return value * UNIT_SECONDS[unit]


def resolve_period(period: str, now: Optional[int] = None) -> int:
    """
    Parse the period string and return the start timestamp.

    Args:
        period: Period like '5m', '1h', '1d' or '1w'
        now: Reference time in epoch seconds (defaults to the current time)

    Returns:
        Start timestamp in epoch seconds
    """
    if now is None:
        now = int(time.time())
    return now - period_seconds(period)


def validate_period(period: str) -> None:
    """Bound check for user supplied periods; raises InvalidPeriod"""
    value, unit = _split(period)
    if not 1 <= value <= PERIOD_LIMITS[unit]:
        raise InvalidPeriod(f"Period {period!r} out of range: {unit} must be between 1 and {PERIOD_LIMITS[unit]}")


def parse_interval(interval: str) -> int:
    """Candle width in seconds for intervals like '30s', '15m', '1h'"""
    value, unit = _split(interval)
    if unit not in INTERVAL_UNITS:
        raise InvalidPeriod(f"Unsupported interval unit in {interval!r}. Use 's', 'm' or 'h'")
    if value == 0:
        raise InvalidPeriod(f"Interval must be positive: {interval!r}")
    return value * UNIT_SECONDS[unit]


def resolve_window(period: Optional[str], start: Optional[int] = None, end: Optional[int] = None,
                   now: Optional[int] = None) -> Tuple[int, int]:
    """
    Resolve the inclusive [start, end] query window.

    Explicit timestamps win; a missing end defaults to now and a missing
    start is derived from the period relative to now.
    """
    if now is None:
        now = int(time.time())
    if end is None:
        end = now
    if start is None:
        if not period:
            raise InvalidPeriod("Either start_timestamp or a period must be specified")
        start = resolve_period(period, now)
    return start, end
