"""
Swap Filter Predicates

Typed filter conditions for swap queries. Each predicate compiles to a
parametrized SQL fragment (psycopg2 '%s' placeholders, values never
interpolated) and can also be evaluated against an in-memory SwapEvent.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Tuple, Union

from swapstats.models import SwapEvent

SqlFragment = Tuple[str, List]


def _frozen(values: Iterable[int]) -> FrozenSet[int]:
    return frozenset(int(v) for v in values)


@dataclass(frozen=True)
class TimeRange:
    """swap_time within [start, end], both ends inclusive"""
    start: int
    end: int

    def to_sql(self) -> SqlFragment:
        return "swap_time >= %s AND swap_time <= %s", [self.start, self.end]

    def matches(self, swap: SwapEvent) -> bool:
        return self.start <= swap.time <= self.end


@dataclass(frozen=True)
class DexIn:
    keys: FrozenSet[int]

    def __init__(self, keys: Iterable[int]):
        object.__setattr__(self, 'keys', _frozen(keys))

    def to_sql(self) -> SqlFragment:
        return "dex_key = ANY(%s)", [sorted(self.keys)]

    def matches(self, swap: SwapEvent) -> bool:
        return swap.dex_key in self.keys


@dataclass(frozen=True)
class WalletRefIn:
    refs: FrozenSet[int]

    def __init__(self, refs: Iterable[int]):
        object.__setattr__(self, 'refs', _frozen(refs))

    def to_sql(self) -> SqlFragment:
        return "wallet_ref = ANY(%s)", [sorted(self.refs)]

    def matches(self, swap: SwapEvent) -> bool:
        return swap.wallet_ref in self.refs


@dataclass(frozen=True)
class TokenRefIn:
    """
    Token filter on one leg of the swap.

    leg='in' matches token_in_ref, leg='out' matches token_out_ref and
    leg='any' matches a swap where either leg is in the set.
    """
    refs: FrozenSet[int]
    leg: str = 'any'

    LEGS = ('in', 'out', 'any')

    def __init__(self, refs: Iterable[int], leg: str = 'any'):
        if leg not in self.LEGS:
            raise ValueError(f"Invalid token leg: {leg}. Use 'in', 'out' or 'any'")
        object.__setattr__(self, 'refs', _frozen(refs))
        object.__setattr__(self, 'leg', leg)

    def to_sql(self) -> SqlFragment:
        refs = sorted(self.refs)
        if self.leg == 'in':
            return "token_in_ref = ANY(%s)", [refs]
        if self.leg == 'out':
            return "token_out_ref = ANY(%s)", [refs]
        return "(token_in_ref = ANY(%s) OR token_out_ref = ANY(%s))", [refs, refs]

    def matches(self, swap: SwapEvent) -> bool:
        if self.leg == 'in':
            return swap.token_in_ref in self.refs
        if self.leg == 'out':
            return swap.token_out_ref in self.refs
        return swap.token_in_ref in self.refs or swap.token_out_ref in self.refs


Condition = Union[TimeRange, DexIn, WalletRefIn, TokenRefIn]


@dataclass(frozen=True)
class All:
    """Conjunction of conditions; an empty conjunction matches everything"""
    conditions: Tuple[Condition, ...] = ()

    def __init__(self, *conditions: Condition):
        object.__setattr__(self, 'conditions', tuple(c for c in conditions if c is not None))

    def to_sql(self) -> SqlFragment:
        if not self.conditions:
            return "TRUE", []
        clauses, params = [], []
        for condition in self.conditions:
            clause, values = condition.to_sql()
            clauses.append(clause)
            params.extend(values)
        return " AND ".join(clauses), params

    def matches(self, swap: SwapEvent) -> bool:
        return all(c.matches(swap) for c in self.conditions)


Predicate = Union[All, Condition]
