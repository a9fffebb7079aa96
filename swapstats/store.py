"""
Collaborator interfaces consumed by the analytics core.

EventStore implementations raise TransientStoreFailure or
PermanentStoreFailure; they never retry on their own.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from swapstats.models import SwapEvent, TokenDirectoryEntry, WalletDirectoryEntry
from swapstats.predicates import Predicate

# SwapEvent field -> swaps table column
SWAP_COLUMNS = {
    'time': 'swap_time',
    'value_usd': 'value_usd',
    'amount_in': 'amount_in',
    'amount_out': 'amount_out',
    'token_in_ref': 'token_in_ref',
    'token_out_ref': 'token_out_ref',
    'wallet_ref': 'wallet_ref',
    'dex_key': 'dex_key',
    'txn_hash': 'txn_hash',
    'slot': 'slot',
}

SWAP_FIELDS = tuple(SWAP_COLUMNS)

REQUIRED_FIELDS = ('time', 'value_usd', 'amount_in', 'amount_out',
                   'token_in_ref', 'token_out_ref', 'wallet_ref', 'dex_key')


def check_fields(fields: Optional[Sequence[str]]) -> Sequence[str]:
    """Validate a field list; None selects every column"""
    if fields is None:
        return SWAP_FIELDS
    unknown = [f for f in fields if f not in SWAP_COLUMNS]
    if unknown:
        raise ValueError(f"Unknown swap field(s): {', '.join(unknown)}")
    missing = [f for f in REQUIRED_FIELDS if f not in fields]
    if missing:
        raise ValueError(f"Swap queries must select: {', '.join(missing)}")
    return tuple(fields)


class EventStore(Protocol):
    def query(self, predicate: Predicate, fields: Optional[Sequence[str]] = None) -> List[SwapEvent]:
        """Swaps matching the predicate, ordered by time ascending"""


class Directory(Protocol):
    def resolve_tokens_by_ref(self, refs: Iterable[int]) -> Dict[int, TokenDirectoryEntry]:
        ...

    def resolve_tokens_by_address(self, addresses: Iterable[str]) -> Dict[int, TokenDirectoryEntry]:
        ...

    def resolve_wallets_by_ref(self, refs: Iterable[int]) -> Dict[int, WalletDirectoryEntry]:
        ...

    def resolve_wallets_by_address(self, addresses: Iterable[str]) -> List[WalletDirectoryEntry]:
        ...


class SupplyOracle(Protocol):
    def get_supply(self, address: str) -> Optional[float]:
        """Circulating supply in UI units, or None when unknown"""
