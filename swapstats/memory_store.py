"""
In-memory event store and directory.

Evaluates the same predicates as the Postgres backend, which makes the
aggregation stages testable without a database.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from swapstats.models import SwapEvent, TokenDirectoryEntry, WalletDirectoryEntry
from swapstats.predicates import Predicate
from swapstats.store import check_fields


class InMemoryEventStore:
    """Holds swaps in a list; queries scan it in time order"""

    def __init__(self, swaps: Iterable[SwapEvent] = ()):
        self.swaps = list(swaps)
        self.queries = []

    def query(self, predicate: Predicate, fields: Optional[Sequence[str]] = None) -> List[SwapEvent]:
        fields = check_fields(fields)
        self.queries.append(predicate)
        matched = [s for s in self.swaps if predicate.matches(s)]
        # sorted() is stable, so equal timestamps keep insertion order
        matched = sorted(matched, key=lambda s: s.time)
        if len(fields) == len(SwapEvent.model_fields):
            return matched
        return [SwapEvent(**{f: getattr(s, f) for f in fields}) for s in matched]


class InMemoryDirectory:
    """Token and wallet lookups backed by dicts; counts batched calls"""

    def __init__(self, tokens: Iterable[TokenDirectoryEntry] = (), wallets: Iterable[WalletDirectoryEntry] = ()):
        self.tokens = {t.token_ref: t for t in tokens}
        self.wallets = {w.wallet_ref: w for w in wallets}
        self.calls = []

    def resolve_tokens_by_ref(self, refs: Iterable[int]) -> Dict[int, TokenDirectoryEntry]:
        refs = set(refs)
        self.calls.append(('tokens_by_ref', refs))
        return {ref: self.tokens[ref] for ref in refs if ref in self.tokens}

    def resolve_tokens_by_address(self, addresses: Iterable[str]) -> Dict[int, TokenDirectoryEntry]:
        addresses = set(addresses)
        self.calls.append(('tokens_by_address', addresses))
        return {t.token_ref: t for t in self.tokens.values() if t.address in addresses}

    def resolve_wallets_by_ref(self, refs: Iterable[int]) -> Dict[int, WalletDirectoryEntry]:
        refs = set(refs)
        self.calls.append(('wallets_by_ref', refs))
        return {ref: self.wallets[ref] for ref in refs if ref in self.wallets}

    def resolve_wallets_by_address(self, addresses: Iterable[str]) -> List[WalletDirectoryEntry]:
        addresses = set(addresses)
        self.calls.append(('wallets_by_address', addresses))
        return [w for w in self.wallets.values() if w.address in addresses]
