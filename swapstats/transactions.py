"""
Transaction Query Layer

Retrieves raw swaps for a window, optionally narrowed to a set of wallet
and/or token addresses. Addresses are resolved to directory refs first;
large ref sets are split into bounded sub-queries.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from swapstats.errors import InconsistentDirectory
from swapstats.models import EnrichedSwap, SwapEvent
from swapstats.options import TransactionFilter
from swapstats.predicates import All, DexIn, TimeRange, TokenRefIn, WalletRefIn
from swapstats.store import Directory
from swapstats.store_client import StoreClient

logger = logging.getLogger(__name__)


def resolve_token_refs(directory: Directory, refs: Optional[Iterable[int]],
                       addresses: Optional[Iterable[str]]) -> Optional[Set[int]]:
    """
    Combine explicit token refs with refs resolved from addresses.

    Returns None when no token filter was requested, and an empty set when
    a filter was requested but nothing matched. Unknown addresses are dropped.
    """
    if refs is None and addresses is None:
        return None
    resolved = set(refs or [])
    addresses = list(addresses or [])
    if addresses:
        resolved.update(directory.resolve_tokens_by_address(addresses))
    return resolved


def resolve_wallet_refs(directory: Directory, refs: Optional[Iterable[int]],
                        addresses: Optional[Iterable[str]]) -> Optional[Set[int]]:
    """Wallet counterpart of resolve_token_refs"""
    if refs is None and addresses is None:
        return None
    resolved = set(refs or [])
    addresses = list(addresses or [])
    if addresses:
        resolved.update(w.wallet_ref for w in directory.resolve_wallets_by_address(addresses))
    return resolved


def chunk(refs: Iterable[int], size: int) -> List[List[int]]:
    """Split refs into sorted chunks of at most `size` items"""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    refs = sorted(refs)
    return [refs[i:i + size] for i in range(0, len(refs), size)]


class TransactionQuery:
    """Batched raw swap retrieval"""

    def __init__(self, client: StoreClient, directory: Directory):
        self.client = client
        self.directory = directory

    def fetch_transactions(self, opts: TransactionFilter, now: Optional[int] = None) -> List[SwapEvent]:
        start, end = opts.window(now)
        wallet_refs = resolve_wallet_refs(self.directory, None, opts.wallet_addresses)
        token_refs = resolve_token_refs(self.directory, None, opts.token_addresses)

        # A filter that resolved to nothing must not turn into an unfiltered scan
        if wallet_refs is not None and not wallet_refs:
            logger.debug("No wallet address resolved, returning no transactions")
            return []
        if token_refs is not None and not token_refs:
            logger.debug("No token address resolved, returning no transactions")
            return []

        base = [TimeRange(start, end), DexIn(opts.dex_keys())]
        wallet_chunks = chunk(wallet_refs, opts.batch_size) if wallet_refs is not None else [None]
        token_chunks = chunk(token_refs, opts.batch_size) if token_refs is not None else [None]

        # Token chunk index per ref; a swap whose in- and out-leg fall in different
        # chunks is returned by both sub-queries and is kept from the first one only.
        chunk_of: Dict[int, int] = {}
        for index, refs in enumerate(token_chunks):
            for ref in refs or []:
                chunk_of[ref] = index

        results = []
        for wallets in wallet_chunks:
            for index, tokens in enumerate(token_chunks):
                conditions = list(base)
                if wallets is not None:
                    conditions.append(WalletRefIn(wallets))
                if tokens is not None:
                    conditions.append(TokenRefIn(tokens, 'any'))
                batch = self.client.query(All(*conditions))
                if tokens is not None:
                    batch = [s for s in batch if self._first_chunk(s, chunk_of) == index]
                results.extend(batch)

        logger.debug("Fetched %d transactions in %d batch(es)", len(results),
                     len(wallet_chunks) * len(token_chunks))
        return results

    @staticmethod
    def _first_chunk(swap: SwapEvent, chunk_of: Dict[int, int]) -> int:
        return min(chunk_of[ref] for ref in (swap.token_in_ref, swap.token_out_ref) if ref in chunk_of)

    def enrich_transactions(self, swaps: Sequence[SwapEvent]) -> List[EnrichedSwap]:
        """Attach wallet and token addresses using one directory call per kind"""
        if not swaps:
            return []
        wallet_refs = {s.wallet_ref for s in swaps}
        token_refs = {s.token_in_ref for s in swaps} | {s.token_out_ref for s in swaps}

        wallets = self.directory.resolve_wallets_by_ref(wallet_refs)
        missing = wallet_refs - set(wallets)
        if missing:
            raise InconsistentDirectory('wallet', missing)
        tokens = self.directory.resolve_tokens_by_ref(token_refs)
        missing = token_refs - set(tokens)
        if missing:
            raise InconsistentDirectory('token', missing)

        return [
            EnrichedSwap(
                **s.model_dump(),
                wallet_address=wallets[s.wallet_ref].address,
                token_in_address=tokens[s.token_in_ref].address,
                token_out_address=tokens[s.token_out_ref].address
            )
            for s in swaps
        ]
