"""
Swap Event Store Client

Executes read queries against the event store and the directory with a
fixed retry policy: transient failures are retried after a fixed delay,
everything else propagates on the first attempt.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from swapstats.config import MAX_QUERY_ATTEMPTS, RETRY_DELAY_SECONDS
from swapstats.errors import QueryExhausted, TransientStoreFailure
from swapstats.models import SwapEvent, TokenDirectoryEntry, WalletDirectoryEntry
from swapstats.predicates import Predicate
from swapstats.store import Directory, EventStore

logger = logging.getLogger(__name__)

T = TypeVar('T')


class StoreClient:
    """Retrying wrapper around an EventStore"""

    def __init__(self, store: EventStore, max_attempts: int = MAX_QUERY_ATTEMPTS,
                 retry_delay: float = RETRY_DELAY_SECONDS, sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def query(self, predicate: Predicate, fields: Optional[Sequence[str]] = None) -> List[SwapEvent]:
        """Execute query with retry logic"""
        return self.call(self.store.query, predicate, fields)

    def call(self, fn: Callable[..., T], *args) -> T:
        """Run any store read under the retry policy"""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn(*args)
            except TransientStoreFailure as e:
                if attempt == self.max_attempts:
                    raise QueryExhausted(attempt, e) from e
                logger.warning(
                    "%s failed (attempt %d/%d): %s, retrying in %.1fs",
                    getattr(fn, '__name__', 'Query'), attempt, self.max_attempts, e, self.retry_delay
                )
                self.sleep(self.retry_delay)


class RetryingDirectory:
    """Directory wrapper running every lookup through a StoreClient's retry policy"""

    def __init__(self, directory: Directory, client: StoreClient):
        self.directory = directory
        self.client = client

    def resolve_tokens_by_ref(self, refs: Iterable[int]) -> Dict[int, TokenDirectoryEntry]:
        return self.client.call(self.directory.resolve_tokens_by_ref, list(refs))

    def resolve_tokens_by_address(self, addresses: Iterable[str]) -> Dict[int, TokenDirectoryEntry]:
        return self.client.call(self.directory.resolve_tokens_by_address, list(addresses))

    def resolve_wallets_by_ref(self, refs: Iterable[int]) -> Dict[int, WalletDirectoryEntry]:
        return self.client.call(self.directory.resolve_wallets_by_ref, list(refs))

    def resolve_wallets_by_address(self, addresses: Iterable[str]) -> List[WalletDirectoryEntry]:
        return self.client.call(self.directory.resolve_wallets_by_address, list(addresses))
