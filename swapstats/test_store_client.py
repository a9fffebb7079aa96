import unittest

from swapstats.errors import PermanentStoreFailure, QueryExhausted, TransientStoreFailure
from swapstats.analytics import SwapAnalytics
from swapstats.memory_store import InMemoryDirectory, InMemoryEventStore
from swapstats.models import SwapEvent, TokenDirectoryEntry, WalletDirectoryEntry
from swapstats.options import WalletStatsOptions
from swapstats.predicates import All, TimeRange
from swapstats.store_client import RetryingDirectory, StoreClient

SWAP = SwapEvent(time=10, value_usd=1.0, amount_in=1.0, amount_out=1.0,
                 token_in_ref=2, token_out_ref=100, wallet_ref=1, dex_key=0)


class FlakyStore:
    """Fails with the queued errors, then returns [SWAP]"""

    def __init__(self, errors):
        self.errors = list(errors)
        self.calls = 0

    def query(self, predicate, fields=None):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return [SWAP]


class TestStoreClient(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.predicate = All(TimeRange(0, 100))

    def client(self, store):
        return StoreClient(store, sleep=self.sleeps.append)

    def test_success_first_try(self):
        store = FlakyStore([])
        self.assertEqual(self.client(store).query(self.predicate), [SWAP])
        self.assertEqual(store.calls, 1)
        self.assertEqual(self.sleeps, [])

    def test_retries_transient_then_succeeds(self):
        store = FlakyStore([TransientStoreFailure('timeout')] * 4)
        self.assertEqual(self.client(store).query(self.predicate), [SWAP])
        self.assertEqual(store.calls, 5)
        self.assertEqual(self.sleeps, [1.0] * 4)

    def test_exhausted_after_five_attempts(self):
        store = FlakyStore([TransientStoreFailure('connection reset')] * 5)
        with self.assertRaises(QueryExhausted) as ctx:
            self.client(store).query(self.predicate)
        self.assertEqual(store.calls, 5)
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertIsInstance(ctx.exception.last_error, TransientStoreFailure)
        # no sleep after the final attempt
        self.assertEqual(len(self.sleeps), 4)

    def test_permanent_failure_not_retried(self):
        store = FlakyStore([PermanentStoreFailure('relation "swaps" does not exist')])
        with self.assertRaises(PermanentStoreFailure):
            self.client(store).query(self.predicate)
        self.assertEqual(store.calls, 1)
        self.assertEqual(self.sleeps, [])

    def test_unrelated_errors_propagate(self):
        store = FlakyStore([KeyError('boom')])
        with self.assertRaises(KeyError):
            self.client(store).query(self.predicate)
        self.assertEqual(store.calls, 1)


class FlakyDirectory(InMemoryDirectory):
    """Wallet lookups fail with the queued errors before answering"""

    def __init__(self, errors, **kwargs):
        super().__init__(**kwargs)
        self.errors = list(errors)

    def resolve_wallets_by_ref(self, refs):
        if self.errors:
            raise self.errors.pop(0)
        return super().resolve_wallets_by_ref(refs)


class TestRetryingDirectory(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.directory = FlakyDirectory(
            [TransientStoreFailure('connection reset')],
            tokens=[TokenDirectoryEntry(token_ref=2, address='SolMint'),
                    TokenDirectoryEntry(token_ref=100, address='TokenMint')],
            wallets=[WalletDirectoryEntry(wallet_ref=1, address='WalletA')]
        )

    def test_transient_lookup_retried(self):
        client = StoreClient(FlakyStore([]), sleep=self.sleeps.append)
        directory = RetryingDirectory(self.directory, client)

        wallets = directory.resolve_wallets_by_ref(r for r in [1])

        self.assertEqual(wallets[1].address, 'WalletA')
        self.assertEqual(self.sleeps, [1.0])

    def test_exhausted_lookup(self):
        self.directory.errors = [TransientStoreFailure('connection reset')] * 5
        directory = RetryingDirectory(self.directory, StoreClient(FlakyStore([]), sleep=self.sleeps.append))
        with self.assertRaises(QueryExhausted):
            directory.resolve_wallets_by_ref([1])

    def test_permanent_lookup_not_retried(self):
        self.directory.errors = [PermanentStoreFailure('relation "wallets" does not exist')]
        directory = RetryingDirectory(self.directory, StoreClient(FlakyStore([]), sleep=self.sleeps.append))
        with self.assertRaises(PermanentStoreFailure):
            directory.resolve_wallets_by_ref([1])
        self.assertEqual(self.sleeps, [])

    def test_wallet_stats_survive_dropped_directory_connection(self):
        store = InMemoryEventStore([SWAP])
        analytics = SwapAnalytics(store, self.directory, oracle=None,
                                  client=StoreClient(store, sleep=self.sleeps.append))

        stats = analytics.fetch_wallet_stats(WalletStatsOptions(start_timestamp=0, end_timestamp=100))

        self.assertEqual([w.address for w in stats], ['WalletA'])
        self.assertEqual(self.sleeps, [1.0])


if __name__ == '__main__':
    unittest.main()
