import unittest

import requests

from swapstats.errors import SupplyOracleError
from swapstats.market_cap import MarketCapEnricher
from swapstats.models import TokenDirectoryEntry
from swapstats.supply_oracle import CachedSupplyOracle, SolanaSupplyOracle, TTLCache


class CountingOracle:
    def __init__(self, supplies):
        self.supplies = supplies
        self.calls = []

    def get_supply(self, address):
        self.calls.append(address)
        return self.supplies.get(address)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeResponse:
    def __init__(self, payload, status_error=None):
        self.payload = payload
        self.status_error = status_error

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        if self.error:
            raise self.error
        return self.response


class TestMarketCapEnricher(unittest.TestCase):
    def setUp(self):
        self.entries = {
            1: TokenDirectoryEntry(token_ref=1, address='Known', circulating_supply=500.0),
            2: TokenDirectoryEntry(token_ref=2, address='FromRpc'),
            3: TokenDirectoryEntry(token_ref=3, address='Unknown'),
        }
        self.oracle = CountingOracle({'FromRpc': 1000.0})
        self.enricher = MarketCapEnricher(self.oracle)

    def test_supply_sources(self):
        caps = self.enricher.market_caps({1: 2.0, 2: 3.0, 3: 0.5}, self.entries)

        self.assertEqual(caps[1], 1000.0)
        self.assertEqual(caps[2], 3000.0)
        self.assertEqual(caps[3], 0.5 * 1_000_000_000)

    def test_directory_supply_skips_oracle(self):
        self.enricher.market_caps({1: 2.0}, self.entries)
        self.assertEqual(self.oracle.calls, [])

    def test_one_lookup_per_token(self):
        self.enricher.market_caps({2: 1.0, 3: 1.0}, self.entries)
        self.assertEqual(sorted(self.oracle.calls), ['FromRpc', 'Unknown'])

    def test_zero_supply_uses_fallback(self):
        enricher = MarketCapEnricher(CountingOracle({'FromRpc': 0.0}), fallback_supply=10)
        self.assertEqual(enricher.market_caps({2: 4.0}, self.entries), {2: 40.0})


class TestCachedSupplyOracle(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.inner = CountingOracle({'Mint': 42.0})
        self.oracle = CachedSupplyOracle(self.inner, ttl_seconds=10, clock=self.clock)

    def test_cached_within_ttl(self):
        self.assertEqual(self.oracle.get_supply('Mint'), 42.0)
        self.clock.now = 9.5
        self.assertEqual(self.oracle.get_supply('Mint'), 42.0)
        self.assertEqual(self.inner.calls, ['Mint'])

    def test_expires_after_ttl(self):
        self.oracle.get_supply('Mint')
        self.clock.now = 10.5
        self.oracle.get_supply('Mint')
        self.assertEqual(self.inner.calls, ['Mint', 'Mint'])

    def test_unknown_supply_is_cached(self):
        self.assertIsNone(self.oracle.get_supply('Other'))
        self.assertIsNone(self.oracle.get_supply('Other'))
        self.assertEqual(self.inner.calls, ['Other'])

    def test_cache_evicts_oldest(self):
        cache = TTLCache(60, maxsize=2, clock=self.clock)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.set('c', 3)
        self.assertEqual(cache.get('a'), (False, None))
        self.assertEqual(cache.get('c'), (True, 3))


class TestSolanaSupplyOracle(unittest.TestCase):
    def test_reads_ui_amount(self):
        session = FakeSession(FakeResponse({'jsonrpc': '2.0', 'result': {'value': {'uiAmount': 123.5}}}))
        oracle = SolanaSupplyOracle('http://rpc', timeout=3, session=session)

        self.assertEqual(oracle.get_supply('Mint'), 123.5)
        url, payload, timeout = session.posts[0]
        self.assertEqual(url, 'http://rpc')
        self.assertEqual(payload['method'], 'getTokenSupply')
        self.assertEqual(payload['params'][0], 'Mint')
        self.assertEqual(timeout, 3)

    def test_missing_amount(self):
        session = FakeSession(FakeResponse({'result': {'value': {'uiAmount': None}}}))
        self.assertIsNone(SolanaSupplyOracle(session=session).get_supply('Mint'))

    def test_rpc_error(self):
        session = FakeSession(FakeResponse({'error': {'code': -32602, 'message': 'Invalid param'}}))
        with self.assertRaises(SupplyOracleError):
            SolanaSupplyOracle(session=session).get_supply('Mint')

    def test_transport_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError('refused'))
        with self.assertRaises(SupplyOracleError):
            SolanaSupplyOracle(session=session).get_supply('Mint')

    def test_http_error(self):
        session = FakeSession(FakeResponse({}, status_error=requests.exceptions.HTTPError('502')))
        with self.assertRaises(SupplyOracleError):
            SolanaSupplyOracle(session=session).get_supply('Mint')


if __name__ == '__main__':
    unittest.main()
