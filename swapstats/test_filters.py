import unittest

from swapstats.filters import filter_stats, sort_stats, stable_sort, within
from swapstats.models import TokenStatsResult


def stat(address, net_flow=0.0, volume=0.0, tx_count=0, unique_makers=0, market_cap=0.0, price_change=0.0):
    return TokenStatsResult(address=address, net_flow=net_flow, volume=volume, tx_count=tx_count,
                            unique_makers=unique_makers, price=1.0, market_cap=market_cap,
                            price_change=price_change)


class TestFilters(unittest.TestCase):
    def setUp(self):
        self.stats = [
            stat('a', net_flow=10, volume=100, tx_count=5, market_cap=1_000),
            stat('b', net_flow=-50, volume=60, tx_count=2, market_cap=50_000),
            stat('c', net_flow=10, volume=20, tx_count=9, market_cap=5_000),
            stat('d', net_flow=30, volume=30, tx_count=1, market_cap=0.0),
        ]

    def test_within_is_inclusive(self):
        self.assertTrue(within(5, 5, 5))
        self.assertTrue(within(5, None, None))
        self.assertFalse(within(4.99, 5, None))
        self.assertFalse(within(5.01, None, 5))

    def test_range_filter(self):
        kept = filter_stats(self.stats, {'market_cap': (1_000, 10_000)})
        self.assertEqual([s.address for s in kept], ['a', 'c'])

        kept = filter_stats(self.stats, {'net_flow': (0, None), 'tx_count': (None, 5)})
        self.assertEqual([s.address for s in kept], ['a', 'd'])

    def test_filter_is_idempotent(self):
        ranges = {'volume': (25, 100)}
        once = filter_stats(self.stats, ranges)
        self.assertEqual(filter_stats(once, ranges), once)

    def test_unknown_filter_field(self):
        with self.assertRaises(ValueError):
            filter_stats(self.stats, {'price': (0, 1)})

    def test_sort_is_stable(self):
        desc = sort_stats(self.stats, 'netFlow', 'desc')
        self.assertEqual([s.address for s in desc], ['d', 'a', 'c', 'b'])
        asc = sort_stats(self.stats, 'netFlow', 'asc')
        self.assertEqual([s.address for s in asc], ['b', 'a', 'c', 'd'])

    def test_default_sort_is_absolute_net_flow(self):
        ordered = sort_stats(self.stats)
        self.assertEqual([s.address for s in ordered], ['b', 'd', 'a', 'c'])

    def test_volume_sort_uses_total_flow(self):
        ordered = sort_stats(self.stats, 'volume')
        self.assertEqual([s.address for s in ordered], ['a', 'b', 'd', 'c'])

    def test_invalid_sort(self):
        with self.assertRaises(ValueError):
            sort_stats(self.stats, 'marketCap')
        with self.assertRaises(ValueError):
            stable_sort(self.stats, lambda s: s.volume, 'up')


if __name__ == '__main__':
    unittest.main()
