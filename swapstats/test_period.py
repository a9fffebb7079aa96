import unittest

from swapstats.errors import InvalidPeriod
from swapstats.period import parse_interval, period_seconds, resolve_period, resolve_window, validate_period

NOW = 1_760_000_000


class TestPeriod(unittest.TestCase):
    def test_units(self):
        self.assertEqual(resolve_period('30s', NOW), NOW - 30)
        self.assertEqual(resolve_period('5m', NOW), NOW - 300)
        self.assertEqual(resolve_period('2h', NOW), NOW - 7200)
        self.assertEqual(resolve_period('1d', NOW), NOW - 86400)
        self.assertEqual(resolve_period('3w', NOW), NOW - 3 * 604800)

    def test_malformed(self):
        for bad in ('', '5', 'm5', '5y', '5 m', '-5m', '5m ', '1.5h'):
            with self.assertRaises(InvalidPeriod, msg=bad):
                period_seconds(bad)

    def test_invalid_period_is_value_error(self):
        with self.assertRaises(ValueError):
            resolve_period('abc', NOW)

    def test_request_bounds(self):
        for ok in ('1s', '3600s', '60m', '24h', '7d', '52w'):
            validate_period(ok)
        for bad in ('0m', '3601s', '61m', '25h', '8d', '53w'):
            with self.assertRaises(InvalidPeriod, msg=bad):
                validate_period(bad)

    def test_interval(self):
        self.assertEqual(parse_interval('15m'), 900)
        self.assertEqual(parse_interval('30s'), 30)
        self.assertEqual(parse_interval('1h'), 3600)
        for bad in ('1d', '1w', '0m', 'x'):
            with self.assertRaises(InvalidPeriod, msg=bad):
                parse_interval(bad)

    def test_window(self):
        self.assertEqual(resolve_window('5m', now=NOW), (NOW - 300, NOW))
        self.assertEqual(resolve_window('5m', start=100, end=200, now=NOW), (100, 200))
        self.assertEqual(resolve_window(None, start=100, now=NOW), (100, NOW))
        with self.assertRaises(InvalidPeriod):
            resolve_window(None, now=NOW)


if __name__ == '__main__':
    unittest.main()
