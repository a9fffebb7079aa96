import unittest

import psycopg2

from swapstats.errors import PermanentStoreFailure, TransientStoreFailure
from swapstats.postgres_store import PostgresConnector, PostgresDirectory, PostgresEventStore
from swapstats.predicates import All, DexIn, TimeRange


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params):
        self.conn.executed.append((query, params))
        if self.conn.error:
            raise self.conn.error

    def fetchall(self):
        return self.conn.rows


class FakeConnection:
    def __init__(self, rows=(), error=None, rollback_error=None):
        self.rows = list(rows)
        self.error = error
        self.rollback_error = rollback_error
        self.executed = []
        self.rolled_back = False

    def cursor(self):
        return FakeCursor(self)

    def rollback(self):
        self.rolled_back = True
        if self.rollback_error:
            raise self.rollback_error


class FakePool:
    def __init__(self, conn):
        self.conn = conn
        self.returned = []

    def getconn(self):
        return self.conn

    def putconn(self, conn, close=False):
        self.returned.append((conn, close))


class TestPostgresStore(unittest.TestCase):
    def test_rows_become_swap_events(self):
        conn = FakeConnection(rows=[
            (100, '12.5', '1.0', '2000.0', 2, 500, 7, 0, 'sig1', 300),
        ])
        pool = FakePool(conn)
        store = PostgresEventStore(PostgresConnector(pool))

        swaps = store.query(All(TimeRange(0, 200), DexIn([0])))

        self.assertEqual(len(swaps), 1)
        swap = swaps[0]
        self.assertEqual(swap.time, 100)
        self.assertEqual(swap.value_usd, 12.5)
        self.assertEqual(swap.amount_out, 2000.0)
        self.assertEqual(swap.txn_hash, 'sig1')
        query, params = conn.executed[0]
        self.assertIn("FROM swaps", query)
        self.assertIn("swap_time >= %s AND swap_time <= %s", query)
        self.assertEqual(params, [0, 200, [0]])
        self.assertEqual(pool.returned, [(conn, False)])

    def test_operational_error_is_transient(self):
        conn = FakeConnection(error=psycopg2.OperationalError('server closed the connection unexpectedly'))
        pool = FakePool(conn)
        store = PostgresEventStore(PostgresConnector(pool))
        with self.assertRaises(TransientStoreFailure):
            store.query(All(TimeRange(0, 1)))
        # broken connections are discarded
        self.assertEqual(pool.returned, [(conn, True)])

    def test_programming_error_is_permanent(self):
        conn = FakeConnection(error=psycopg2.ProgrammingError('relation "swaps" does not exist'))
        pool = FakePool(conn)
        store = PostgresEventStore(PostgresConnector(pool))
        with self.assertRaises(PermanentStoreFailure):
            store.query(All(TimeRange(0, 1)))
        self.assertTrue(conn.rolled_back)
        self.assertEqual(pool.returned, [(conn, False)])

    def test_failed_rollback_still_returns_connection(self):
        conn = FakeConnection(rows=[(1,)], rollback_error=psycopg2.InterfaceError('connection already closed'))
        pool = FakePool(conn)

        rows = PostgresConnector(pool).fetch_all("SELECT 1", [])

        self.assertEqual(rows, [(1,)])
        self.assertEqual(pool.returned, [(conn, True)])

    def test_failed_rollback_after_query_error(self):
        conn = FakeConnection(error=psycopg2.ProgrammingError('syntax error'),
                              rollback_error=psycopg2.InterfaceError('connection already closed'))
        pool = FakePool(conn)
        with self.assertRaises(PermanentStoreFailure):
            PostgresConnector(pool).fetch_all("SELEC 1", [])
        self.assertEqual(pool.returned, [(conn, True)])

    def test_unknown_field_rejected(self):
        store = PostgresEventStore(PostgresConnector(FakePool(FakeConnection())))
        with self.assertRaises(ValueError):
            store.query(All(), fields=['time', 'price'])

    def test_directory_batches_lookup(self):
        conn = FakeConnection(rows=[(5, 'MintA', None, '10'), (6, 'MintB', '1000', None)])
        directory = PostgresDirectory(PostgresConnector(FakePool(conn)))

        tokens = directory.resolve_tokens_by_ref([6, 5, 5])

        self.assertEqual(len(conn.executed), 1)
        self.assertEqual(conn.executed[0][1], [[5, 6]])
        self.assertIsNone(tokens[5].circulating_supply)
        self.assertEqual(tokens[6].circulating_supply, 1000.0)
        self.assertEqual(tokens[5].bundled_supply, 10.0)

    def test_directory_skips_empty_lookup(self):
        conn = FakeConnection()
        directory = PostgresDirectory(PostgresConnector(FakePool(conn)))
        self.assertEqual(directory.resolve_wallets_by_address([]), [])
        self.assertEqual(conn.executed, [])


if __name__ == '__main__':
    unittest.main()
