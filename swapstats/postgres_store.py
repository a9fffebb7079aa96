"""
Postgres Swap Store

Reads swap events and the token/wallet directory from the data warehouse.
Connections are borrowed from a psycopg2 ThreadedConnectionPool, one per
query. Driver errors are translated into TransientStoreFailure (dropped
connections, statement timeouts) or PermanentStoreFailure (everything else).
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Sequence

import psycopg2
import psycopg2.pool

from swapstats.config import (
    DATA_WAREHOUSE_DB,
    DB_POOL_MIN,
    DB_POOL_MAX,
    DB_STATEMENT_TIMEOUT_MS
)
from swapstats.errors import PermanentStoreFailure, TransientStoreFailure
from swapstats.models import SwapEvent, TokenDirectoryEntry, WalletDirectoryEntry
from swapstats.predicates import Predicate
from swapstats.store import SWAP_COLUMNS, check_fields

logger = logging.getLogger(__name__)

# OperationalError covers lost connections and QueryCanceled (statement_timeout);
# InterfaceError is raised on a connection the server already closed.
TRANSIENT_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.pool.PoolError)


def create_pool(dsn: str = DATA_WAREHOUSE_DB, minconn: int = DB_POOL_MIN, maxconn: int = DB_POOL_MAX,
                statement_timeout_ms: int = DB_STATEMENT_TIMEOUT_MS) -> psycopg2.pool.ThreadedConnectionPool:
    """Create the shared connection pool"""
    return psycopg2.pool.ThreadedConnectionPool(
        minconn,
        maxconn,
        dsn,
        options=f"-c statement_timeout={statement_timeout_ms}"
    )


class PostgresConnector:
    """Runs read-only statements on pooled connections"""

    def __init__(self, pool: psycopg2.pool.AbstractConnectionPool):
        self.pool = pool

    @contextmanager
    def _connection(self):
        try:
            conn = self.pool.getconn()
        except TRANSIENT_ERRORS as e:
            raise TransientStoreFailure(f"Could not get a database connection: {e}") from e
        broken = False
        try:
            yield conn
        except TRANSIENT_ERRORS:
            broken = True
            raise
        finally:
            try:
                if not broken:
                    conn.rollback()
            except psycopg2.Error as e:
                # rows already fetched stay valid; only the connection is discarded
                logger.warning("Rollback failed, discarding connection: %s", e)
                broken = True
            finally:
                self.pool.putconn(conn, close=broken)

    def fetch_all(self, query: str, params: Sequence) -> List[tuple]:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.fetchall()
        except TransientStoreFailure:
            raise
        except TRANSIENT_ERRORS as e:
            raise TransientStoreFailure(str(e)) from e
        except psycopg2.Error as e:
            raise PermanentStoreFailure(str(e)) from e


class PostgresEventStore:
    """Swap event reads against the swaps table"""

    def __init__(self, connector: PostgresConnector):
        self.connector = connector

    def build_query(self, predicate: Predicate, fields: Sequence[str]):
        where, params = predicate.to_sql()
        columns = ", ".join(SWAP_COLUMNS[f] for f in fields)
        query = f"""
            SELECT {columns}
            FROM swaps
            WHERE {where}
            ORDER BY swap_time ASC
        """
        return query, params

    def query(self, predicate: Predicate, fields: Optional[Sequence[str]] = None) -> List[SwapEvent]:
        fields = check_fields(fields)
        query, params = self.build_query(predicate, fields)
        logger.debug("Swap query %s params=%s", predicate, params)

        rows = self.connector.fetch_all(query, params)

        swaps = []
        for row in rows:
            record = dict(zip(fields, row))
            record['time'] = int(record['time'])
            for key in ('value_usd', 'amount_in', 'amount_out'):
                record[key] = float(record[key])
            swaps.append(SwapEvent(**record))

        logger.debug("Fetched %d swaps", len(swaps))
        return swaps


class PostgresDirectory:
    """Token and wallet directory lookups; every call is a single batched statement"""

    def __init__(self, connector: PostgresConnector):
        self.connector = connector

    @staticmethod
    def _token(row) -> TokenDirectoryEntry:
        return TokenDirectoryEntry(
            token_ref=int(row[0]),
            address=row[1],
            circulating_supply=float(row[2]) if row[2] is not None else None,
            bundled_supply=float(row[3]) if row[3] is not None else None
        )

    @staticmethod
    def _wallet(row) -> WalletDirectoryEntry:
        return WalletDirectoryEntry(
            wallet_ref=int(row[0]),
            address=row[1],
            txn_count=int(row[2] or 0),
            usd_value=float(row[3] or 0)
        )

    def resolve_tokens_by_ref(self, refs: Iterable[int]) -> Dict[int, TokenDirectoryEntry]:
        refs = sorted(set(refs))
        if not refs:
            return {}
        rows = self.connector.fetch_all(
            "SELECT id, address, token_supply, bundle_amt FROM tokens WHERE id = ANY(%s)",
            [refs]
        )
        return {int(row[0]): self._token(row) for row in rows}

    def resolve_tokens_by_address(self, addresses: Iterable[str]) -> Dict[int, TokenDirectoryEntry]:
        addresses = sorted(set(addresses))
        if not addresses:
            return {}
        rows = self.connector.fetch_all(
            "SELECT id, address, token_supply, bundle_amt FROM tokens WHERE address = ANY(%s)",
            [addresses]
        )
        return {int(row[0]): self._token(row) for row in rows}

    def resolve_wallets_by_ref(self, refs: Iterable[int]) -> Dict[int, WalletDirectoryEntry]:
        refs = sorted(set(refs))
        if not refs:
            return {}
        rows = self.connector.fetch_all(
            "SELECT id, address, txn_count, usd_value FROM wallets WHERE id = ANY(%s)",
            [refs]
        )
        return {int(row[0]): self._wallet(row) for row in rows}

    def resolve_wallets_by_address(self, addresses: Iterable[str]) -> List[WalletDirectoryEntry]:
        addresses = sorted(set(addresses))
        if not addresses:
            return []
        rows = self.connector.fetch_all(
            "SELECT id, address, txn_count, usd_value FROM wallets WHERE address = ANY(%s)",
            [addresses]
        )
        return [self._wallet(row) for row in rows]
