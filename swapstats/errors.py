"""
SwapStats Errors

Exceptions raised by the analytics core. Store backends signal transient
and permanent failures with distinct types so the store client never has
to inspect error messages.
"""


class SwapStatsError(Exception):
    """Base class for all analytics errors"""


class InvalidPeriod(SwapStatsError, ValueError):
    """Malformed or out-of-range period / interval string"""


class StoreFailure(SwapStatsError):
    """A read against the swap event store or directory failed"""


class TransientStoreFailure(StoreFailure):
    """Timeout or dropped connection; the same query may succeed if retried"""


class PermanentStoreFailure(StoreFailure):
    """Bad query, missing table, auth error... retrying will not help"""


class QueryExhausted(SwapStatsError):
    """Every retry attempt ended in a transient failure"""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Query failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class InconsistentDirectory(SwapStatsError):
    """An aggregated token/wallet ref has no directory entry"""

    def __init__(self, kind: str, refs):
        refs = sorted(refs)
        super().__init__(f"No {kind} mapping found for ref(s) {refs}")
        self.kind = kind
        self.refs = refs


class SupplyOracleError(SwapStatsError):
    """The supply RPC could not be reached or answered with an error"""
