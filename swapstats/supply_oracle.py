"""
Token Supply Oracle

Looks up circulating supply for a mint through the Solana JSON-RPC
getTokenSupply method. CachedSupplyOracle puts a short-lived, shared
read-through cache in front of any oracle.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests

from swapstats.config import RPC_TIMEOUT, SOLANA_RPC_URL, SUPPLY_CACHE_TTL
from swapstats.errors import SupplyOracleError
from swapstats.store import SupplyOracle

logger = logging.getLogger(__name__)


class SolanaSupplyOracle:
    """getTokenSupply over HTTP"""

    def __init__(self, rpc_url: str = SOLANA_RPC_URL, timeout: float = RPC_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_supply(self, address: str) -> Optional[float]:
        payload = {
            'jsonrpc': '2.0',
            'id': 1,
            'method': 'getTokenSupply',
            'params': [address, {'commitment': 'processed'}]
        }
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise SupplyOracleError(f"getTokenSupply failed for {address}: {e}") from e

        if 'error' in data:
            raise SupplyOracleError(f"getTokenSupply error for {address}: {data['error']}")

        value = (data.get('result') or {}).get('value') or {}
        supply = value.get('uiAmount')
        return float(supply) if supply is not None else None


class TTLCache:
    def __init__(self, ttl_seconds: float, maxsize: int, clock=time.monotonic):
        self.ttl = ttl_seconds
        self.maxsize = maxsize
        self.clock = clock
        self._store: Dict[Any, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key) -> Tuple[bool, Any]:
        with self._lock:
            rec = self._store.get(key)
            if not rec:
                return False, None
            exp, val = rec
            if exp < self.clock():
                self._store.pop(key, None)
                return False, None
            return True, val

    def set(self, key, val):
        with self._lock:
            if key not in self._store and len(self._store) >= self.maxsize:
                self._store.pop(next(iter(self._store)))
            self._store[key] = (self.clock() + self.ttl, val)


class CachedSupplyOracle:
    """Read-through cache; None answers are cached as well"""

    def __init__(self, oracle: SupplyOracle, ttl_seconds: float = SUPPLY_CACHE_TTL, maxsize: int = 10000,
                 clock=time.monotonic):
        self.oracle = oracle
        self.cache = TTLCache(ttl_seconds, maxsize, clock=clock)

    def get_supply(self, address: str) -> Optional[float]:
        hit, supply = self.cache.get(address)
        if hit:
            return supply
        supply = self.oracle.get_supply(address)
        self.cache.set(address, supply)
        return supply
