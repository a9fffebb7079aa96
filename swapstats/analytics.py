"""
SwapAnalytics

Entry point used by the HTTP server and the CLI. Wires the store client,
directory and supply oracle into the four read operations.
"""

import logging
from typing import List, Optional, Sequence

from swapstats.market_cap import MarketCapEnricher
from swapstats.models import EnrichedSwap, OHLCVBar, SwapEvent, TokenStatsResult, WalletStatsResult
from swapstats.ohlcv import OHLCVQuery
from swapstats.options import TokenStatsOptions, TransactionFilter, WalletStatsOptions
from swapstats.store import Directory, EventStore, SupplyOracle
from swapstats.store_client import RetryingDirectory, StoreClient
from swapstats.token_flow import TokenStatsQuery
from swapstats.transactions import TransactionQuery
from swapstats.wallet_stats import WalletStatsQuery

logger = logging.getLogger(__name__)


class SwapAnalytics:
    def __init__(self, store: EventStore, directory: Directory, oracle: SupplyOracle,
                 client: Optional[StoreClient] = None):
        self.client = client or StoreClient(store)
        directory = RetryingDirectory(directory, self.client)
        self.directory = directory
        self.enricher = MarketCapEnricher(oracle)
        self.tokens = TokenStatsQuery(self.client, directory, self.enricher)
        self.candles = OHLCVQuery(self.client, directory)
        self.wallets = WalletStatsQuery(self.client, directory)
        self.transactions = TransactionQuery(self.client, directory)

    @classmethod
    def from_env(cls) -> 'SwapAnalytics':
        """Postgres store/directory and a cached Solana RPC oracle, configured from the environment"""
        from swapstats.postgres_store import PostgresConnector, PostgresDirectory, PostgresEventStore, create_pool
        from swapstats.supply_oracle import CachedSupplyOracle, SolanaSupplyOracle

        connector = PostgresConnector(create_pool())
        return cls(
            store=PostgresEventStore(connector),
            directory=PostgresDirectory(connector),
            oracle=CachedSupplyOracle(SolanaSupplyOracle())
        )

    def fetch_token_stats(self, opts: Optional[TokenStatsOptions] = None,
                          now: Optional[int] = None) -> List[TokenStatsResult]:
        return self.tokens.fetch_token_stats(opts or TokenStatsOptions(), now)

    def fetch_token_ohlcv(self, token_address: str, time_from: int, time_to: int,
                          period: str = '15m') -> List[OHLCVBar]:
        return self.candles.fetch_token_ohlcv(token_address, time_from, time_to, period)

    def fetch_wallet_stats(self, opts: Optional[WalletStatsOptions] = None,
                           now: Optional[int] = None) -> List[WalletStatsResult]:
        return self.wallets.fetch_wallet_stats(opts or WalletStatsOptions(), now)

    def fetch_transactions(self, opts: Optional[TransactionFilter] = None,
                           now: Optional[int] = None) -> List[SwapEvent]:
        return self.transactions.fetch_transactions(opts or TransactionFilter(), now)

    def enrich_transactions(self, swaps: Sequence[SwapEvent]) -> List[EnrichedSwap]:
        return self.transactions.enrich_transactions(swaps)
