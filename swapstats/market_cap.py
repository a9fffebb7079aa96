"""
Market Cap Enricher

Joins a token's price with its circulating supply. Supply comes from the
directory when known, otherwise from the supply oracle, otherwise from a
fixed fallback of one billion tokens (a documented approximation).
"""

import logging
from typing import Dict, Mapping

from swapstats.config import FALLBACK_SUPPLY
from swapstats.models import TokenDirectoryEntry
from swapstats.store import SupplyOracle

logger = logging.getLogger(__name__)


class MarketCapEnricher:
    def __init__(self, oracle: SupplyOracle, fallback_supply: float = FALLBACK_SUPPLY):
        self.oracle = oracle
        self.fallback_supply = fallback_supply

    def resolve_supply(self, entry: TokenDirectoryEntry) -> float:
        if entry.circulating_supply:
            return entry.circulating_supply
        supply = self.oracle.get_supply(entry.address)
        if not supply:
            logger.debug("No supply for %s, using fallback %s", entry.address, self.fallback_supply)
            return self.fallback_supply
        return supply

    def market_caps(self, prices: Mapping[int, float],
                    entries: Mapping[int, TokenDirectoryEntry]) -> Dict[int, float]:
        """
        Market cap per token ref.

        Args:
            prices: token ref -> last price
            entries: directory entries for at least every ref in prices

        Returns:
            token ref -> price * supply, one supply lookup per ref
        """
        return {
            ref: price * self.resolve_supply(entries[ref])
            for ref, price in prices.items()
        }
