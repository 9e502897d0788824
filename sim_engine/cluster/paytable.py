"""Tiered cluster paytable: a cluster pays the highest tier not above its size."""

import bisect

from config.cluster_schema import validate_tiers


class PayoutResolver:

    def __init__(self, paytable: dict):
        self._tiers = {}
        for symbol, tiers in paytable.items():
            validate_tiers(symbol, tiers)
            sizes = tuple(sorted(tiers))
            self._tiers[symbol] = (sizes, tuple(tiers[s] for s in sizes))

    def resolve(self, symbol, size: int) -> float:
        """Stake multiplier for one cluster; 0 if the symbol or size doesn't pay."""
        entry = self._tiers.get(symbol)
        if entry is None:
            return 0.0
        sizes, mults = entry
        idx = bisect.bisect_right(sizes, size) - 1
        return mults[idx] if idx >= 0 else 0.0

    def min_size(self, symbol) -> int:
        entry = self._tiers.get(symbol)
        return entry[0][0] if entry else 0
