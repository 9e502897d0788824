"""Weighted symbol sampling: cumulative weights + binary search."""

import bisect
from itertools import accumulate

from config.cluster_schema import validate_weights


class WeightedSampler:
    """Draws symbols with probability weight / total weight.

    Zero-weight symbols are dropped at construction and can never be drawn.
    Negative weights or a zero total raise ConfigurationError.
    """

    def __init__(self, weights: dict):
        validate_weights(weights)
        items = [(s, w) for s, w in weights.items() if w > 0]
        self.symbols = tuple(s for s, _ in items)
        self.cum_weights = tuple(accumulate(w for _, w in items))
        self.total_weight = self.cum_weights[-1]

    def probability(self, symbol) -> float:
        if symbol not in self.symbols:
            return 0.0
        i = self.symbols.index(symbol)
        prev = self.cum_weights[i - 1] if i else 0
        return (self.cum_weights[i] - prev) / self.total_weight

    def draw(self, rng):
        idx = bisect.bisect_right(self.cum_weights, rng.random() * self.total_weight)
        return self.symbols[min(idx, len(self.symbols) - 1)]

    def draw_many(self, rng, k: int) -> list:
        # random.choices does the same bisect over cum_weights, in C
        return rng.choices(self.symbols, cum_weights=self.cum_weights, k=k)
