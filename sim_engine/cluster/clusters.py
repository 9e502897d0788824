"""
QUANTUM CATS — Cluster Evaluator

Finds every maximal 4-connected region of one anchor symbol plus Wilds.

Each anchor symbol gets its own flood-fill pass. Visited state is a stamp
array: a cell counts as visited only if it carries the current pass number,
so a Wild consumed while filling H1 is still free when L3 is filled. Wild,
Scatter and the connector never start a region; Scatter and the connector
never join one either.
"""

from dataclasses import dataclass
from typing import Iterable

from config.cluster_schema import ANCHOR_SYMBOLS, Symbol


@dataclass(frozen=True)
class Cluster:
    symbol: Symbol
    cells: tuple    # flat grid indices, discovery order

    @property
    def size(self) -> int:
        return len(self.cells)


class ClusterEvaluator:
    """Exact cluster detection for one grid at a time."""

    def __init__(self, min_size: int = 5, wild=Symbol.WD,
                 anchors: Iterable = ANCHOR_SYMBOLS):
        self.min_size = min_size
        self.wild = wild
        self.anchors = tuple(anchors)

    def find_clusters(self, grid) -> list[Cluster]:
        """All qualifying clusters, grouped by anchor order, row-major within."""
        cells = grid.cells
        adj = grid.neighbours()
        wild = self.wild
        stamp = [0] * len(cells)
        found = []

        for pass_id, anchor in enumerate(self.anchors, start=1):
            if anchor not in cells:
                continue
            for start, sym in enumerate(cells):
                if sym != anchor or stamp[start] == pass_id:
                    continue
                stamp[start] = pass_id
                region = [start]
                stack = [start]
                while stack:
                    i = stack.pop()
                    for j in adj[i]:
                        if stamp[j] != pass_id and (cells[j] == anchor or cells[j] == wild):
                            stamp[j] = pass_id
                            region.append(j)
                            stack.append(j)
                if len(region) >= self.min_size:
                    found.append(Cluster(anchor, tuple(region)))
        return found

    def cluster_sizes(self, grid) -> dict:
        """Symbol → list of qualifying cluster sizes, in discovery order."""
        sizes = {}
        for cluster in self.find_clusters(grid):
            sizes.setdefault(cluster.symbol, []).append(cluster.size)
        return sizes

    def describe(self, grid, cluster: Cluster) -> dict:
        """Human-readable view of one cluster (positions, wild share)."""
        return {
            "symbol": cluster.symbol.value,
            "size": cluster.size,
            "wilds": sum(1 for i in cluster.cells if grid.cells[i] == self.wild),
            "positions": sorted(grid.position(i) for i in cluster.cells),
        }
