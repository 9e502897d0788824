"""
QUANTUM CATS — Symbol Grid

A Grid is a rows x cols board stored row-major in a flat tuple; (row, col)
addressing is 0-based. Neighbour tables are precomputed per shape so the
cluster flood fill never bounds-checks.
"""

from functools import lru_cache
from typing import Sequence


@lru_cache(maxsize=32)
def neighbour_table(rows: int, cols: int) -> tuple:
    """Flat index → tuple of up/down/left/right neighbour indices."""
    table = []
    for r in range(rows):
        for c in range(cols):
            adj = []
            if r > 0:
                adj.append((r - 1) * cols + c)
            if r < rows - 1:
                adj.append((r + 1) * cols + c)
            if c > 0:
                adj.append(r * cols + c - 1)
            if c < cols - 1:
                adj.append(r * cols + c + 1)
            table.append(tuple(adj))
    return tuple(table)


class Grid:
    __slots__ = ("rows", "cols", "cells")

    def __init__(self, rows: int, cols: int, cells: Sequence):
        if len(cells) != rows * cols:
            raise ValueError(f"expected {rows * cols} cells for a {rows}x{cols} grid, got {len(cells)}")
        self.rows = rows
        self.cols = cols
        self.cells = tuple(cells)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence]) -> "Grid":
        """Build from nested row lists (mainly for fixtures)."""
        width = len(rows[0]) if rows else 0
        if any(len(r) != width for r in rows):
            raise ValueError("grid rows must all have the same length")
        return cls(len(rows), width, [s for row in rows for s in row])

    def __getitem__(self, pos):
        r, c = pos
        return self.cells[r * self.cols + c]

    def index(self, row: int, col: int) -> int:
        return row * self.cols + col

    def position(self, index: int) -> tuple:
        return divmod(index, self.cols)

    def count(self, symbol) -> int:
        return self.cells.count(symbol)

    def to_rows(self) -> list[list]:
        return [list(self.cells[r * self.cols:(r + 1) * self.cols]) for r in range(self.rows)]

    def neighbours(self) -> tuple:
        return neighbour_table(self.rows, self.cols)

    def __repr__(self):
        body = "\n".join(" ".join(getattr(s, "value", str(s)) for s in row) for row in self.to_rows())
        return f"Grid({self.rows}x{self.cols})\n{body}"


class GridGenerator:
    """Fills a fresh grid with independent draws from one sampler."""

    def __init__(self, sampler, rows: int, cols: int):
        self.sampler = sampler
        self.rows = rows
        self.cols = cols

    def generate(self, rng) -> Grid:
        return Grid(self.rows, self.cols, self.sampler.draw_many(rng, self.rows * self.cols))
