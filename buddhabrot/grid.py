"""Seed coordinates covering the square ``[-bounds, bounds]^2``."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Iterator

import numpy as np

from .config import axis_length


def generate(bounds: float, delta: float) -> np.ndarray:
    """Compute the axis ``-bounds, -bounds + delta, ...`` stopping before ``bounds``.

    Every value is computed as ``-bounds + i * delta`` rather than by repeated
    addition so the sequence is identical from run to run.
    """

    n = axis_length(bounds, delta)
    return np.array([-bounds + i * delta for i in range(n)], dtype=np.float64)


@dataclass(frozen=True)
class CoordinateGrid:
    """Lazy cross product of the axis with itself.

    Seeds are enumerated row by row (outer ``y``, inner ``x``) and yielded as
    ``(x, y)`` pairs. The ``n^2`` pairs are never materialised.
    """

    bounds: float
    delta: float

    @cached_property
    def axis(self) -> np.ndarray:
        return generate(self.bounds, self.delta)

    def __len__(self) -> int:
        return len(self.axis) ** 2

    def __iter__(self) -> Iterator[tuple[float, float]]:
        axis = self.axis.tolist()
        for y in axis:
            for x in axis:
                yield x, y

    def seed_at(self, index: int) -> tuple[float, float]:
        n = len(self.axis)
        if not 0 <= index < n * n:
            raise IndexError(f"seed index {index} outside grid of {n * n} seeds")
        row, col = divmod(index, n)
        return float(self.axis[col]), float(self.axis[row])

    def chunks(self, size: int) -> Iterator[np.ndarray]:
        """Yield ``(k, 2)`` arrays of consecutive seeds, ``k <= size``."""

        if size <= 0:
            raise ValueError("chunk size must be positive")
        axis = self.axis
        n = len(axis)
        total = n * n
        for start in range(0, total, size):
            index = np.arange(start, min(start + size, total))
            rows, cols = np.divmod(index, n)
            yield np.stack((axis[cols], axis[rows]), axis=1)
