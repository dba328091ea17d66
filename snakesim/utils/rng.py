"""
Seeded random stream for a game session.

Every random decision in a session (obstacle placement, apple type, event
selection, meteor counts, ...) draws from one GameRNG so that a run is
fully reproducible from its seed.
"""

from __future__ import annotations

import time
from typing import Any, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class GameRNG:
    """
    Thin wrapper around a NumPy Generator exposing the draws the game needs.

    Attributes:
        seed: Seed this stream was created from (wall-clock derived if not given).
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = time.time_ns() & 0xFFFFFFFF
        self.seed = int(seed)
        self._gen = np.random.default_rng(self.seed)

    def next(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._gen.random())

    def range(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        return low + (high - low) * self.next()

    def int(self, low: int, high_inclusive: int) -> int:
        """Uniform integer in [low, high_inclusive]."""
        return int(self._gen.integers(low, high_inclusive + 1))

    def chance(self, p: float) -> bool:
        """True with probability p."""
        return self.next() < p

    def pick(self, items: Sequence[T]) -> Optional[T]:
        """Uniformly chosen element, or None for an empty sequence."""
        if not items:
            return None
        return items[self.int(0, len(items) - 1)]

    def shuffle(self, items: list[Any]) -> list[Any]:
        """Fisher-Yates shuffle in place. Returns the same list."""
        for i in range(len(items) - 1, 0, -1):
            j = self.int(0, i)
            items[i], items[j] = items[j], items[i]
        return items

    def __repr__(self) -> str:
        return f"GameRNG(seed={self.seed})"
