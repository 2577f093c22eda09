"""
Seeded RNG for reproducible schedules.
"""
from __future__ import annotations

import random
from typing import MutableSequence


class SeededRNG:
    """Wrapper around random.Random. seed=None draws from system entropy."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def shuffle(self, seq: MutableSequence) -> None:
        self._rng.shuffle(seq)
