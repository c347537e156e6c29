from __future__ import annotations

import random
from typing import Callable

import numpy as np
import pytest

from universe import Universe


class CountingRandom:
    """Deterministic uniform source that records how often it was drawn."""

    def __init__(self, seed: int = 0) -> None:
        self._rng = random.Random(seed)
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        return self._rng.random()


@pytest.fixture
def counting_rng() -> CountingRandom:
    return CountingRandom(seed=1234)


@pytest.fixture
def make_empty() -> Callable[..., Universe]:
    """Factory for all-dead universes of a given size."""

    def _make(height: int = 10, width: int = 10) -> Universe:
        u = Universe(width, height, rng=random.Random(0).random)
        u.clear()
        return u

    return _make


def alive_set(u: Universe) -> set[tuple[int, int]]:
    rows, cols = np.nonzero(u.grid())
    return set(zip(rows.tolist(), cols.tolist()))
