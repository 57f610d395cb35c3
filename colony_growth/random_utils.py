from __future__ import annotations

import random
import uuid
from typing import Sequence, TypeVar

T = TypeVar("T")


class Rng:
    """Seedable source of uniform draws and Bernoulli trials.

    Every random decision in the kernel goes through one of these, so a run
    is reproducible from its seed.
    """

    def __init__(self, seed: int | None = None):
        self._random = random.Random(seed)

    def random(self) -> float:
        return self._random.random()

    def check_probability(self, probability: float) -> bool:
        # p <= 0 never fires, p >= 1 always does
        return self._random.random() < probability

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high]."""
        return self._random.randint(low, high)

    def choice(self, options: Sequence[T]) -> T:
        return options[self._random.randrange(len(options))]

    def new_id(self) -> str:
        return str(uuid.UUID(int=self._random.getrandbits(128), version=4))
