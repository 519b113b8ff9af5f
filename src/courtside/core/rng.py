"""
Random sources used by the schedule generators.

Generators never call the random module directly; they take a RandomSource so
a schedule can be reproduced from a seed.
"""
import random
from typing import List, Sequence


class RandomSource:
    """Uniform shuffles and picks over a seedable generator."""

    def __init__(self, seed=None):
        self._random = random.Random(seed)

    def randint(self, low: int, high: int) -> int:
        """Return an integer in [low, high]."""
        return self._random.randint(low, high)

    def shuffle(self, items: Sequence) -> List:
        """Return a Fisher-Yates shuffled copy of items."""
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled


class NoShuffleRandomSource(RandomSource):
    """Keeps every sequence in its given order."""

    def __init__(self):
        super().__init__(seed=0)

    def randint(self, low: int, high: int) -> int:
        return high
