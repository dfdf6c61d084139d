import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class Randomizer:
    """Source of every random amount, count, delay and proxy pick.

    Pass a seeded ``random.Random`` (or a subclass of this) to get
    reproducible runs.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def choice(self, items: Sequence[T]) -> T:
        return self._rng.choice(items)


default_randomizer = Randomizer()
