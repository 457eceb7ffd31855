"""Seeded 32-bit Mersenne Twister.

Every random decision taken while building a structure (weighted rule
choice, colour-pool draws) goes through one ``RandomGenerator``.  The state
is expanded from a single 32-bit seed with the reference MT19937 recurrence
(``init_genrand``), and ``next()`` combines two tempered 32-bit outputs into a
53-bit double in [0, 1), so sequences match any other MT19937 seeded the same
way.  The twist and tempering steps are the ones built into ``random.Random``.
"""

from __future__ import annotations

import random
import time

STATE_SIZE = 624

_MASK32 = 0xFFFFFFFF
_SEED_MULTIPLIER = 1812433253


def expand_seed(seed: int) -> list[int]:
    """Return the 624-word initial state for ``seed``."""
    state = [seed & _MASK32]
    for i in range(1, STATE_SIZE):
        prev = state[-1]
        state.append((_SEED_MULTIPLIER * (prev ^ (prev >> 30)) + i) & _MASK32)
    return state


def time_seed() -> int:
    return int(time.time() * 1000) & _MASK32


class RandomGenerator(random.Random):
    """MT19937 with reference single-integer seeding.

    ``RandomGenerator(None)`` seeds from the clock; pass an explicit seed
    whenever two builds have to agree.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.initial_seed = 0
        super().__init__(seed)

    def seed(self, a: int | float | None = None, version: int = 2) -> None:  # type: ignore[override]
        if a is None:
            a = time_seed()
        self.initial_seed = int(a) & _MASK32
        # index == STATE_SIZE forces a twist before the first output
        state = tuple(expand_seed(self.initial_seed)) + (STATE_SIZE,)
        super().setstate((3, state, None))

    def next(self) -> float:
        """53-bit double in [0, 1); consumes two 32-bit outputs."""
        return self.random()

    def next_int(self) -> int:
        """Raw tempered 32-bit output."""
        return self.getrandbits(32)

    def advance(self, count: int = 1) -> None:
        """Discard ``count`` doubles."""
        for _ in range(count):
            self.random()
