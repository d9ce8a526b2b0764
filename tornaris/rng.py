from __future__ import annotations

import random
from collections.abc import Iterable
from typing import TypeVar

T = TypeVar("T")


def new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def rng_for(seed: int, salt: str = "") -> random.Random:
    # deterministic per session seed + salt (e.g. the action name)
    return random.Random(f"{seed}:{salt}")


def shuffled(items: Iterable[T], rng: random.Random) -> list[T]:
    """Return a uniformly permuted copy of `items`; the input is left untouched."""

    out = list(items)
    rng.shuffle(out)
    return out
