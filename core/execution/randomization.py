"""
Randomization helpers for timeline construction and dynamic parameters.

All helpers take an explicit random.Random so that a session can be
reproduced from its seed.
"""

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar('T')


def make_rng(seed: Optional[int] = None) -> random.Random:
    """
    Create a random generator.

    Args:
        seed: Seed for reproducibility (None = seeded from system entropy)

    Returns:
        random.Random instance
    """
    return random.Random(seed)


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly permuted copy of items (Fisher-Yates via random.shuffle).

    Args:
        items: Items to permute (left untouched)
        rng: Random generator (default: module-level generator)

    Returns:
        New list in permuted order
    """
    rng = rng or random
    permuted = list(items)
    rng.shuffle(permuted)
    return permuted


def sample_without_replacement(values: Sequence[T], size: int,
                               rng: Optional[random.Random] = None) -> List[T]:
    """
    Draw size distinct elements from values.

    Example:
        # Jittered fixation duration
        duration = sample_without_replacement([250, 500, 750, 1000], 1)[0]
    """
    if size > len(values):
        raise ValueError(f"Cannot sample {size} values from a population of {len(values)}")
    rng = rng or random
    return rng.sample(list(values), size)
