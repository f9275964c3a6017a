"""
Core utility functions shared across mixture analysis modules.

This module provides foundational utilities used by both the mixture
estimation engine and the simulation layer.
"""

import numpy as np
from numpy.random import Generator


def get_rng(seed: int | None = None) -> Generator:
    """
    Create a numpy random Generator with optional seed.

    Args:
        seed: Random seed for reproducibility. If None, uses entropy.

    Returns:
        A numpy random Generator instance.
    """
    return np.random.default_rng(seed)


def spawn_rngs(rng: Generator, n: int) -> list[Generator]:
    """
    Derive independent child generators from a parent generator.

    Children are spawned from the parent's SeedSequence, so the streams
    are statistically independent and depend only on the parent state,
    not on the order in which the children are consumed.

    Args:
        rng: Parent generator.
        n: Number of children.

    Returns:
        List of n child generators.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return list(rng.spawn(n))
