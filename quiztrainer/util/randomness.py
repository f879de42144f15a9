from __future__ import annotations

"""Randomness helpers: seeded RNGs for sampling and option shuffling."""

import os
import random
from typing import Optional


def env_seed() -> Optional[int]:
    """Seed from the SEED env var, or None if unset or not an integer."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Return a private Random; explicit seed wins, then SEED, else OS entropy."""
    if seed is None:
        seed = env_seed()
    return random.Random(seed)
