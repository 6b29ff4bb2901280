"""Delay helpers shared across navigation components."""

from __future__ import annotations

import random


def get_random_delay(base: float, random_range: float) -> float:
    """Return a randomized delay (same unit as ``base``)."""
    return base + random.uniform(0, max(random_range, 0))


def get_backoff_delay(base: float, attempt: int) -> float:
    """Return the linear backoff delay before the next attempt."""
    return base * max(attempt, 1)
