"""Plausible range sampler.

Bounded integer source for placeholder values (risk probability/impact,
material price jitter). Pass a seed for reproducible output.
"""

import random
from typing import Optional


class PlausibleRangeSampler:
    """Draws integers and floats from fixed, documented ranges."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high], inclusive."""
        if low > high:
            raise ValueError(f"low must be <= high, got low={low}, high={high}")
        return self._random.randint(low, high)

    def uniform(self, low: float, high: float) -> float:
        """Float in [low, high]."""
        return self._random.uniform(low, high)

    def risk_placeholder(self) -> int:
        """Probability/impact stand-in for risks the model text left unscored (40-79)."""
        return self.randint(40, 79)
