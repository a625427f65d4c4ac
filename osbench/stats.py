"""Running statistics over a stream of measurements."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass
class RunningStats:
    """Incremental mean, sample standard deviation, minimum and maximum.

    Uses Welford's update so each measurement is folded in as it arrives.
    """

    count: int = 0
    mean: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf
    _m2: float = field(default=0.0, repr=False)

    def add(self, value: float) -> None:
        """Fold one measurement into the statistics."""
        self.count += 1
        previous_mean = self.mean
        self.mean += (value - previous_mean) / self.count
        self._m2 += (value - previous_mean) * (value - self.mean)
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)

    def std(self) -> float:
        """Return the sample standard deviation (n - 1 in the denominator)."""
        if self.count < 2:
            raise ValueError("standard deviation needs at least two measurements")
        return math.sqrt(max(self._m2, 0.0) / (self.count - 1))

    def __str__(self) -> str:
        std = self.std() if self.count >= 2 else math.nan
        return (
            f"average = {self.mean:f}, std = {std:f}, "
            f"min = {self.minimum:f}, max = {self.maximum:f}"
        )