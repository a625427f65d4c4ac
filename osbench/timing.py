"""Second/nanosecond time values and a monotonic clock."""

from __future__ import annotations

import time
from dataclasses import dataclass

NS_PER_SEC = 1_000_000_000


@dataclass(frozen=True, order=True)
class Timespec:
    """A time value split into whole seconds and nanoseconds."""

    seconds: int = 0
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.nanoseconds < NS_PER_SEC:
            raise ValueError(
                f"nanoseconds must be in [0, {NS_PER_SEC}), got {self.nanoseconds}"
            )

    def __add__(self, other: Timespec) -> Timespec:
        if not isinstance(other, Timespec):
            return NotImplemented
        nanoseconds = self.nanoseconds + other.nanoseconds
        seconds = self.seconds + other.seconds
        if nanoseconds >= NS_PER_SEC:
            return Timespec(seconds + 1, nanoseconds - NS_PER_SEC)
        return Timespec(seconds, nanoseconds)

    def __sub__(self, other: Timespec) -> Timespec:
        if not isinstance(other, Timespec):
            return NotImplemented
        nanoseconds = self.nanoseconds - other.nanoseconds
        seconds = self.seconds - other.seconds
        if nanoseconds < 0:
            return Timespec(seconds - 1, nanoseconds + NS_PER_SEC)
        return Timespec(seconds, nanoseconds)

    def total_ns(self) -> int:
        """Return the whole value in nanoseconds."""
        return self.seconds * NS_PER_SEC + self.nanoseconds

    @classmethod
    def from_ns(cls, ns: int) -> Timespec:
        """Build a value from a nanosecond count."""
        seconds, nanoseconds = divmod(int(ns), NS_PER_SEC)
        return cls(seconds, nanoseconds)

    def __str__(self) -> str:
        return f"{self.seconds} sec {self.nanoseconds} ns"


def monotonic_now() -> Timespec:
    """Read the monotonic clock."""
    return Timespec.from_ns(time.monotonic_ns())