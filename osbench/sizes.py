"""Byte sizes written as a number and a K/M/G unit."""

from __future__ import annotations

import re

KB = 1024
MB = 1024 * KB
GB = 1024 * MB

_UNITS = {"K": KB, "M": MB, "G": GB}
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str) -> int:
    """Parse the leading integer of ``text``; 0 if there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_size(amount: str | int, unit: str) -> int:
    """Return ``amount`` scaled by the unit ``K``, ``M`` or ``G``.

    Any other unit leaves the amount unscaled. The amount is read as its
    leading integer, so text without one counts as zero.
    """
    size = amount if isinstance(amount, int) else _leading_int(amount)
    return size * _UNITS.get(unit, 1)