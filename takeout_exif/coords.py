"""Decimal to EXIF rational conversions used by the GPS tags."""

from __future__ import annotations

import math
from typing import NamedTuple

# Seconds of arc keep four decimals (~3 mm on the ground).
SECONDS_DENOMINATOR = 10000
FIXED_POINT_DENOMINATOR = 100


class RationalValue(NamedTuple):
    numerator: int
    denominator: int

    def __float__(self) -> float:
        return self.numerator / self.denominator


def to_dms(coord: float) -> tuple[RationalValue, RationalValue, RationalValue]:
    """Split |coord| into (degrees, minutes, seconds) rationals.

    The hemisphere is not encoded here; callers write it into the matching
    *Ref tag.
    """
    a = abs(coord)
    degrees = math.floor(a)
    minutes = math.floor((a - degrees) * 60)
    seconds = (a - degrees - minutes / 60) * 3600
    sec_num = max(0, round(seconds * SECONDS_DENOMINATOR))
    # rounding may land on 60" (or 60')
    if sec_num >= 60 * SECONDS_DENOMINATOR:
        sec_num -= 60 * SECONDS_DENOMINATOR
        minutes += 1
    if minutes >= 60:
        minutes -= 60
        degrees += 1
    return (
        RationalValue(degrees, 1),
        RationalValue(minutes, 1),
        RationalValue(sec_num, SECONDS_DENOMINATOR),
    )


def to_fixed_point_rational(value: float) -> RationalValue:
    """Two-decimal fixed point, rounded half up: 34.5 -> 3450/100."""
    return RationalValue(math.floor(value * FIXED_POINT_DENOMINATOR + 0.5), FIXED_POINT_DENOMINATOR)


def from_dms(dms) -> float:
    """Inverse of to_dms for any sequence of three (num, den) pairs."""
    degrees, minutes, seconds = (n / d for n, d in dms)
    return degrees + minutes / 60 + seconds / 3600
