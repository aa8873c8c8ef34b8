"""
XP / leveling formulas.

Curve
-----
  xp_required_for_level(level) = Q * level^2 + L * level

with Q = LEVEL_CURVE_QUADRATIC (250) and L = LEVEL_CURVE_LINEAR (750), i.e.
1000 XP to leave level 1, 2500 to leave level 2, 4500 to leave level 3.
Both coefficients must keep the curve strictly positive and non-decreasing
for level >= 1; `validate_level_curve` checks that at startup.

`xp` in LevelState is progress inside the current level, so the invariant
after every apply_xp is  0 <= xp < xp_required_for_level(level).

Pure functions, no I/O.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from app.core.config import settings
from app.core.errors import InvalidXpGainError, LevelCurveError


LevelCurve = Callable[[int], int]


@dataclass(frozen=True)
class LevelProgress:
    level: int
    xp: int
    levels_gained: int


def quadratic_curve(quadratic: int, linear: int) -> LevelCurve:
    def curve(level: int) -> int:
        return quadratic * level * level + linear * level
    return curve


def _default_curve(level: int) -> int:
    return quadratic_curve(
        settings.LEVEL_CURVE_QUADRATIC, settings.LEVEL_CURVE_LINEAR
    )(level)


def xp_required_for_level(level: int, curve: LevelCurve | None = None) -> int:
    """XP needed to advance from `level` to `level + 1`."""
    if level < 1:
        raise InvalidXpGainError(
            message=f"Level must be >= 1, got {level}.",
            details={"level": level},
        )
    return (curve or _default_curve)(level)


def validate_level_curve(max_level: int, curve: LevelCurve | None = None) -> None:
    """Raise LevelCurveError if the curve is non-positive or decreasing in 1..max_level."""
    previous = 0
    for level in range(1, max_level + 1):
        threshold = xp_required_for_level(level, curve)
        if threshold <= 0:
            raise LevelCurveError(level, threshold, "threshold must be positive")
        if threshold < previous:
            raise LevelCurveError(level, threshold, "threshold decreased")
        previous = threshold


def apply_xp(
    level: int,
    xp: int,
    xp_gained: int,
    curve: LevelCurve | None = None,
) -> LevelProgress:
    """
    Add `xp_gained` and roll over as many levels as it pays for.

    Terminates for any finite gain: each iteration consumes a strictly
    positive threshold, and a non-positive one is a configuration error.
    """
    if xp_gained < 0:
        raise InvalidXpGainError(
            message=f"XP gain must be non-negative, got {xp_gained}.",
            details={"xp_gained": xp_gained},
        )
    if xp < 0:
        raise InvalidXpGainError(
            message=f"Current XP must be non-negative, got {xp}.",
            details={"xp": xp},
        )

    total = xp + xp_gained
    levels_gained = 0
    while True:
        needed = xp_required_for_level(level, curve)
        if needed <= 0:
            raise LevelCurveError(level, needed, "threshold must be positive")
        if total < needed:
            break
        total -= needed
        level += 1
        levels_gained += 1

    return LevelProgress(level=level, xp=total, levels_gained=levels_gained)
