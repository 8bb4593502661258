"""Vec2 — minimal immutable 2-D vector used for positions and forces.

World coordinates are screen-style: +x is east, +y is south, so a
positive rotation turns clockwise on screen.  Every normalisation is
guarded: vectors shorter than ``EPSILON`` normalise to zero instead of
dividing by a near-zero length.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

EPSILON = 1e-9


@dataclass(frozen=True)
class Vec2:
    """A 2-D vector.

    Attributes:
        x: Horizontal component.
        y: Vertical component (downward positive).
    """

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_angle(cls, angle: float, length: float = 1.0) -> Vec2:
        """Return a vector of ``length`` pointing along ``angle`` radians."""
        return cls(math.cos(angle) * length, math.sin(angle) * length)

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vec2:
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def length(self) -> float:
        """Euclidean length."""
        return math.hypot(self.x, self.y)

    def is_zero(self) -> bool:
        """Return True if the vector is too short to have a direction."""
        return self.length() < EPSILON

    def normalized(self) -> Vec2:
        """Return the unit vector, or the zero vector if too short."""
        n = self.length()
        if n < EPSILON:
            return Vec2()
        return Vec2(self.x / n, self.y / n)

    def rotated(self, angle: float) -> Vec2:
        """Return this vector rotated by ``angle`` radians."""
        c = math.cos(angle)
        s = math.sin(angle)
        return Vec2(self.x * c - self.y * s, self.x * s + self.y * c)

    def perpendicular(self) -> Vec2:
        """Return the vector rotated a quarter turn clockwise on screen."""
        return Vec2(-self.y, self.x)

    def angle(self) -> float:
        """Direction in radians (``atan2``); 0.0 for the zero vector."""
        if self.is_zero():
            return 0.0
        return math.atan2(self.y, self.x)

    def distance_to(self, other: Vec2) -> float:
        return (other - self).length()


def wrap_angle(angle: float) -> float:
    """Wrap an angle into ``[-pi, pi)``."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


def approach_angle(current: float, target: float, fraction: float) -> float:
    """Turn ``current`` toward ``target`` along the shorter arc.

    Args:
        current: Current angle in radians.
        target: Desired angle in radians.
        fraction: Portion of the remaining arc to cover, clamped to 0..1.

    Returns:
        The new angle, wrapped into ``[-pi, pi)``.
    """
    fraction = min(max(fraction, 0.0), 1.0)
    return wrap_angle(current + wrap_angle(target - current) * fraction)
