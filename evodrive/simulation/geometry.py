"""2D vector, segment intersection and oriented-rectangle overlap math.

Screen coordinates are used throughout: x grows to the right and y grows
downward. Angles are measured in radians from the "up" axis, clockwise
positive, so heading 0 points toward negative y.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector2:
    """Immutable (x, y) pair."""

    x: float
    y: float

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2:
        return Vector2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Vector2) -> float:
        """Z component of the 3D cross product."""
        return self.x * other.y - self.y * other.x

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def distance_to(self, other: Vector2) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    @staticmethod
    def from_angle(angle: float) -> Vector2:
        """Unit vector for a heading angle (0 points up the screen)."""
        return Vector2(math.sin(angle), -math.cos(angle))


Segment = tuple[Vector2, Vector2]


def segment_intersection(a1: Vector2, a2: Vector2, b1: Vector2, b2: Vector2) -> Vector2 | None:
    """Intersect segment a1-a2 with segment b1-b2.

    Uses the parametric determinant form. Parallel and collinear segments
    (determinant 0) never intersect.

    Args:
        a1: Start of the first segment
        a2: End of the first segment
        b1: Start of the second segment
        b2: End of the second segment

    Returns:
        Intersection point, or None when the point is outside either segment
    """
    r = a2 - a1
    s = b2 - b1
    denom = r.cross(s)
    if denom == 0:
        return None

    offset = b1 - a1
    t = offset.cross(s) / denom
    u = offset.cross(r) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return a1 + r * t
    return None


@dataclass(frozen=True)
class OrientedRect:
    """Rectangle centred on ``center`` and rotated by ``angle``.

    ``width`` runs along the local x axis and ``height`` along the local
    forward axis.
    """

    center: Vector2
    width: float
    height: float
    angle: float = 0.0

    def axes(self) -> tuple[Vector2, Vector2]:
        """Local (right, forward) unit axes."""
        cos_a = math.cos(self.angle)
        sin_a = math.sin(self.angle)
        return Vector2(cos_a, sin_a), Vector2(sin_a, -cos_a)

    def corners(self) -> list[Vector2]:
        """Corners in order: front-left, front-right, back-right, back-left."""
        right, forward = self.axes()
        half_w = right * (self.width / 2)
        half_h = forward * (self.height / 2)
        c = self.center
        return [
            c - half_w + half_h,
            c + half_w + half_h,
            c + half_w - half_h,
            c - half_w - half_h,
        ]

    def edges(self) -> list[Segment]:
        corners = self.corners()
        return [(corners[i], corners[(i + 1) % 4]) for i in range(4)]


def _project(corners: list[Vector2], axis: Vector2) -> tuple[float, float]:
    values = [corner.dot(axis) for corner in corners]
    return min(values), max(values)


def rects_overlap(a: OrientedRect, b: OrientedRect) -> bool:
    """Separating-axis test for two oriented rectangles.

    The four candidate axes are the local axes of both rectangles. Shapes
    that only touch along an edge are not overlapping.
    """
    corners_a = a.corners()
    corners_b = b.corners()
    for axis in (*a.axes(), *b.axes()):
        min_a, max_a = _project(corners_a, axis)
        min_b, max_b = _project(corners_b, axis)
        if max_a <= min_b or max_b <= min_a:
            return False
    return True


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
