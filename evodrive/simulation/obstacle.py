"""Moving rectangular obstacles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from evodrive.errors import InvalidGeometry
from evodrive.simulation.geometry import OrientedRect, Segment, Vector2, rects_overlap

if TYPE_CHECKING:
    from evodrive.simulation.car import Car


class Obstacle:
    """An axis-aligned rectangle moving at constant velocity.

    Arena walls are obstacles too, with zero velocity.

    Attributes:
        x: Centre x
        y: Centre y
        width: Extent along x
        height: Extent along y
        vx: Velocity along x per tick
        vy: Velocity along y per tick (positive scrolls toward the cars)
        is_wall: Walls are never recycled by the world
    """

    def __init__(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        vx: float = 0.0,
        vy: float = 0.0,
        is_wall: bool = False,
    ) -> None:
        if width <= 0 or height <= 0:
            raise InvalidGeometry(f"obstacle dimensions must be positive, got {width}x{height}")
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.vx = vx
        self.vy = vy
        self.is_wall = is_wall

    def __repr__(self) -> str:
        return (
            f"Obstacle(x={self.x:.1f}, y={self.y:.1f}, "
            f"size={self.width:g}x{self.height:g}, v=({self.vx:g}, {self.vy:g}))"
        )

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2

    def advance(self) -> None:
        """Move one tick along the velocity."""
        self.x += self.vx
        self.y += self.vy

    def rect(self) -> OrientedRect:
        return OrientedRect(Vector2(self.x, self.y), self.width, self.height)

    def edges(self) -> list[Segment]:
        """Top, right, bottom and left edges."""
        x1 = self.x - self.width / 2
        y1 = self.y - self.height / 2
        x2 = self.x + self.width / 2
        y2 = self.y + self.height / 2
        return [
            (Vector2(x1, y1), Vector2(x2, y1)),
            (Vector2(x2, y1), Vector2(x2, y2)),
            (Vector2(x2, y2), Vector2(x1, y2)),
            (Vector2(x1, y2), Vector2(x1, y1)),
        ]

    def collides_with(self, car: Car) -> bool:
        """Separating-axis overlap test against the car's current pose."""
        return rects_overlap(self.rect(), car.rect())
