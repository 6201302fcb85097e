"""Ray-cast proximity sensor."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from evodrive.constants import Sensors
from evodrive.errors import InvalidGeometry
from evodrive.simulation.geometry import Vector2, segment_intersection

if TYPE_CHECKING:
    from evodrive.simulation.obstacle import Obstacle


@dataclass(frozen=True)
class RayReading:
    """Result of one cast, exposed for visualisation."""

    origin: Vector2
    end: Vector2
    hit_point: Vector2 | None
    distance: float


class Ray:
    """A fixed-angle rangefinder attached to a car.

    Attributes:
        base_angle: Offset from the car's forward axis, fixed at construction
        angle: Current absolute orientation, set by the owning car
        max_length: Sensor range
        origin: Origin of the last cast
        end: Hit point of the last cast, or the full-range end point
        hit_point: Nearest obstacle hit of the last cast, if any
        distance: Distance to ``hit_point``, or ``max_length`` when clear
    """

    def __init__(self, base_angle: float, max_length: float = Sensors.DEFAULT_LENGTH) -> None:
        if max_length <= 0:
            raise InvalidGeometry(f"ray length must be positive, got {max_length}")
        self._base_angle = base_angle
        self.angle = base_angle
        self.max_length = max_length

        self.origin = Vector2(0.0, 0.0)
        self.end = self.origin
        self.hit_point: Vector2 | None = None
        self.distance = max_length

    @property
    def base_angle(self) -> float:
        return self._base_angle

    @property
    def has_hit(self) -> bool:
        return self.hit_point is not None

    def cast(self, origin_x: float, origin_y: float, obstacles: Iterable[Obstacle]) -> None:
        """Recompute the nearest hit against every obstacle edge.

        Args:
            origin_x: Ray origin x (car centre)
            origin_y: Ray origin y (car centre)
            obstacles: Obstacles to test against
        """
        origin = Vector2(origin_x, origin_y)
        full_end = origin + Vector2.from_angle(self.angle) * self.max_length

        closest: Vector2 | None = None
        min_dist = self.max_length
        for obstacle in obstacles:
            for p1, p2 in obstacle.edges():
                hit = segment_intersection(origin, full_end, p1, p2)
                if hit is None:
                    continue
                dist = origin.distance_to(hit)
                if dist < min_dist:
                    min_dist = dist
                    closest = hit

        self.origin = origin
        self.hit_point = closest
        self.distance = min_dist
        self.end = closest if closest is not None else full_end

    def reading(
        self,
        steepness: float = Sensors.DANGER_STEEPNESS,
        clear_value: float = Sensors.CLEAR_VALUE,
    ) -> float:
        """Encode the last cast as a controller input.

        A clear ray yields ``clear_value``. A hit yields
        ``exp(steepness * (1 - distance / max_length))``, which is at least 1
        and grows as the obstacle gets closer.
        """
        if self.hit_point is None:
            return clear_value
        return math.exp(steepness * (1.0 - self.distance / self.max_length))

    def snapshot(self) -> RayReading:
        return RayReading(
            origin=self.origin,
            end=self.end,
            hit_point=self.hit_point,
            distance=self.distance,
        )
