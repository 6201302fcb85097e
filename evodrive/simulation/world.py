"""Obstacle field: placement, scrolling, recycling and collision queries."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from pydantic import ValidationError

from evodrive.config.settings import ArenaConfig, ObstacleConfig
from evodrive.constants import Arena, Physics
from evodrive.errors import InvalidConfiguration
from evodrive.logging_config import get_logger
from evodrive.simulation.obstacle import Obstacle

if TYPE_CHECKING:
    from evodrive.simulation.car import Car

logger = get_logger(__name__)


class World:
    """Owns every obstacle of the arena, walls included.

    The layout drawn at construction is remembered. :meth:`reset` puts the
    same obstacle objects back in their starting positions and replays the
    same recycling stream, so each generation faces an identical course.

    Attributes:
        arena: Lane geometry
        obstacle_config: Size and speed of moving obstacles
        walls: Static side walls
        moving: Scrolling obstacles
    """

    def __init__(
        self,
        arena: ArenaConfig | None = None,
        obstacle_config: ObstacleConfig | None = None,
        rng: np.random.Generator | None = None,
        car_height: float = Physics.CAR_HEIGHT,
        layout: Sequence[Obstacle] | None = None,
    ) -> None:
        """Create the world and draw (or adopt) the initial layout.

        Args:
            arena: Lane geometry, defaults to ``ArenaConfig()``
            obstacle_config: Moving obstacle settings, defaults to ``ObstacleConfig()``
            rng: Source of the layout seed
            car_height: Used to keep initial obstacles clear of the spawn row
            layout: Explicit moving obstacles instead of a random draw
        """
        self.arena = arena or ArenaConfig()
        self.obstacle_config = obstacle_config or ObstacleConfig()
        self.car_height = car_height
        self._rng = rng if rng is not None else np.random.default_rng()

        self.walls = self._build_walls()
        self.moving: list[Obstacle] = []
        self._start_positions: list[tuple[float, float]] = []
        self._seed_recycling()

        if layout is not None:
            self._adopt_layout(layout)
        else:
            self._draw_layout(self.obstacle_config.count)

    @property
    def obstacles(self) -> list[Obstacle]:
        return self.moving + self.walls

    @property
    def spawn_y(self) -> float:
        """Row the cars are pinned to."""
        return self.arena.height * self.arena.spawn_row

    @property
    def lane_center(self) -> float:
        return self.arena.width / 2

    def _build_walls(self) -> list[Obstacle]:
        t = self.arena.wall_thickness
        w = self.arena.width
        h = self.arena.height
        return [
            Obstacle(t / 2, h / 2, t, h, is_wall=True),
            Obstacle(w - t / 2, h / 2, t, h, is_wall=True),
        ]

    def _seed_recycling(self) -> None:
        seed = int(self._rng.integers(2**32))
        self._layout_seq, self._recycle_seq = np.random.SeedSequence(seed).spawn(2)
        self._recycle_rng = np.random.default_rng(self._recycle_seq)

    def _lateral_range(self) -> tuple[float, float]:
        half = self.obstacle_config.width / 2
        low = self.arena.wall_thickness + half
        high = self.arena.width - self.arena.wall_thickness - half
        if high < low:
            raise InvalidConfiguration(
                f"obstacle width {self.obstacle_config.width} does not fit in the lane"
            )
        return low, high

    def _draw_layout(self, count: int) -> None:
        layout_rng = np.random.default_rng(self._layout_seq)
        cfg = self.obstacle_config
        x_low, x_high = self._lateral_range()
        y_low = cfg.height / 2
        y_high = self.spawn_y - self.car_height / 2 - Arena.SPAWN_CLEARANCE - cfg.height / 2
        y_high = max(y_low, y_high)

        self.moving = [
            Obstacle(
                float(layout_rng.uniform(x_low, x_high)),
                float(layout_rng.uniform(y_low, y_high)),
                cfg.width,
                cfg.height,
                vy=cfg.speed,
            )
            for _ in range(count)
        ]
        self._start_positions = [(o.x, o.y) for o in self.moving]
        logger.debug("world_layout_drawn", obstacles=count)

    def _adopt_layout(self, layout: Sequence[Obstacle]) -> None:
        self.moving = list(layout)
        self._start_positions = [(o.x, o.y) for o in self.moving]
        logger.debug("world_layout_adopted", obstacles=len(self.moving))

    def _recycle(self, obstacle: Obstacle) -> None:
        x_low, x_high = self._lateral_range()
        obstacle.y = -obstacle.height / 2
        obstacle.x = float(self._recycle_rng.uniform(x_low, x_high))

    def advance(self) -> None:
        """Scroll every moving obstacle by one tick, recycling the ones that left."""
        for obstacle in self.moving:
            obstacle.advance()
            if obstacle.bottom > self.arena.height:
                self._recycle(obstacle)

    def collides(self, car: Car) -> bool:
        """Check whether any obstacle or wall overlaps the car."""
        return any(obstacle.collides_with(car) for obstacle in self.obstacles)

    def reset(self) -> None:
        """Restore the initial layout in place."""
        for obstacle, (x, y) in zip(self.moving, self._start_positions):
            obstacle.x = x
            obstacle.y = y
        self._recycle_rng = np.random.default_rng(self._recycle_seq)
        logger.debug("world_reset", obstacles=len(self.moving))

    def resize(self, count: int) -> None:
        """Draw a fresh layout with a different number of moving obstacles.

        Raises:
            InvalidConfiguration: If ``count`` is outside the configured bounds
        """
        try:
            config = ObstacleConfig(**{**self.obstacle_config.model_dump(), "count": count})
        except ValidationError as e:
            logger.warning("obstacle_count_rejected", count=count)
            raise InvalidConfiguration(f"invalid obstacle count {count}: {e}") from e
        self.obstacle_config = config
        self._seed_recycling()
        self._draw_layout(count)
