"""Car behaviour: sensing, steering, fitness and death."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from evodrive.ai.network import NeuralNetwork
from evodrive.config.settings import AgentConfig
from evodrive.constants import Sensors
from evodrive.logging_config import get_logger
from evodrive.simulation.geometry import OrientedRect, Vector2, clamp
from evodrive.simulation.ray import Ray, RayReading

if TYPE_CHECKING:
    from evodrive.simulation.world import World

logger = get_logger(__name__)


@dataclass
class Alive:
    """Mutable runtime state of a car that is still driving."""

    x: float
    y: float
    heading: float = 0.0
    fitness: float = 0.0
    steps: int = 0


@dataclass(frozen=True)
class Dead:
    """Terminal state. Fitness is frozen here."""

    fitness: float
    cause: str
    x: float
    y: float
    heading: float
    steps: int


@dataclass(frozen=True)
class CarSnapshot:
    """Read-only view of a car for the presentation layer."""

    x: float
    y: float
    heading: float
    fitness: float
    alive: bool
    generation: int
    rays: list[RayReading] = field(default_factory=list)


def ray_angles(count: int, spread: float) -> list[float]:
    """Base angles spread symmetrically around the forward axis."""
    if count == 1:
        return [0.0]
    return [float(a) for a in np.linspace(-spread / 2, spread / 2, count)]


class Car:
    """A car pinned to the spawn row that can only drift sideways.

    The world scrolls toward the car, so forward progress is implicit and
    rewarded every tick the car survives.

    Attributes:
        spawn_x: Lateral start position
        spawn_y: Fixed row
        config: Body, sensor and fitness parameters
        brain: Owned controller
        rays: Owned sensors, base angles fixed at construction
        generation: Generation the car's genotype first appeared in
        state: ``Alive`` or ``Dead``
    """

    def __init__(
        self,
        spawn_x: float,
        spawn_y: float,
        config: AgentConfig | None = None,
        brain: NeuralNetwork | None = None,
        rng: np.random.Generator | None = None,
        generation: int = 1,
    ) -> None:
        """Create a car at its spawn point.

        Args:
            spawn_x: Initial lateral position (lane centre in practice)
            spawn_y: Fixed vertical position
            config: Agent parameters, defaults to ``AgentConfig()``
            brain: Controller to own; a random one is created if omitted
            rng: Generator for a freshly created controller
            generation: Diagnostic generation tag
        """
        self.spawn_x = spawn_x
        self.spawn_y = spawn_y
        self.config = config or AgentConfig()
        self.generation = generation

        self.rays = [
            Ray(angle, self.config.ray_length)
            for angle in ray_angles(self.config.ray_count, self.config.ray_spread)
        ]
        if brain is None:
            brain = NeuralNetwork(
                input_size=len(self.rays),
                hidden_sizes=self.config.hidden_layers,
                rng=rng,
            )
        self.brain = brain

        self.state: Alive | Dead = Alive(x=spawn_x, y=spawn_y)

    @property
    def alive(self) -> bool:
        return isinstance(self.state, Alive)

    @property
    def fitness(self) -> float:
        return self.state.fitness

    @property
    def x(self) -> float:
        return self.state.x

    @property
    def y(self) -> float:
        return self.state.y

    @property
    def heading(self) -> float:
        return self.state.heading

    @property
    def steps(self) -> int:
        return self.state.steps

    @property
    def width(self) -> float:
        return self.config.width

    @property
    def height(self) -> float:
        return self.config.height

    @property
    def forward_ray(self) -> Ray:
        return self.rays[len(self.rays) // 2]

    def rect(self) -> OrientedRect:
        """Body rectangle at the current heading."""
        return OrientedRect(Vector2(self.x, self.y), self.width, self.height, self.heading)

    def sense(self, world: World) -> list[float]:
        """Cast every ray from the car centre and encode the readings."""
        state = self.state
        for ray in self.rays:
            ray.angle = state.heading + ray.base_angle
            ray.cast(state.x, state.y, world.obstacles)
        return [
            ray.reading(Sensors.DANGER_STEEPNESS, Sensors.CLEAR_VALUE) for ray in self.rays
        ]

    def update(self, world: World) -> None:
        """Advance the car by one tick. Dead cars are left untouched."""
        state = self.state
        if not isinstance(state, Alive):
            return

        inputs = self.sense(world)
        output = self.brain.predict(inputs)

        cfg = self.config
        steer = clamp(output * cfg.max_steer, -cfg.max_steer, cfg.max_steer)
        state.heading = clamp(state.heading + steer, -cfg.max_heading, cfg.max_heading)
        state.x += math.sin(state.heading) * cfg.speed
        state.steps += 1

        state.fitness += cfg.speed - self._penalty(world)

        if world.collides(self):
            self._die("collision")
        elif self._out_of_lane(world):
            self._die("lane_exit")

    def _penalty(self, world: World) -> float:
        cfg = self.config
        penalty = 0.0
        if cfg.center_penalty:
            half_lane = world.arena.width / 2
            offset = min(abs(self.x - world.lane_center) / half_lane, 1.0)
            penalty += cfg.center_penalty * offset
        ray = self.forward_ray
        if ray.has_hit and ray.distance < cfg.proximity_threshold * ray.max_length:
            penalty += cfg.proximity_penalty
        return penalty

    def _out_of_lane(self, world: World) -> bool:
        return self.x - self.width / 2 < 0 or self.x + self.width / 2 > world.arena.width

    def _die(self, cause: str) -> None:
        state = self.state
        self.state = Dead(
            fitness=state.fitness,
            cause=cause,
            x=state.x,
            y=state.y,
            heading=state.heading,
            steps=state.steps,
        )
        logger.debug(
            "car_crashed",
            cause=cause,
            x=round(state.x, 1),
            fitness=state.fitness,
            steps=state.steps,
        )

    def retire(self) -> None:
        """End a surviving car when the generation hits its step limit."""
        if self.alive:
            self._die("timeout")

    def clone(self) -> Car:
        """Same genotype and static parameters, fresh runtime state."""
        return Car(
            self.spawn_x,
            self.spawn_y,
            config=self.config,
            brain=self.brain.clone(),
            generation=self.generation,
        )

    def snapshot(self) -> CarSnapshot:
        return CarSnapshot(
            x=self.x,
            y=self.y,
            heading=self.heading,
            fitness=self.fitness,
            alive=self.alive,
            generation=self.generation,
            rays=[ray.snapshot() for ray in self.rays],
        )
