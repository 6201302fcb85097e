"""Generational evolution engine with elitism and averaging crossover."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from pydantic import ValidationError

from evodrive.ai.network import NeuralNetwork
from evodrive.config.settings import EvolutionConfig, Settings, get_settings
from evodrive.errors import AlreadyRunning, InvalidConfiguration
from evodrive.logging_config import get_logger
from evodrive.metrics.tracker import EvolutionTracker, GenerationSummary
from evodrive.simulation.car import Car, CarSnapshot
from evodrive.simulation.scheduler import ScheduledEvent, TickScheduler
from evodrive.simulation.world import World

logger = get_logger(__name__)


class EnginePhase(str, Enum):
    """Lifecycle of the engine. Pausing is tracked separately."""

    IDLE = "idle"
    RUNNING = "running"
    GENERATION_ENDING = "generation_ending"


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only engine state for the presentation layer."""

    generation: int
    phase: EnginePhase
    paused: bool
    best_fitness: float
    alive_count: int
    population_size: int
    distance: float
    steps: int
    history: list[GenerationSummary] = field(default_factory=list)


def mutation_rate_for(
    generation: int,
    base_rate: float,
    decay: float = 1.0,
    floor: float = 0.0,
) -> float:
    """Mutation rate used when breeding from ``generation``.

    The schedule decays geometrically and never drops below ``floor``.
    A floor above ``base_rate`` is capped at ``base_rate``, so a fixed
    schedule stays fixed.
    """
    rate = base_rate * decay ** max(generation - 1, 0)
    return max(min(floor, base_rate), rate)


class MemoryQueue:
    """Bounded FIFO of cloned past champions used as extra crossover partners."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._cars: deque[Car] = deque(maxlen=capacity or None)

    def __len__(self) -> int:
        return len(self._cars)

    def __iter__(self):
        return iter(self._cars)

    def remember(self, car: Car) -> None:
        if self.capacity > 0:
            self._cars.append(car.clone())

    def sample(self, rng: np.random.Generator) -> Car | None:
        if not self._cars:
            return None
        return self._cars[int(rng.integers(len(self._cars)))]

    def clear(self) -> None:
        self._cars.clear()


class SimulationManager:
    """Owns the population and the world and drives generations tick by tick.

    Attributes:
        settings: Effective settings
        evolution: Current genetic algorithm parameters
        rng: Shared random generator for weights, breeding and layouts
        world: Obstacle field, reset in place between generations
        cars: Current population
        generation: 1-based generation index, 0 before :meth:`start`
        phase: Current lifecycle phase
        paused: Ticks are ignored while set
        best_fitness: Highest fitness any car reached in the current
            generation so far, never decreasing within a generation
        distance: World distance covered while any car was alive
        steps: Ticks simulated in the current generation
        memory: Past champions available as crossover partners
        tracker: Generation history
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rng: np.random.Generator | None = None,
        world: World | None = None,
        tracker: EvolutionTracker | None = None,
    ) -> None:
        """Initialize the engine without spawning a population.

        Args:
            settings: Settings to use, defaults to the global settings
            rng: Random generator, seeded from ``settings.seed`` if omitted
            world: Pre-built world, built from settings if omitted
            tracker: Generation history collector
        """
        self.settings = settings or get_settings()
        self.evolution: EvolutionConfig = self.settings.evolution
        self.rng = rng if rng is not None else np.random.default_rng(self.settings.seed)
        self.world = world or World(
            self.settings.arena,
            self.settings.obstacles,
            rng=self.rng,
            car_height=self.settings.agent.height,
        )
        self.scheduler = TickScheduler()
        self.tracker = tracker or EvolutionTracker()
        self.memory = MemoryQueue(self.evolution.memory_capacity)

        self.cars: list[Car] = []
        self.generation = 0
        self.phase = EnginePhase.IDLE
        self.paused = False
        self.best_fitness = 0.0
        self.distance = 0.0
        self.steps = 0
        self._transition: ScheduledEvent | None = None

    # ------------------------------------------------------------------
    # Queries

    @property
    def is_running(self) -> bool:
        return self.phase is EnginePhase.RUNNING and not self.paused

    @property
    def history(self) -> list[GenerationSummary]:
        return self.tracker.history

    def alive_cars(self) -> list[Car]:
        return [car for car in self.cars if car.alive]

    def current_mutation_rate(self) -> float:
        cfg = self.evolution
        return mutation_rate_for(
            max(self.generation, 1),
            cfg.mutation_rate,
            cfg.mutation_decay,
            cfg.min_mutation_rate,
        )

    def car_snapshots(self) -> list[CarSnapshot]:
        return [car.snapshot() for car in self.alive_cars()]

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            generation=self.generation,
            phase=self.phase,
            paused=self.paused,
            best_fitness=self.best_fitness,
            alive_count=len(self.alive_cars()),
            population_size=len(self.cars),
            distance=self.distance,
            steps=self.steps,
            history=list(self.history),
        )

    # ------------------------------------------------------------------
    # Commands

    def configure(
        self,
        obstacle_count: int,
        agent_count: int,
        elite_count: int,
        mutation_rate: float,
        mutation_magnitude: float | None = None,
    ) -> None:
        """Change the population and obstacle parameters.

        Only allowed before :meth:`start` or while a generation is ending.
        New counts take effect with the next population.

        Raises:
            AlreadyRunning: If a generation is being simulated
            InvalidConfiguration: If any value is out of range
        """
        if self.phase is EnginePhase.RUNNING:
            raise AlreadyRunning(
                f"cannot configure while generation {self.generation} is running"
            )
        if obstacle_count < 0:
            logger.warning("configuration_rejected", obstacle_count=obstacle_count)
            raise InvalidConfiguration(f"obstacle count must be >= 0, got {obstacle_count}")

        updates: dict[str, float | int] = {
            "population_size": agent_count,
            "elite_count": elite_count,
            "mutation_rate": mutation_rate,
        }
        if mutation_magnitude is not None:
            updates["mutation_amplitude"] = mutation_magnitude
        try:
            evolution = EvolutionConfig(**{**self.evolution.model_dump(), **updates})
        except ValidationError as e:
            logger.warning("configuration_rejected", error=str(e))
            raise InvalidConfiguration(str(e)) from e

        if obstacle_count != len(self.world.moving):
            self.world.resize(obstacle_count)
        self.evolution = evolution
        logger.info(
            "engine_configured",
            obstacles=obstacle_count,
            agents=agent_count,
            elites=elite_count,
            mutation_rate=mutation_rate,
            mutation_amplitude=evolution.mutation_amplitude,
        )

    def start(self) -> None:
        """Spawn the first generation (if needed) and unpause."""
        if self.phase is EnginePhase.IDLE:
            self.world.reset()
            self.generation = 1
            self.cars = [self._spawn_car() for _ in range(self.evolution.population_size)]
            self._reset_counters()
            self.phase = EnginePhase.RUNNING
            self.tracker.start_generation(self.generation)
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def reset(self) -> None:
        """Drop the population and history and return to ``IDLE``."""
        if self._transition is not None:
            self._transition.cancel()
            self._transition = None
        self.scheduler.cancel_all()
        self.cars = []
        self.generation = 0
        self.phase = EnginePhase.IDLE
        self.paused = False
        self._reset_counters()
        self.memory.clear()
        self.tracker.reset()
        self.world.reset()
        logger.info("engine_reset")

    def tick(self) -> None:
        """Advance the simulation by one step."""
        if self.phase is EnginePhase.IDLE or self.paused:
            return
        if self.phase is EnginePhase.GENERATION_ENDING:
            self.scheduler.advance()
            return

        self.world.advance()
        for car in self.cars:
            if car.alive:
                car.update(self.world)

        self.steps += 1
        self.distance += self.settings.agent.speed
        leader = max(car.fitness for car in self.cars)
        self.best_fitness = leader if self.steps == 1 else max(self.best_fitness, leader)

        limit = self.evolution.max_steps_per_generation
        if limit is not None and self.steps >= limit:
            for car in self.cars:
                car.retire()

        if not any(car.alive for car in self.cars):
            self._begin_transition()

    def run(self, generations: int, max_ticks: int | None = None) -> list[GenerationSummary]:
        """Tick until ``generations`` more generations have finished.

        Args:
            generations: Number of generation transitions to wait for
            max_ticks: Safety limit on the number of ticks

        Returns:
            The full generation history
        """
        self.start()
        target = len(self.history) + generations
        ticks = 0
        while len(self.history) < target:
            if max_ticks is not None and ticks >= max_ticks:
                logger.warning("run_tick_limit_reached", ticks=ticks, generation=self.generation)
                break
            self.tick()
            ticks += 1
        return self.history

    # ------------------------------------------------------------------
    # Generation transition

    def _reset_counters(self) -> None:
        self.best_fitness = 0.0
        self.distance = 0.0
        self.steps = 0

    def _spawn_car(self, brain: NeuralNetwork | None = None) -> Car:
        return Car(
            self.world.lane_center,
            self.world.spawn_y,
            config=self.settings.agent,
            brain=brain,
            rng=self.rng,
            generation=self.generation,
        )

    def _begin_transition(self) -> None:
        self.phase = EnginePhase.GENERATION_ENDING
        logger.info(
            "population_extinct",
            generation=self.generation,
            best_fitness=self.best_fitness,
            steps=self.steps,
        )
        self._transition = self.scheduler.schedule(
            self.evolution.transition_delay_ticks, self._complete_transition
        )

    def _complete_transition(self) -> None:
        self._transition = None
        self.evolve_next_generation()

    def _pick_partner(self, elites: list[Car]) -> Car:
        cfg = self.evolution
        if len(self.memory) and self.rng.random() < cfg.memory_sample_rate:
            remembered = self.memory.sample(self.rng)
            if remembered is not None:
                return remembered
        return elites[int(self.rng.integers(len(elites)))]

    def _breed(self, elites: list[Car], rate: float) -> Car:
        cfg = self.evolution
        parent = elites[int(self.rng.integers(len(elites)))]
        if self.rng.random() < cfg.crossover_rate:
            partner = self._pick_partner(elites)
            brain = NeuralNetwork.crossover(parent.brain, partner.brain)
        else:
            brain = parent.brain.clone()
        brain.mutate(rate, cfg.mutation_amplitude)
        return self._spawn_car(brain)

    def evolve_next_generation(self) -> GenerationSummary:
        """Select, breed and start the next generation.

        The champion is remembered first, so it is already available as a
        crossover partner for its own offspring. Elites are cloned
        unmodified. The remaining slots are filled with mutated clones or
        crossover children of elites (and occasionally of remembered
        champions). The world is reset to its initial layout.

        Returns:
            Summary of the generation that just ended
        """
        if self._transition is not None:
            self._transition.cancel()
            self._transition = None

        cfg = self.evolution
        rate = self.current_mutation_rate()
        summary = self.tracker.end_generation(self.cars, self.distance, self.steps, rate)

        ranked = sorted(self.cars, key=lambda car: car.fitness, reverse=True)
        elites = ranked[: min(cfg.elite_count, len(ranked))]

        if ranked:
            self.memory.remember(ranked[0])

        self.generation += 1
        next_cars = [elite.clone() for elite in elites]
        while len(next_cars) < cfg.population_size:
            next_cars.append(self._breed(elites, rate) if elites else self._spawn_car())
        del next_cars[cfg.population_size:]

        self.cars = next_cars
        self.world.reset()
        self._reset_counters()
        self.phase = EnginePhase.RUNNING
        self.tracker.start_generation(self.generation)
        return summary
