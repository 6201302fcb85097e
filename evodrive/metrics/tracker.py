"""Per-generation statistics for the reporting layer."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from evodrive.logging_config import get_logger

if TYPE_CHECKING:
    from evodrive.simulation.car import Car

logger = get_logger(__name__)


@dataclass
class GenerationSummary:
    """Metrics for a single finished generation."""

    generation: int
    timestamp: float = field(default_factory=time.time)

    # Fitness stats
    best_fitness: float = 0.0
    average_fitness: float = 0.0
    min_fitness: float = 0.0
    fitness_std: float = 0.0

    # Population stats
    population_size: int = 0
    survivors: int = 0  # cars retired by the step limit rather than crashing

    # Run
    distance: float = 0.0
    steps: int = 0
    mutation_rate: float = 0.0
    simulation_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EvolutionTracker:
    """Keeps the generation history and the best fitness seen so far."""

    def __init__(self) -> None:
        self.current_generation = 0
        self.generation_start_time: float | None = None
        self.history: list[GenerationSummary] = []

        self.best_fitness_ever = 0.0
        self.best_generation = 0

    def start_generation(self, generation: int) -> None:
        """Mark start of generation."""
        self.current_generation = generation
        self.generation_start_time = time.time()
        logger.info("generation_started", generation=generation)

    def end_generation(
        self,
        cars: Sequence[Car],
        distance: float,
        steps: int,
        mutation_rate: float,
    ) -> GenerationSummary:
        """Summarise a finished population and append it to the history."""
        simulation_time = time.time() - (self.generation_start_time or time.time())

        fitnesses = [car.fitness for car in cars] or [0.0]
        survivors = sum(
            1 for car in cars if getattr(car.state, "cause", None) == "timeout"
        )

        summary = GenerationSummary(
            generation=self.current_generation,
            best_fitness=max(fitnesses),
            average_fitness=sum(fitnesses) / len(fitnesses),
            min_fitness=min(fitnesses),
            fitness_std=self._calc_std(fitnesses),
            population_size=len(cars),
            survivors=survivors,
            distance=distance,
            steps=steps,
            mutation_rate=mutation_rate,
            simulation_time=simulation_time,
        )

        if not self.history or summary.best_fitness > self.best_fitness_ever:
            self.best_fitness_ever = summary.best_fitness
            self.best_generation = summary.generation

        self.history.append(summary)

        logger.info(
            "generation_complete",
            generation=summary.generation,
            max_fitness=summary.best_fitness,
            avg_fitness=summary.average_fitness,
            distance=summary.distance,
            survivors=summary.survivors,
            time=simulation_time,
        )
        return summary

    def _calc_std(self, values: list[float]) -> float:
        """Calculate sample standard deviation."""
        if len(values) < 2:
            return 0.0
        mean = sum(values) / len(values)
        variance = sum((x - mean) ** 2 for x in values) / (len(values) - 1)
        return variance ** 0.5

    def improvement_rate(self, window: int = 10) -> float:
        """Relative change of average fitness over the last ``window`` generations."""
        if len(self.history) < window or window < 2:
            return 0.0

        recent = self.history[-window:]
        if recent[0].average_fitness == 0:
            return 0.0

        return (recent[-1].average_fitness - recent[0].average_fitness) / abs(
            recent[0].average_fitness
        )

    def reset(self) -> None:
        self.current_generation = 0
        self.generation_start_time = None
        self.history = []
        self.best_fitness_ever = 0.0
        self.best_generation = 0
