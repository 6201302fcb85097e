"""Tests for the evolution engine."""

import math

import numpy as np
import pytest

from conftest import make_settings
from evodrive.ai.evolution import (
    EnginePhase,
    MemoryQueue,
    SimulationManager,
    mutation_rate_for,
)
from evodrive.config.settings import AgentConfig, EvolutionConfig, ObstacleConfig, Settings
from evodrive.errors import AlreadyRunning, InvalidConfiguration
from evodrive.simulation.car import Car
from evodrive.simulation.obstacle import Obstacle
from evodrive.simulation.world import World


def make_engine(obstacles: int = 0, seed: int = 1234, **evolution) -> SimulationManager:
    settings = make_settings(obstacles=obstacles, seed=seed, **evolution)
    return SimulationManager(settings, rng=np.random.default_rng(seed))


def tick_until(engine: SimulationManager, predicate, limit: int = 10_000) -> int:
    for ticks in range(limit):
        if predicate():
            return ticks
        engine.tick()
    raise AssertionError("condition not reached")


class TestMutationSchedule:
    """Test the adaptive mutation rate."""

    def test_fixed_rate(self):
        assert mutation_rate_for(1, 0.2) == 0.2
        assert mutation_rate_for(50, 0.2, decay=1.0, floor=0.05) == 0.2

    def test_decays(self):
        assert mutation_rate_for(2, 0.2, decay=0.5) == pytest.approx(0.1)
        assert mutation_rate_for(3, 0.2, decay=0.5) == pytest.approx(0.05)

    def test_floor(self):
        assert mutation_rate_for(100, 0.2, decay=0.5, floor=0.02) == 0.02

    def test_floor_never_raises_base_rate(self):
        assert mutation_rate_for(1, 0.01, decay=0.9, floor=0.05) == 0.01

    def test_non_increasing(self):
        rates = [mutation_rate_for(g, 0.3, decay=0.9, floor=0.01) for g in range(1, 80)]
        assert all(a >= b for a, b in zip(rates, rates[1:]))
        assert rates[-1] == 0.01


class TestMemoryQueue:
    """Test the bounded champion memory."""

    def test_fifo_eviction(self, rng):
        memory = MemoryQueue(2)
        cars = [Car(300, 640, rng=rng, generation=g) for g in (1, 2, 3)]
        for car in cars:
            memory.remember(car)

        assert len(memory) == 2
        assert [car.generation for car in memory] == [2, 3]

    def test_stores_clones(self, rng):
        memory = MemoryQueue(3)
        car = Car(300, 640, rng=rng)
        memory.remember(car)
        remembered = memory.sample(rng)
        assert remembered is not car
        assert remembered.brain is not car.brain

    def test_disabled(self, rng):
        memory = MemoryQueue(0)
        memory.remember(Car(300, 640, rng=rng))
        assert len(memory) == 0
        assert memory.sample(rng) is None


class TestEngineLifecycle:
    """Test phases, commands and queries."""

    def test_idle_until_started(self):
        engine = make_engine()
        engine.tick()
        assert engine.phase is EnginePhase.IDLE
        assert engine.cars == []
        assert engine.generation == 0

    def test_start_spawns_population(self):
        engine = make_engine(population_size=12, elite_count=3)
        engine.start()
        assert engine.phase is EnginePhase.RUNNING
        assert engine.generation == 1
        assert len(engine.cars) == 12
        assert all(car.alive for car in engine.cars)
        assert all(car.x == engine.world.lane_center for car in engine.cars)

    def test_cars_own_distinct_brains(self):
        engine = make_engine(population_size=5, elite_count=1)
        engine.start()
        brains = {id(car.brain) for car in engine.cars}
        assert len(brains) == 5

    def test_pause(self):
        engine = make_engine()
        engine.start()
        engine.pause()
        engine.tick()
        assert engine.steps == 0
        assert engine.is_running is False

        engine.resume()
        engine.tick()
        assert engine.steps == 1

    def test_configure_before_start(self):
        engine = make_engine()
        engine.configure(obstacle_count=4, agent_count=10, elite_count=2, mutation_rate=0.3,
                         mutation_magnitude=0.05)
        engine.start()
        assert len(engine.cars) == 10
        assert len(engine.world.moving) == 4
        assert engine.evolution.elite_count == 2
        assert engine.evolution.mutation_amplitude == 0.05

    def test_configure_while_running(self):
        engine = make_engine()
        engine.start()
        with pytest.raises(AlreadyRunning):
            engine.configure(3, 10, 2, 0.2)

    @pytest.mark.parametrize(
        "args",
        [
            (-1, 10, 2, 0.2),
            (3, 0, 1, 0.2),
            (3, 10, 0, 0.2),
            (3, 5, 6, 0.2),
            (3, 10, 2, 1.5),
        ],
    )
    def test_configure_rejects_invalid(self, args):
        engine = make_engine(population_size=8, elite_count=2)
        before = engine.evolution
        obstacles_before = len(engine.world.moving)

        with pytest.raises(InvalidConfiguration):
            engine.configure(*args)
        assert engine.evolution is before
        assert len(engine.world.moving) == obstacles_before

    def test_configure_rejects_too_many_obstacles(self):
        engine = make_engine(obstacles=3)
        with pytest.raises(InvalidConfiguration):
            engine.configure(obstacle_count=201, agent_count=10, elite_count=2, mutation_rate=0.2)
        assert len(engine.world.moving) == 3
        assert engine.world.obstacle_config.count == 3

    def test_best_fitness_never_decreases(self):
        """A harsh centre penalty drags fitness down, the reported best must hold."""
        settings = Settings(
            env="test",
            seed=1234,
            obstacles=ObstacleConfig(count=0),
            agent=AgentConfig(center_penalty=50.0),
            evolution=EvolutionConfig(population_size=3, elite_count=1),
        )
        engine = SimulationManager(settings, rng=np.random.default_rng(1234))
        engine.start()

        trace = []
        leaders = []
        for _ in range(60):
            engine.tick()
            trace.append(engine.best_fitness)
            leaders.append(max(car.fitness for car in engine.cars))

        assert trace[0] == leaders[0]
        assert all(a <= b for a, b in zip(trace, trace[1:]))
        assert trace[-1] == max(leaders)

    def test_reset(self):
        engine = make_engine(population_size=6, elite_count=2, transition_delay_ticks=50,
                             max_steps_per_generation=3)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)

        engine.reset()
        assert engine.phase is EnginePhase.IDLE
        assert engine.cars == []
        assert engine.history == []
        for _ in range(100):
            engine.scheduler.advance()
        assert engine.generation == 0

    def test_snapshot(self):
        engine = make_engine(population_size=4, elite_count=1)
        engine.start()
        engine.tick()
        snap = engine.snapshot()
        assert snap.generation == 1
        assert snap.phase is EnginePhase.RUNNING
        assert snap.alive_count == 4
        assert snap.steps == 1
        assert len(engine.car_snapshots()) == 4


class TestGenerationTransition:
    """Test extinction handling and reproduction."""

    def test_delay_window_freezes_physics(self):
        engine = make_engine(obstacles=3, population_size=6, elite_count=2,
                             transition_delay_ticks=5, max_steps_per_generation=4)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)
        positions = [(o.x, o.y) for o in engine.world.moving]
        steps = engine.steps

        for _ in range(4):
            engine.tick()
            assert engine.phase is EnginePhase.GENERATION_ENDING
            assert engine.steps == steps
            assert [(o.x, o.y) for o in engine.world.moving] == positions

        engine.tick()
        assert engine.phase is EnginePhase.RUNNING
        assert engine.generation == 2
        assert len(engine.history) == 1

    def test_configure_between_generations(self):
        engine = make_engine(population_size=6, elite_count=2, transition_delay_ticks=3,
                             max_steps_per_generation=2)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)

        engine.configure(obstacle_count=2, agent_count=9, elite_count=3, mutation_rate=0.1)
        tick_until(engine, lambda: engine.generation == 2)
        assert len(engine.cars) == 9
        assert len(engine.world.moving) == 2

    def test_elites_cloned_first(self):
        engine = make_engine(population_size=8, elite_count=3, max_steps_per_generation=5)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)
        ranked = sorted(engine.cars, key=lambda car: car.fitness, reverse=True)

        summary = engine.evolve_next_generation()
        assert summary.generation == 1
        for elite, carried in zip(ranked[:3], engine.cars[:3]):
            assert carried is not elite
            assert carried.brain is not elite.brain
            np.testing.assert_array_equal(carried.brain.flatten(), elite.brain.flatten())
            assert carried.alive and carried.fitness == 0.0
        assert all(car.generation == 2 for car in engine.cars[3:])
        assert len(engine.cars) == 8

    def test_memory_receives_champion(self):
        engine = make_engine(population_size=4, elite_count=1, max_steps_per_generation=2)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)
        engine.evolve_next_generation()
        assert len(engine.memory) == 1

    def test_champion_available_to_own_offspring(self, monkeypatch):
        engine = make_engine(population_size=6, elite_count=1, crossover_rate=1.0,
                             memory_sample_rate=1.0, max_steps_per_generation=2)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)
        champion = max(engine.cars, key=lambda car: car.fitness)

        memory_sizes = []
        partners = []
        pick_partner = engine._pick_partner

        def recording_pick_partner(elites):
            memory_sizes.append(len(engine.memory))
            partner = pick_partner(elites)
            partners.append(partner)
            return partner

        monkeypatch.setattr(engine, "_pick_partner", recording_pick_partner)
        engine.evolve_next_generation()

        assert memory_sizes == [1] * 5
        remembered = next(iter(engine.memory))
        assert all(partner is remembered for partner in partners)
        np.testing.assert_array_equal(remembered.brain.flatten(), champion.brain.flatten())

    def test_step_limit_retires_survivors(self):
        engine = make_engine(population_size=5, elite_count=1, max_steps_per_generation=10)
        engine.start()
        for _ in range(10):
            engine.tick()
        assert engine.phase is EnginePhase.GENERATION_ENDING
        assert all(car.state.cause == "timeout" for car in engine.cars)

    def test_run(self):
        engine = make_engine(obstacles=4, population_size=6, elite_count=2,
                             transition_delay_ticks=2, max_steps_per_generation=30)
        history = engine.run(3)
        assert [summary.generation for summary in history] == [1, 2, 3]
        assert engine.generation == 4

    def test_run_tick_limit(self):
        engine = make_engine(population_size=3, elite_count=1)
        history = engine.run(1, max_ticks=20)
        assert history == []
        assert engine.steps == 20


class TestScenarios:
    """End-to-end behaviour of whole generations."""

    def test_no_obstacles_everyone_survives(self):
        """With only the side walls left, no car can reach them before ``steps``.

        Lateral drift is at most ``speed * sin(max_heading)`` per tick. The cap
        keeps every car further from a wall than its half diagonal and than
        the proximity band of its forward ray.
        """
        engine = make_engine(obstacles=0, population_size=20, elite_count=4, mutation_rate=0.2)
        engine.start()

        arena = engine.settings.arena
        agent = engine.settings.agent
        clearance = max(
            math.hypot(agent.width, agent.height) / 2,
            agent.proximity_threshold * agent.ray_length * math.sin(agent.max_heading),
        )
        room = arena.width / 2 - arena.wall_thickness - clearance
        steps = int(room / (agent.speed * math.sin(agent.max_heading)))
        assert steps > 100
        for _ in range(steps):
            engine.tick()

        assert engine.phase is EnginePhase.RUNNING
        assert engine.generation == 1
        assert engine.history == []
        speed = engine.settings.agent.speed
        assert all(car.alive for car in engine.cars)
        assert all(car.fitness == steps * speed for car in engine.cars)
        assert engine.distance == steps * speed

    def test_single_obstacle_single_extinction(self):
        """A wide obstacle ahead kills every car on the same tick."""
        settings = make_settings(population_size=20, elite_count=4, mutation_rate=0.2,
                                 transition_delay_ticks=5)
        rng = np.random.default_rng(7)
        wall_ahead = Obstacle(300, 535, 400, 40, vy=5.0)
        world = World(settings.arena, settings.obstacles, rng=rng, layout=[wall_ahead])
        engine = SimulationManager(settings, rng=rng, world=world)
        engine.start()

        extinctions = 0
        death_steps: list[int] = []
        previous = engine.phase
        for _ in range(100):
            engine.tick()
            if previous is EnginePhase.RUNNING and engine.phase is EnginePhase.GENERATION_ENDING:
                extinctions += 1
                death_steps = [car.state.steps for car in engine.cars]
                assert all(car.state.cause == "collision" for car in engine.cars)
            previous = engine.phase
            if engine.generation == 2:
                break

        assert extinctions == 1
        assert max(death_steps) - min(death_steps) <= 1
        assert engine.generation == 2
        assert len(engine.history) == 1
        assert all(car.alive for car in engine.cars)
        assert wall_ahead.y == 535

    def test_elite_fitness_retained(self):
        """Cloned elites replay the same course and score the same again."""
        engine = make_engine(obstacles=5, seed=11, population_size=12, elite_count=3,
                             transition_delay_ticks=1, max_steps_per_generation=300)
        engine.start()
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)
        best_gen1 = sorted((car.fitness for car in engine.cars), reverse=True)[:3]

        tick_until(engine, lambda: engine.generation == 2)
        carried = engine.cars[:3]
        tick_until(engine, lambda: engine.phase is EnginePhase.GENERATION_ENDING)

        assert [car.fitness for car in carried] == best_gen1
        assert max(car.fitness for car in engine.cars) >= best_gen1[0]

        tick_until(engine, lambda: engine.generation == 3)
        assert engine.history[1].best_fitness >= engine.history[0].best_fitness
