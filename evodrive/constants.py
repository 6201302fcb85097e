"""Application constants."""

import math


# Arena constants
class Arena:
    """Arena geometry constants."""

    DEFAULT_WIDTH = 600
    DEFAULT_HEIGHT = 800
    WALL_THICKNESS = 10.0
    SPAWN_ROW = 0.8  # cars sit at 80% of the arena height
    SPAWN_CLEARANCE = 20.0


# Physics constants
class Physics:
    """Car and obstacle motion constants."""

    CAR_WIDTH = 40.0
    CAR_HEIGHT = 70.0
    CAR_SPEED = 1.0
    MAX_STEER = 0.02  # radians per tick
    MAX_HEADING = math.pi / 4
    OBSTACLE_SIZE = 40.0
    OBSTACLE_SPEED = 2.0


# Sensor/AI constants
class Sensors:
    """Sensor configuration constants."""

    RAY_COUNT = 7
    RAY_SPREAD = math.pi * 2 / 3
    DEFAULT_LENGTH = 200.0
    CLEAR_VALUE = -1.0
    DANGER_STEEPNESS = 2.0


# Fitness scoring constants
class Fitness:
    """Fitness accounting constants."""

    CENTER_PENALTY = 0.0
    PROXIMITY_PENALTY = 0.5
    PROXIMITY_THRESHOLD = 0.3


# Evolution configuration
class Evolution:
    """Genetic algorithm constants."""

    DEFAULT_POPULATION = 50
    DEFAULT_ELITES = 5
    DEFAULT_OBSTACLES = 8
    MUTATION_RATE = 0.2
    MUTATION_AMPLITUDE = 0.08
    MUTATION_DECAY = 1.0
    MIN_MUTATION_RATE = 0.02
    CROSSOVER_RATE = 0.5
    MEMORY_CAPACITY = 10
    MEMORY_SAMPLE_RATE = 0.2
    TRANSITION_DELAY_TICKS = 60  # one second at 60 fps
    HIDDEN_LAYERS = (10, 5)
    OUTPUTS = 1  # steering
