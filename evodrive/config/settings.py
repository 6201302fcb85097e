"""Application settings with validation."""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from evodrive.constants import Arena, Evolution, Fitness, Physics, Sensors


class ArenaConfig(BaseSettings):
    """Arena (lane) dimensions."""

    model_config = SettingsConfigDict(
        env_prefix="ARENA_",
        extra="ignore",
    )

    width: float = Field(default=Arena.DEFAULT_WIDTH, gt=0, description="Lane width in pixels")
    height: float = Field(default=Arena.DEFAULT_HEIGHT, gt=0, description="Visible arena height")
    wall_thickness: float = Field(default=Arena.WALL_THICKNESS, gt=0)
    spawn_row: float = Field(
        default=Arena.SPAWN_ROW, gt=0, lt=1, description="Car row as a fraction of the height"
    )


class ObstacleConfig(BaseSettings):
    """Moving obstacle configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OBSTACLE_",
        extra="ignore",
    )

    count: int = Field(default=Evolution.DEFAULT_OBSTACLES, ge=0, le=200)
    width: float = Field(default=Physics.OBSTACLE_SIZE, gt=0)
    height: float = Field(default=Physics.OBSTACLE_SIZE, gt=0)
    speed: float = Field(default=Physics.OBSTACLE_SPEED, ge=0, description="Scroll speed per tick")


class AgentConfig(BaseSettings):
    """Car body, sensor and fitness configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        extra="ignore",
    )

    width: float = Field(default=Physics.CAR_WIDTH, gt=0)
    height: float = Field(default=Physics.CAR_HEIGHT, gt=0)
    speed: float = Field(default=Physics.CAR_SPEED, gt=0, description="Forward reward per tick")
    max_steer: float = Field(default=Physics.MAX_STEER, gt=0)
    max_heading: float = Field(default=Physics.MAX_HEADING, gt=0, le=Physics.MAX_HEADING * 2)

    ray_count: int = Field(default=Sensors.RAY_COUNT, ge=1, le=32)
    ray_spread: float = Field(default=Sensors.RAY_SPREAD, ge=0)
    ray_length: float = Field(default=Sensors.DEFAULT_LENGTH, gt=0)
    hidden_layers: list[int] = Field(default_factory=lambda: list(Evolution.HIDDEN_LAYERS))

    center_penalty: float = Field(default=Fitness.CENTER_PENALTY, ge=0)
    proximity_penalty: float = Field(default=Fitness.PROXIMITY_PENALTY, ge=0)
    proximity_threshold: float = Field(default=Fitness.PROXIMITY_THRESHOLD, ge=0, le=1)

    @field_validator("hidden_layers")
    @classmethod
    def validate_hidden_layers(cls, v: list[int]) -> list[int]:
        """Every hidden layer needs at least one neuron."""
        if any(size < 1 for size in v):
            raise ValueError("hidden layer sizes must be positive")
        return v


class EvolutionConfig(BaseSettings):
    """Genetic algorithm configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EVOLUTION_",
        extra="ignore",
    )

    population_size: int = Field(default=Evolution.DEFAULT_POPULATION, ge=1, le=1000)
    elite_count: int = Field(default=Evolution.DEFAULT_ELITES, ge=1)
    mutation_rate: float = Field(default=Evolution.MUTATION_RATE, ge=0, le=1)
    mutation_amplitude: float = Field(default=Evolution.MUTATION_AMPLITUDE, gt=0)
    mutation_decay: float = Field(default=Evolution.MUTATION_DECAY, gt=0, le=1)
    min_mutation_rate: float = Field(default=Evolution.MIN_MUTATION_RATE, ge=0, le=1)
    crossover_rate: float = Field(default=Evolution.CROSSOVER_RATE, ge=0, le=1)
    memory_capacity: int = Field(default=Evolution.MEMORY_CAPACITY, ge=0)
    memory_sample_rate: float = Field(default=Evolution.MEMORY_SAMPLE_RATE, ge=0, le=1)
    transition_delay_ticks: int = Field(default=Evolution.TRANSITION_DELAY_TICKS, ge=1)
    max_steps_per_generation: int | None = Field(
        default=None, ge=1, description="Retire survivors after this many ticks"
    )

    @model_validator(mode="after")
    def validate_elites(self) -> "EvolutionConfig":
        """Elites must fit in the population."""
        if self.elite_count > self.population_size:
            raise ValueError(
                f"elite_count ({self.elite_count}) exceeds population_size ({self.population_size})"
            )
        return self


class Settings(BaseSettings):
    """Global application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env: Literal["development", "test", "production"] = Field(
        default="development", description="Runtime environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    seed: int | None = Field(default=None, description="Seed for the shared random generator")

    # Sub-configs
    arena: ArenaConfig = Field(default_factory=ArenaConfig)
    obstacles: ObstacleConfig = Field(default_factory=ObstacleConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    evolution: EvolutionConfig = Field(default_factory=EvolutionConfig)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
