"""Configuration management for evodrive."""

from evodrive.config.settings import (
    AgentConfig,
    ArenaConfig,
    EvolutionConfig,
    ObstacleConfig,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "AgentConfig",
    "ArenaConfig",
    "EvolutionConfig",
    "ObstacleConfig",
    "Settings",
    "get_settings",
    "reset_settings",
]
