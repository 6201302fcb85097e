"""Pytest configuration and fixtures."""

import os

import numpy as np
import pytest

from evodrive.config.settings import (
    EvolutionConfig,
    ObstacleConfig,
    Settings,
    reset_settings,
)


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment."""
    os.environ.setdefault("ENV", "test")
    yield


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop the cached global settings around each test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def rng():
    """Seeded generator so every test is reproducible."""
    return np.random.default_rng(1234)


def make_settings(obstacles: int = 0, seed: int = 1234, **evolution) -> Settings:
    """Build test settings with a given obstacle count and GA parameters."""
    return Settings(
        env="test",
        seed=seed,
        obstacles=ObstacleConfig(count=obstacles),
        evolution=EvolutionConfig(**evolution),
    )


@pytest.fixture
def settings():
    """Default settings with an empty obstacle field."""
    return make_settings()
