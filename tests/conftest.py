"""Shared fixtures for the antrail test suite."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.random import Generator

from antrail.pheromones.fields import PheromoneField
from antrail.simulation.config import SimulationConfig
from antrail.world.world import World


@pytest.fixture
def rng() -> Generator:
    """A deterministic random generator for reproducible tests."""
    return np.random.default_rng(seed=12345)


@pytest.fixture
def open_world() -> World:
    """A 5x5 world where every cell is EMPTY."""
    return World(width=5, height=5)


@pytest.fixture
def small_world() -> World:
    """A 20x20 walled world with the nest at (10, 10)."""
    return World.create(20, 20)


@pytest.fixture
def open_field(open_world: World) -> PheromoneField:
    """A pheromone field over ``open_world`` with default parameters."""
    return PheromoneField(world=open_world)


@pytest.fixture
def small_field(small_world: World) -> PheromoneField:
    """A pheromone field over ``small_world`` with default parameters."""
    return PheromoneField(world=small_world)


@pytest.fixture
def default_config() -> SimulationConfig:
    """A small config (no YAML file needed)."""
    return SimulationConfig(grid_width=16, grid_height=16, num_ants=5)
