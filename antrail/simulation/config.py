"""Config — load simulation parameters from YAML files.

All tunable constants (grid size, pheromone rates, ant steering weights)
live in YAML and are parsed into typed dataclasses here.  This keeps the
simulation core data-driven and easy to experiment with.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import yaml

from antrail.colony.params import AntParams
from antrail.pheromones.fields import PheromoneParams

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass
class SimulationConfig:
    """Top-level simulation configuration.

    Attributes:
        seed: RNG seed for deterministic replay.
        grid_width: Number of grid columns.
        grid_height: Number of grid rows.
        cell_size: Cell side length in world units.
        num_ants: Ants spawned at the start of a run.
        tick_seconds: Default ``dt`` for one simulation step.
        initial_food: Random food cells placed at the start of a run.
        boundary_walls: Surround the grid with walls.
        deferred_deposits: Collect deposits in a buffer and apply them
            after all ants have moved, making the tick order-independent.
        consume_food: Turn a food cell EMPTY when an ant picks it up.
        pheromones: Field evolution constants.
        ant: Per-ant movement and deposit settings.
    """

    seed: int = 42
    grid_width: int = 128
    grid_height: int = 72
    cell_size: int = 8
    num_ants: int = 100
    tick_seconds: float = 1.0 / 60.0
    initial_food: int = 0
    boundary_walls: bool = True
    deferred_deposits: bool = False
    consume_food: bool = False
    pheromones: PheromoneParams = field(default_factory=PheromoneParams)
    ant: AntParams = field(default_factory=AntParams)

    def __post_init__(self) -> None:
        """Reject values the engine cannot run with."""
        if self.grid_width <= 0 or self.grid_height <= 0:
            msg = f"grid must be non-empty, got {self.grid_width}x{self.grid_height}"
            raise ValueError(msg)
        if self.num_ants < 0 or self.initial_food < 0:
            msg = "num_ants and initial_food must be >= 0"
            raise ValueError(msg)
        if self.tick_seconds <= 0:
            msg = f"tick_seconds must be positive, got {self.tick_seconds}"
            raise ValueError(msg)

    @classmethod
    def from_yaml(cls, path: str | Path) -> SimulationConfig:
        """Load configuration from a YAML file.

        Missing keys keep their defaults; unknown keys are logged and
        ignored.

        Args:
            path: Path to the YAML config file.

        Returns:
            A populated SimulationConfig instance.

        Raises:
            FileNotFoundError: If the config file does not exist.
            ValueError: If a value is out of range.
        """
        path = Path(path)
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}

        sections = {
            "pheromones": _build(PheromoneParams, data.pop("pheromones", None) or {}),
            "ant": _build(AntParams, data.pop("ant", None) or {}),
        }
        config = _build(cls, {**data, **sections}, context=str(path))
        logger.info("Loaded simulation config from %s", path)
        return config


def _build(cls: type[_T], data: dict[str, Any], context: str | None = None) -> _T:
    """Instantiate a dataclass from the keys of ``data`` it knows about."""
    known = {f.name for f in dataclasses.fields(cls)}
    for key in sorted(set(data) - known):
        logger.warning(
            "Ignoring unknown %s key %r%s",
            cls.__name__,
            key,
            f" in {context}" if context else "",
        )
    return cls(**{k: v for k, v in data.items() if k in known})
