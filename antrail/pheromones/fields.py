"""PheromoneField — two independent decaying, diffusing scalar grids.

The HOME and FOOD channels are each stored as a separate NumPy 2D array
paired with an age array.  The field provides deposit/sample operations
and delegates the per-tick evaporation and diffusion to ``diffusion.py``.

Invariants kept by every public operation:

- values stay within ``[0, max_pheromone]``;
- WALL cells read 0 and never hold pheromone;
- the channels never read or write each other.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from antrail.world.cell import CellKind

if TYPE_CHECKING:
    from antrail.colony.vectors import Vec2
    from antrail.world.cell import GridPos
    from antrail.world.query import WorldQuery

logger = logging.getLogger(__name__)


class PheromoneChannel(Enum):
    """Distinct pheromone channels, each with its own layer."""

    HOME = auto()  # leads back to the nest
    FOOD = auto()  # leads to a food source


@dataclass
class PheromoneParams:
    """Field-wide evolution constants.

    Attributes:
        evaporation_rate: Value lost per second from every cell.
        diffusion_rate: Fraction of the gradient to each lower neighbour
            transferred per second.
        max_pheromone: Upper clamp for any cell value.
        pheromone_threshold: Values at or below this collapse to zero.
        max_age: Cap on the age tracked per cell, in seconds.
    """

    evaporation_rate: float = 0.002
    diffusion_rate: float = 0.03
    max_pheromone: float = 1.0
    pheromone_threshold: float = 0.05
    max_age: float = 100.0

    def __post_init__(self) -> None:
        """Reject parameter combinations the field cannot honour."""
        if self.evaporation_rate < 0 or self.diffusion_rate < 0:
            msg = "evaporation_rate and diffusion_rate must be >= 0"
            raise ValueError(msg)
        if self.max_pheromone <= 0:
            msg = f"max_pheromone must be positive, got {self.max_pheromone}"
            raise ValueError(msg)
        if not 0 <= self.pheromone_threshold < self.max_pheromone:
            msg = (
                "pheromone_threshold must lie in [0, max_pheromone), "
                f"got {self.pheromone_threshold}"
            )
            raise ValueError(msg)
        if self.max_age <= 0:
            msg = f"max_age must be positive, got {self.max_age}"
            raise ValueError(msg)


@dataclass
class PheromoneLayer:
    """A single pheromone channel.

    Attributes:
        channel: Which pheromone this layer represents.
        grid: Concentration values, shape ``(height, width)``.
        age: Seconds each cell has stayed above threshold since its
            last deposit.
    """

    channel: PheromoneChannel
    grid: NDArray[np.float64]
    age: NDArray[np.float64]

    def clear(self) -> None:
        """Zero both the values and the ages."""
        self.grid.fill(0.0)
        self.age.fill(0.0)


@dataclass
class PheromoneField:
    """Both pheromone channels for a world.

    Attributes:
        world: Cell classification and coordinate conversion.
        params: Evaporation, diffusion and clamping constants.
        layers: Mapping from channel to its layer.
        elapsed: Simulated seconds advanced by ``tick``.
    """

    world: WorldQuery = field(repr=False)
    params: PheromoneParams = field(default_factory=PheromoneParams)
    layers: dict[PheromoneChannel, PheromoneLayer] = field(init=False, repr=False)
    elapsed: float = 0.0

    def __post_init__(self) -> None:
        """Create one zeroed layer per channel, sized to the world."""
        shape = (self.world.height, self.world.width)
        self.layers = {
            channel: PheromoneLayer(
                channel=channel,
                grid=np.zeros(shape, dtype=np.float64),
                age=np.zeros(shape, dtype=np.float64),
            )
            for channel in PheromoneChannel
        }
        logger.debug("Pheromone field allocated: %dx%d", *shape[::-1])

    @property
    def width(self) -> int:
        return self.world.width

    @property
    def height(self) -> int:
        return self.world.height

    # -- Point operations -----------------------------------------------------

    def deposit(self, pos: GridPos, channel: PheromoneChannel, amount: float) -> None:
        """Add pheromone at a cell and mark it fresh.

        Out-of-bounds and WALL cells are ignored.  The result is clamped
        to ``[0, max_pheromone]`` and the cell's age resets to zero.

        Args:
            pos: Grid cell ``(x, y)``.
            channel: Which pheromone to deposit.
            amount: Quantity to add.
        """
        if not self._is_open(pos):
            return
        x, y = pos
        layer = self.layers[channel]
        value = layer.grid[y, x] + amount
        layer.grid[y, x] = min(self.params.max_pheromone, max(0.0, value))
        layer.age[y, x] = 0.0

    def sample(self, pos: GridPos, channel: PheromoneChannel) -> float:
        """Read the concentration at a cell.

        Returns:
            The current value, or 0.0 for out-of-bounds and WALL cells.
        """
        if not self._is_open(pos):
            return 0.0
        x, y = pos
        return float(self.layers[channel].grid[y, x])

    def sample_at_world_position(
        self,
        point: Vec2,
        channel: PheromoneChannel,
    ) -> float:
        """Read the concentration at the cell containing a world position."""
        return self.sample(self.world.world_to_grid(point), channel)

    def age_at(self, pos: GridPos, channel: PheromoneChannel) -> float:
        """Return the age of a cell's pheromone, 0.0 for invalid cells."""
        if not self._is_open(pos):
            return 0.0
        x, y = pos
        return float(self.layers[channel].age[y, x])

    def age_at_world_position(
        self,
        point: Vec2,
        channel: PheromoneChannel,
    ) -> float:
        return self.age_at(self.world.world_to_grid(point), channel)

    def set_value(self, pos: GridPos, channel: PheromoneChannel, value: float) -> None:
        """Overwrite a cell's value (clamped) and reset its age."""
        if not self._is_open(pos):
            return
        x, y = pos
        layer = self.layers[channel]
        layer.grid[y, x] = min(self.params.max_pheromone, max(0.0, value))
        layer.age[y, x] = 0.0

    def clear_cell(self, pos: GridPos) -> None:
        """Remove all pheromone, on both channels, from one cell."""
        if not self.world.is_valid_grid_position(pos):
            return
        x, y = pos
        for layer in self.layers.values():
            layer.grid[y, x] = 0.0
            layer.age[y, x] = 0.0

    # -- Whole-field operations -----------------------------------------------

    def tick(self, dt: float) -> None:
        """Advance the field by ``dt`` seconds (evaporate, age, diffuse).

        Raises:
            ValueError: If ``dt`` is not positive.
        """
        from antrail.pheromones.diffusion import update_field

        if dt <= 0:
            msg = f"dt must be positive, got {dt}"
            raise ValueError(msg)
        update_field(self, dt)
        self.elapsed += dt

    def clear(self) -> None:
        """Zero every channel."""
        for layer in self.layers.values():
            layer.clear()
        logger.info("Cleared all pheromones")

    def get_layer(self, channel: PheromoneChannel) -> NDArray[np.float64]:
        """Return the raw value array for a channel (shape ``(height, width)``)."""
        return self.layers[channel].grid

    def get_age(self, channel: PheromoneChannel) -> NDArray[np.float64]:
        """Return the raw age array for a channel."""
        return self.layers[channel].age

    def max_value(self, channel: PheromoneChannel) -> float:
        return float(self.layers[channel].grid.max())

    def create_test_pattern(self, food_pos: GridPos | None = None) -> None:
        """Replace the field with radial gradients for inspection.

        HOME pheromone falls off linearly from the nest over half the grid
        diagonal; FOOD pheromone falls off from ``food_pos`` (default: a
        quarter of the grid away from the nest) over a third of it.

        Args:
            food_pos: Centre of the FOOD gradient.
        """
        self.clear()
        home = self.world.home_position()
        if food_pos is None:
            food_pos = (
                home[0] + self.width // 4,
                home[1] + self.height // 4,
            )
        diagonal = math.hypot(self.width, self.height)
        self._radial_gradient(PheromoneChannel.HOME, home, diagonal / 2.0)
        self._radial_gradient(PheromoneChannel.FOOD, food_pos, diagonal / 3.0)
        logger.info("Created test pheromone pattern")

    def _radial_gradient(
        self,
        channel: PheromoneChannel,
        centre: GridPos,
        radius: float,
    ) -> None:
        ys, xs = np.mgrid[0 : self.height, 0 : self.width]
        dist = np.hypot(xs - centre[0], ys - centre[1])
        values = np.maximum(0.0, 1.0 - dist / radius) * self.params.max_pheromone
        values[values <= self.params.pheromone_threshold] = 0.0
        values[self.world.wall_mask()] = 0.0
        layer = self.layers[channel]
        layer.grid[:, :] = values
        layer.age.fill(0.0)

    def _is_open(self, pos: GridPos) -> bool:
        kind = self.world.cell_kind(pos)
        return kind is not None and kind is not CellKind.WALL
