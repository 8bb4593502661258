"""World grid — the static environment the colony lives in.

The World stores one ``CellKind`` per cell in a NumPy array indexed as
``kinds[y, x]`` and answers the spatial queries (bounds, kind lookup,
coordinate conversion, home lookup) used by the pheromone field and the
ants.  It also carries the explicit grid edits that a run applies between
ticks: boundary walls, random food, a simple maze, and a reset.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from antrail.colony.vectors import Vec2
from antrail.world.cell import CellKind, GridPos

if TYPE_CHECKING:
    from numpy.random import Generator

logger = logging.getLogger(__name__)

CellListener = Callable[[GridPos, CellKind, CellKind], None]
"""Called as ``listener(pos, old_kind, new_kind)`` after a cell changes."""


@dataclass
class World:
    """A 2D grid of classified cells.

    Attributes:
        width: Number of columns in the grid.
        height: Number of rows in the grid.
        cell_size: Side length of one cell in world units.
        kinds: Cell kinds stored as ``CellKind.value`` in an ``int8`` array
            of shape ``(height, width)``.
    """

    width: int
    height: int
    cell_size: int = 8
    kinds: NDArray[np.int8] = field(init=False, repr=False)
    _listeners: list[CellListener] = field(
        init=False,
        default_factory=list,
        repr=False,
    )
    _home: GridPos | None = field(init=False, default=None, repr=False)
    _home_stale: bool = field(init=False, default=True, repr=False)

    def __post_init__(self) -> None:
        """Initialise every cell as EMPTY."""
        if self.width <= 0 or self.height <= 0:
            msg = f"grid must be non-empty, got {self.width}x{self.height}"
            raise ValueError(msg)
        if self.cell_size <= 0:
            msg = f"cell_size must be positive, got {self.cell_size}"
            raise ValueError(msg)
        self.kinds = np.full(
            (self.height, self.width),
            CellKind.EMPTY.value,
            dtype=np.int8,
        )
        self.subscribe(self._track_home)

    @classmethod
    def create(
        cls,
        width: int,
        height: int,
        cell_size: int = 8,
        *,
        boundary_walls: bool = True,
    ) -> World:
        """Build a world with a single home cell at the centre.

        Args:
            width: Grid columns.
            height: Grid rows.
            cell_size: Cell side length in world units.
            boundary_walls: Surround the grid with a ring of walls.

        Returns:
            The new World.
        """
        world = cls(width=width, height=height, cell_size=cell_size)
        world.mark_home(width // 2, height // 2)
        if boundary_walls:
            world.create_boundary_walls()
        logger.debug(
            "World created: %dx%d cells of size %d",
            width,
            height,
            cell_size,
        )
        return world

    # -- Queries --------------------------------------------------------------

    def is_valid_grid_position(self, pos: GridPos) -> bool:
        """Return True if ``pos`` lies inside the grid."""
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_kind(self, pos: GridPos) -> CellKind | None:
        """Return the kind of the cell at ``pos``, or None if out of bounds."""
        if not self.is_valid_grid_position(pos):
            return None
        x, y = pos
        return CellKind(int(self.kinds[y, x]))

    def cells_of_kind(self, kind: CellKind) -> list[GridPos]:
        """Return every cell of ``kind``, column by column (x-major)."""
        xs, ys = np.nonzero(self.kinds.T == kind.value)
        return [(int(x), int(y)) for x, y in zip(xs, ys, strict=True)]

    def home_position(self) -> GridPos:
        """Return the first HOME cell, or the grid centre if there is none.

        The lookup is cached and recomputed only after ``set_cell_kind``
        adds or removes a HOME cell.
        """
        if self._home_stale:
            homes = self.cells_of_kind(CellKind.HOME)
            self._home = homes[0] if homes else None
            self._home_stale = False
        if self._home is not None:
            return self._home
        return (self.width // 2, self.height // 2)

    def grid_to_world(self, pos: GridPos) -> Vec2:
        """Return the world position of the top-left corner of a cell."""
        x, y = pos
        return Vec2(float(x * self.cell_size), float(y * self.cell_size))

    def cell_center(self, pos: GridPos) -> Vec2:
        """Return the world position of the centre of a cell."""
        half = self.cell_size / 2.0
        return self.grid_to_world(pos) + Vec2(half, half)

    def world_to_grid(self, point: Vec2) -> GridPos:
        """Return the cell containing a world position.

        Uses floor division so points left of or above the grid map to
        negative (invalid) cells.
        """
        return (
            math.floor(point.x / self.cell_size),
            math.floor(point.y / self.cell_size),
        )

    def wall_mask(self) -> NDArray[np.bool_]:
        """Return a boolean array, True where the cell is a WALL."""
        return self.kinds == CellKind.WALL.value

    def neighbours(self, pos: GridPos) -> list[GridPos]:
        """Return the in-bounds cardinal neighbours of ``pos``."""
        x, y = pos
        result: list[GridPos] = []
        for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            npos = (x + dx, y + dy)
            if self.is_valid_grid_position(npos):
                result.append(npos)
        return result

    # -- Mutation -------------------------------------------------------------

    def subscribe(self, listener: CellListener) -> None:
        """Register a callback invoked after every cell kind change."""
        self._listeners.append(listener)

    def set_cell_kind(self, pos: GridPos, kind: CellKind) -> None:
        """Change the kind of a cell and notify subscribers.

        Args:
            pos: Cell to change.
            kind: New kind.

        Raises:
            IndexError: If ``pos`` is out of bounds.
        """
        if not self.is_valid_grid_position(pos):
            x, y = pos
            msg = f"({x}, {y}) out of bounds for {self.width}x{self.height}"
            raise IndexError(msg)
        x, y = pos
        old = CellKind(int(self.kinds[y, x]))
        if old is kind:
            return
        self.kinds[y, x] = kind.value
        for listener in self._listeners:
            listener(pos, old, kind)

    def mark_home(self, cx: int, cy: int, radius: int = 0) -> None:
        """Mark cells within ``radius`` of ``(cx, cy)`` as HOME.

        Args:
            cx: Centre column of the nest.
            cy: Centre row of the nest.
            radius: How many cells outward to mark.
        """
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                pos = (cx + dx, cy + dy)
                if self.is_valid_grid_position(pos):
                    self.set_cell_kind(pos, CellKind.HOME)

    def create_boundary_walls(self) -> None:
        """Surround the grid with a one-cell ring of walls."""
        for x in range(self.width):
            self.set_cell_kind((x, 0), CellKind.WALL)
            self.set_cell_kind((x, self.height - 1), CellKind.WALL)
        for y in range(self.height):
            self.set_cell_kind((0, y), CellKind.WALL)
            self.set_cell_kind((self.width - 1, y), CellKind.WALL)

    def add_random_food(self, rng: Generator, count: int) -> int:
        """Scatter up to ``count`` single food cells on EMPTY cells.

        Positions are drawn two cells in from the edge; the search gives
        up after ``10 * count`` attempts.

        Args:
            rng: Seeded random generator.
            count: Number of food cells wanted.

        Returns:
            Number of food cells actually placed.
        """
        added = 0
        attempts = 0
        if self.width <= 4 or self.height <= 4:
            return 0
        while added < count and attempts < count * 10:
            pos = (
                int(rng.integers(2, self.width - 2)),
                int(rng.integers(2, self.height - 2)),
            )
            if self.cell_kind(pos) is CellKind.EMPTY:
                self.set_cell_kind(pos, CellKind.FOOD)
                added += 1
            attempts += 1
        logger.info("Added %d random food cells", added)
        return added

    def create_simple_maze(self, rng: Generator) -> None:
        """Replace interior walls with a lane maze plus scattered walls.

        Horizontal and vertical lanes are laid every 8-12 cells, each with
        a five-cell gap.  HOME and FOOD cells are never overwritten.

        Args:
            rng: Seeded random generator.
        """
        for y in range(1, self.height - 1):
            for x in range(1, self.width - 1):
                if self.kinds[y, x] == CellKind.WALL.value:
                    self.set_cell_kind((x, y), CellKind.EMPTY)

        if self.width > 10:
            y = 8
            while y < self.height - 8:
                gap = int(rng.integers(5, self.width - 5))
                for x in range(1, self.width - 1):
                    if abs(x - gap) > 2:
                        self._wall_if_empty((x, y))
                y += int(rng.integers(8, 13))

        if self.height > 10:
            x = 8
            while x < self.width - 8:
                gap = int(rng.integers(5, self.height - 5))
                for y in range(1, self.height - 1):
                    if abs(y - gap) > 2:
                        self._wall_if_empty((x, y))
                x += int(rng.integers(8, 13))

        if self.width > 6 and self.height > 6:
            for _ in range(self.width * self.height // 50):
                self._wall_if_empty(
                    (
                        int(rng.integers(3, self.width - 3)),
                        int(rng.integers(3, self.height - 3)),
                    ),
                )
        logger.info("Created simple maze pattern")

    def clear_all_except_boundary(self) -> None:
        """Reset every interior cell to EMPTY, keeping the home cell."""
        home = self.home_position()
        for y in range(1, self.height - 1):
            for x in range(1, self.width - 1):
                kind = CellKind.HOME if (x, y) == home else CellKind.EMPTY
                self.set_cell_kind((x, y), kind)

    def _track_home(self, pos: GridPos, old: CellKind, new: CellKind) -> None:
        if CellKind.HOME in (old, new):
            self._home_stale = True

    def _wall_if_empty(self, pos: GridPos) -> None:
        if self.cell_kind(pos) is CellKind.EMPTY:
            self.set_cell_kind(pos, CellKind.WALL)
