"""WorldQuery — the read-only surface the pheromone field and ants consume.

Anything that can answer these questions can host a colony; ``World``
is the concrete grid used by the simulation engine and the tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from antrail.colony.vectors import Vec2
    from antrail.world.cell import CellKind, GridPos


class WorldQuery(Protocol):
    """Cell classification and coordinate conversion for a grid world."""

    width: int
    height: int
    cell_size: int

    def is_valid_grid_position(self, pos: GridPos) -> bool: ...

    def cell_kind(self, pos: GridPos) -> CellKind | None: ...

    def cells_of_kind(self, kind: CellKind) -> list[GridPos]: ...

    def grid_to_world(self, pos: GridPos) -> Vec2: ...

    def cell_center(self, pos: GridPos) -> Vec2: ...

    def world_to_grid(self, point: Vec2) -> GridPos: ...

    def home_position(self) -> GridPos: ...

    def neighbours(self, pos: GridPos) -> list[GridPos]: ...

    def wall_mask(self) -> NDArray[np.bool_]: ...
