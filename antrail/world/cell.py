"""Cell kinds for the world grid.

The grid itself stores only a kind per cell; pheromone concentrations
live in ``PheromoneField`` layers so the grid stays a plain array.
"""

from __future__ import annotations

from enum import Enum

GridPos = tuple[int, int]
"""Integer ``(x, y)`` grid coordinate (column, row)."""


class CellKind(Enum):
    """Classification of a single grid cell."""

    EMPTY = 0
    WALL = 1
    FOOD = 2
    HOME = 3
