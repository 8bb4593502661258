"""Evaporation, ageing and diffusion for pheromone layers.

Operates on the raw NumPy arrays inside ``PheromoneLayer`` objects.
Separated from ``fields.py`` so that the per-tick passes can be tested
and tuned independently.

One tick, applied to each channel on its own:

1. ``evaporate``: subtract a fixed amount, floor at zero.
2. ``collapse``: snap values at or below threshold to zero (age too);
   age every surviving cell.
3. ``diffuse``: move value from each cell to its lower cardinal
   neighbours in proportion to the difference.  Reads only the pre-tick
   snapshot, so the result does not depend on iteration order.
4. ``settle``: re-clamp, re-apply the threshold, age cells that only
   received value by diffusion, and zero walls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from antrail.pheromones.fields import PheromoneField, PheromoneLayer

# Four neighbours each taking up to this fraction keeps every cell at or
# below the largest value in its neighbourhood.
MAX_DIFFUSION_COEFFICIENT = 0.25

_Slice2D = tuple[slice, slice]

# (source slice, neighbour slice) for the four cardinal directions.
_CARDINAL_SHIFTS: tuple[tuple[_Slice2D, _Slice2D], ...] = (
    ((slice(None), slice(None, -1)), (slice(None), slice(1, None))),  # east
    ((slice(None), slice(1, None)), (slice(None), slice(None, -1))),  # west
    ((slice(None, -1), slice(None)), (slice(1, None), slice(None))),  # south
    ((slice(1, None), slice(None)), (slice(None, -1), slice(None))),  # north
)


def evaporate(layer: PheromoneLayer, amount: float) -> None:
    """Subtract ``amount`` from every cell, never going below zero."""
    if amount <= 0:
        return
    np.maximum(layer.grid - amount, 0.0, out=layer.grid)


def collapse(
    layer: PheromoneLayer,
    *,
    threshold: float,
    dt: float,
    max_age: float,
) -> None:
    """Remove sub-threshold traces and age the remaining pheromone.

    Cells at or below ``threshold`` become exactly zero with age zero.
    All other cells age by ``dt``, capped at ``max_age``.
    """
    faded = layer.grid <= threshold
    layer.grid[faded] = 0.0
    layer.age[faded] = 0.0
    alive = ~faded
    layer.age[alive] = np.minimum(layer.age[alive] + dt, max_age)


def diffuse(
    layer: PheromoneLayer,
    source: NDArray[np.float64],
    *,
    coefficient: float,
    open_cells: NDArray[np.bool_],
    threshold: float,
) -> None:
    """Spread pheromone down-gradient to cardinal, non-wall neighbours.

    For every open cell whose ``source`` value is at least ``threshold``
    and each open neighbour with a lower ``source`` value, the neighbour
    gains ``(source - neighbour) * coefficient`` and the cell loses the
    same amount.  Transfers only flow from higher to lower values, so
    trail gradients are smoothed but never reversed.

    This modifies ``layer.grid`` in-place.

    Args:
        layer: The layer to update.
        source: Pre-tick snapshot of ``layer.grid``.
        coefficient: ``diffusion_rate * dt``, capped at
            ``MAX_DIFFUSION_COEFFICIENT``.
        open_cells: True where a cell is not a wall.
        threshold: Minimum source value for a cell to donate.
    """
    k = min(coefficient, MAX_DIFFUSION_COEFFICIENT)
    if k <= 0:
        return

    donors = open_cells & (source >= threshold)
    inflow = np.zeros_like(source)
    outflow = np.zeros_like(source)

    for src, dst in _CARDINAL_SHIFTS:
        src_vals = source[src]
        dst_vals = source[dst]
        flows = donors[src] & open_cells[dst] & (src_vals > dst_vals)
        transfer = np.where(flows, (src_vals - dst_vals) * k, 0.0)
        inflow[dst] += transfer
        outflow[src] += transfer

    layer.grid += inflow
    layer.grid -= outflow
    np.maximum(layer.grid, 0.0, out=layer.grid)


def settle(
    layer: PheromoneLayer,
    *,
    walls: NDArray[np.bool_],
    threshold: float,
    max_pheromone: float,
    max_age: float,
    dt: float,
) -> None:
    """Restore the layer invariants after diffusion.

    Clamps to ``[0, max_pheromone]``, snaps sub-threshold cells to zero,
    gives cells that were raised above threshold by diffusion alone an
    age of ``dt``, and forces walls to zero.
    """
    np.clip(layer.grid, 0.0, max_pheromone, out=layer.grid)
    faded = layer.grid <= threshold
    layer.grid[faded] = 0.0
    layer.age[faded] = 0.0
    newcomers = ~faded & (layer.age == 0.0)
    layer.age[newcomers] = min(dt, max_age)
    layer.grid[walls] = 0.0
    layer.age[walls] = 0.0


def update_field(field: PheromoneField, dt: float) -> None:
    """Run one tick of evaporation, ageing and diffusion on both channels.

    Each channel is processed against its own snapshot; nothing is
    shared between channels except the wall mask.

    Args:
        field: The pheromone field to update.
        dt: Seconds elapsed.
    """
    params = field.params
    walls = field.world.wall_mask()
    open_cells = ~walls

    for layer in field.layers.values():
        snapshot = layer.grid.copy()
        layer.grid[walls] = 0.0
        layer.age[walls] = 0.0
        evaporate(layer, params.evaporation_rate * dt)
        collapse(
            layer,
            threshold=params.pheromone_threshold,
            dt=dt,
            max_age=params.max_age,
        )
        diffuse(
            layer,
            snapshot,
            coefficient=params.diffusion_rate * dt,
            open_cells=open_cells,
            threshold=params.pheromone_threshold,
        )
        settle(
            layer,
            walls=walls,
            threshold=params.pheromone_threshold,
            max_pheromone=params.max_pheromone,
            max_age=params.max_age,
            dt=dt,
        )
