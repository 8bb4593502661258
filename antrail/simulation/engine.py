"""SimulationEngine — the main tick loop.

Owns all top-level simulation state and advances it in a fixed order:

1. Update ants (sense, steer, move, deposit, pick up / deliver)
2. Apply deferred deposits, when buffering is enabled
3. Update the pheromone field once (evaporate, age, diffuse)

Grid edits (food, maze, resets) and pheromone clears are explicit
commands applied between steps, never inside one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.random import Generator

from antrail.colony.colony import Colony
from antrail.pheromones.buffer import DepositBuffer
from antrail.pheromones.fields import PheromoneField
from antrail.simulation.config import SimulationConfig
from antrail.world.cell import CellKind, GridPos
from antrail.world.world import World

logger = logging.getLogger(__name__)


@dataclass
class SimulationEngine:
    """Drives the simulation forward tick by tick.

    Attributes:
        config: Loaded simulation configuration.
        world: The static grid.
        pheromone_field: HOME and FOOD pheromone grids.
        colony: The ant population.
        deposit_buffer: Per-tick deposit accumulator, present only when
            ``config.deferred_deposits`` is set.
        rng: Master seeded random generator.
        tick: Current tick count.
        elapsed: Simulated seconds.
        food_consumed: Food cells emptied by pickups.
    """

    config: SimulationConfig
    world: World = field(init=False)
    pheromone_field: PheromoneField = field(init=False)
    colony: Colony = field(init=False)
    deposit_buffer: DepositBuffer | None = field(init=False, default=None)
    rng: Generator = field(init=False)
    tick: int = 0
    elapsed: float = 0.0
    food_consumed: int = 0

    def __post_init__(self) -> None:
        """Build world, pheromone field, colony and RNG from config."""
        cfg = self.config
        self.rng = np.random.default_rng(cfg.seed)
        self.world = World.create(
            cfg.grid_width,
            cfg.grid_height,
            cfg.cell_size,
            boundary_walls=cfg.boundary_walls,
        )
        if cfg.initial_food:
            self.world.add_random_food(self.rng, cfg.initial_food)
        self.pheromone_field = PheromoneField(world=self.world, params=cfg.pheromones)
        self.world.subscribe(self._on_cell_changed)
        if cfg.deferred_deposits:
            self.deposit_buffer = DepositBuffer()
        self.colony = Colony(params=cfg.ant)
        for _ in range(cfg.num_ants):
            self.colony.spawn_ant(
                self.world,
                self.pheromone_field,
                self.rng,
                sink=self.deposit_buffer,
            )

    def step(self, dt: float | None = None) -> None:
        """Advance the simulation by one tick.

        Args:
            dt: Seconds to advance; defaults to ``config.tick_seconds``.

        Raises:
            ValueError: If ``dt`` is not positive.
        """
        if dt is None:
            dt = self.config.tick_seconds
        if dt <= 0:
            msg = f"dt must be positive, got {dt}"
            raise ValueError(msg)

        for ant in self.colony.ants:
            pickups = ant.pickups
            ant.step(dt)
            if self.config.consume_food and ant.pickups > pickups:
                self._consume(ant.food_memory[-1])

        if self.deposit_buffer is not None:
            self.deposit_buffer.flush(self.pheromone_field)
        self.pheromone_field.tick(dt)

        self.tick += 1
        self.elapsed += dt

    def run(self, ticks: int, dt: float | None = None) -> None:
        """Run the simulation for a fixed number of ticks.

        Args:
            ticks: Number of ticks to advance.
            dt: Seconds per tick; defaults to ``config.tick_seconds``.
        """
        for _ in range(ticks):
            self.step(dt)

    # -- Between-tick commands ------------------------------------------------

    def clear_pheromones(self) -> None:
        self.pheromone_field.clear()

    def load_test_pattern(self) -> None:
        """Replace the field with the radial HOME/FOOD test gradients."""
        self.pheromone_field.create_test_pattern()

    def add_random_food(self, count: int) -> int:
        """Scatter up to ``count`` food cells; returns how many were placed."""
        return self.world.add_random_food(self.rng, count)

    def create_maze(self) -> None:
        self.world.create_simple_maze(self.rng)

    def reset_environment(self) -> None:
        """Clear the interior of the grid, the field, and recall every ant."""
        self.world.clear_all_except_boundary()
        self.pheromone_field.clear()
        self.colony.reset_all()
        logger.info("Environment reset - boundaries preserved")

    # -- Internals ------------------------------------------------------------

    def _consume(self, cell: GridPos) -> None:
        if self.world.cell_kind(cell) is CellKind.FOOD:
            self.world.set_cell_kind(cell, CellKind.EMPTY)
            self.food_consumed += 1

    def _on_cell_changed(self, pos: GridPos, old: CellKind, new: CellKind) -> None:
        """Keep walls free of pheromone as soon as they appear."""
        if new is CellKind.WALL:
            self.pheromone_field.clear_cell(pos)
        logger.debug("Cell %s changed %s -> %s", pos, old.name, new.name)
