"""Colony — the live population of ants sharing one nest.

A Colony owns its ants and the settings they were spawned with.  It does
no simulation of its own; the engine steps each ant and reads the
colony's tallies for bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from antrail.colony.ant import Ant
from antrail.colony.params import AntParams

if TYPE_CHECKING:
    from numpy.random import Generator

    from antrail.pheromones.buffer import PheromoneSink
    from antrail.pheromones.fields import PheromoneField
    from antrail.world.query import WorldQuery


@dataclass
class Colony:
    """Top-level state for a single ant colony.

    Attributes:
        params: Movement and deposit settings given to new ants.
        ants: Living ant population.
    """

    params: AntParams = field(default_factory=AntParams)
    ants: list[Ant] = field(default_factory=list)

    def spawn_ant(
        self,
        world: WorldQuery,
        pheromones: PheromoneField,
        rng: Generator,
        sink: PheromoneSink | None = None,
    ) -> Ant:
        """Create a new ant at the nest.

        Args:
            world: Grid queries.
            pheromones: Field the ant senses.
            rng: Seeded random generator.
            sink: Deposit target; defaults to ``pheromones``.

        Returns:
            The newly created Ant (also appended to ``self.ants``).
        """
        ant = Ant.spawn(world, pheromones, rng, params=self.params, sink=sink)
        self.ants.append(ant)
        return ant

    def remove_ant(self, ant: Ant) -> None:
        """Drop an ant from the population.

        Raises:
            ValueError: If the ant is not in this colony.
        """
        self.ants.remove(ant)

    def reset_all(self) -> None:
        """Send every ant back to the nest empty-handed."""
        for ant in self.ants:
            ant.reset_to_home()

    @property
    def carrying_count(self) -> int:
        """Number of ants currently returning with food."""
        return sum(1 for ant in self.ants if ant.carrying_resource)

    @property
    def pickups(self) -> int:
        return sum(ant.pickups for ant in self.ants)

    @property
    def deliveries(self) -> int:
        return sum(ant.deliveries for ant in self.ants)
