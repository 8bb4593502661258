"""Deferred pheromone deposits.

Ants write deposits through a ``PheromoneSink``.  Writing straight into
the ``PheromoneField`` is the default; a ``DepositBuffer`` instead
collects every deposit made during a tick and applies them together,
summed per cell with ``math.fsum``, so the post-tick field does not
depend on the order in which ants were updated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from antrail.pheromones.fields import PheromoneChannel, PheromoneField
    from antrail.world.cell import GridPos


class PheromoneSink(Protocol):
    """Anything that accepts pheromone deposits."""

    def deposit(
        self,
        pos: GridPos,
        channel: PheromoneChannel,
        amount: float,
    ) -> None: ...


@dataclass
class DepositBuffer:
    """Per-tick accumulator of deposits, keyed by channel and cell.

    Attributes:
        pending: Amounts recorded since the last flush.
    """

    pending: dict[tuple[PheromoneChannel, GridPos], list[float]] = field(
        default_factory=dict,
    )

    def deposit(self, pos: GridPos, channel: PheromoneChannel, amount: float) -> None:
        """Record a deposit to be applied on the next ``flush``."""
        self.pending.setdefault((channel, pos), []).append(amount)

    def __len__(self) -> int:
        return len(self.pending)

    def flush(self, pheromones: PheromoneField) -> int:
        """Apply and forget every pending deposit.

        Each touched cell receives one deposit of the exact sum of its
        recorded amounts, so clamping and age reset happen once per cell.

        Args:
            pheromones: Field that receives the deposits.

        Returns:
            Number of (channel, cell) pairs written.
        """
        for (channel, pos), amounts in self.pending.items():
            pheromones.deposit(pos, channel, math.fsum(amounts))
        written = len(self.pending)
        self.pending.clear()
        return written
