"""Three-point pheromone sensing.

Each ant carries a left, centre and right sensor placed
``sensor_distance`` ahead of it, the side sensors rotated
``sensor_angle`` from the heading.  Readings may be discounted by the
pheromone's age so fresh trail outweighs stale trail of equal strength.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from antrail.colony.vectors import Vec2

if TYPE_CHECKING:
    from antrail.pheromones.fields import PheromoneChannel, PheromoneField


class Sensor(Enum):
    """Sensor slot relative to the ant's heading."""

    LEFT = auto()
    CENTER = auto()
    RIGHT = auto()


@dataclass(frozen=True)
class SensorReading:
    """Effective pheromone values seen by the three sensors."""

    left: float
    center: float
    right: float

    @property
    def max_value(self) -> float:
        return max(self.left, self.center, self.right)

    @property
    def strongest(self) -> Sensor:
        """Return the sensor with the highest reading.

        Ties favour CENTER, then LEFT.
        """
        best = Sensor.CENTER
        best_value = self.center
        if self.left > best_value:
            best, best_value = Sensor.LEFT, self.left
        if self.right > best_value:
            best = Sensor.RIGHT
        return best


def sensor_offset(sensor: Sensor, angle: float) -> float:
    """Angular offset of a sensor from the heading (left is negative)."""
    match sensor:
        case Sensor.LEFT:
            return -angle
        case Sensor.RIGHT:
            return angle
        case _:
            return 0.0


def sensor_positions(
    position: Vec2,
    heading: float,
    *,
    angle: float,
    distance: float,
) -> dict[Sensor, Vec2]:
    """Return the world position of each sensor."""
    return {
        sensor: position
        + Vec2.from_angle(heading + sensor_offset(sensor, angle), distance)
        for sensor in Sensor
    }


def read_sensors(
    pheromones: PheromoneField,
    channel: PheromoneChannel,
    position: Vec2,
    heading: float,
    *,
    angle: float,
    distance: float,
    freshness_bias: float = 0.0,
) -> SensorReading:
    """Sample one channel at the three sensor points.

    Args:
        pheromones: Field to sample.
        channel: Channel being followed.
        position: The ant's world position.
        heading: The ant's heading in radians.
        angle: Half-angle between the centre and side sensors.
        distance: How far ahead the sensors sit.
        freshness_bias: 0.0 ignores age; 1.0 discounts a cell at
            ``max_age`` to nothing.

    Returns:
        The effective readings.  Invalid or wall cells read 0.0.
    """
    max_age = pheromones.params.max_age
    values: dict[Sensor, float] = {}
    for sensor, point in sensor_positions(
        position,
        heading,
        angle=angle,
        distance=distance,
    ).items():
        value = pheromones.sample_at_world_position(point, channel)
        if freshness_bias > 0 and value > 0:
            age = pheromones.age_at_world_position(point, channel)
            value *= 1.0 - freshness_bias * min(age / max_age, 1.0)
        values[sensor] = value
    return SensorReading(
        left=values[Sensor.LEFT],
        center=values[Sensor.CENTER],
        right=values[Sensor.RIGHT],
    )
