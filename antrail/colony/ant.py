"""Ant -- one forager steering through the shared pheromone field.

Each Ant is a two-state machine (seeking food / returning home, encoded
by ``carrying_resource``) that reads the world and the pheromone field,
steers, moves, and writes pheromone back.  There is no direct contact
between ants; trails emerge from the field alone.

Key movement model:

- **Steering force**: the desired direction is the sum of wall
  avoidance, either goal homing or gradient following, and a random
  wander.  The steering force is ``desired * move_speed - velocity``,
  scaled by ``steering_gain`` and integrated into a constant-speed
  velocity.
- **Channel discipline**: an ant follows the channel that leads to its
  current goal (HOME while carrying, FOOD while seeking) and lays the
  other one, so the trail it leaves always points back where it came
  from.
- **Sensors follow the heading**: the three sensors are placed relative
  to ``heading``, which turns toward the velocity at ``turn_speed``.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from antrail.colony.params import AntParams
from antrail.colony.sensing import SensorReading, read_sensors, sensor_offset
from antrail.colony.vectors import Vec2, approach_angle
from antrail.pheromones.fields import PheromoneChannel
from antrail.world.cell import CellKind

if TYPE_CHECKING:
    from numpy.random import Generator

    from antrail.pheromones.buffer import PheromoneSink
    from antrail.pheromones.fields import PheromoneField
    from antrail.world.cell import GridPos
    from antrail.world.query import WorldQuery

logger = logging.getLogger(__name__)

_DIAGONAL = math.pi / 4.0


class AntState(Enum):
    """Task an ant is currently performing."""

    SEEKING_FOOD = auto()
    RETURNING_HOME = auto()


class SteeringMode(Enum):
    """Which rule dominated the last steering decision."""

    GOAL = auto()  # within reach of the goal, heading straight for it
    FOLLOW = auto()  # following a sensed pheromone gradient
    LOST = auto()  # no signal, wandering


@dataclass
class Ant:
    """A single ant agent.

    Attributes:
        position: World position.
        world: Read-only grid queries.
        pheromones: Field the ant senses.
        rng: Random generator used for wander and perturbations.
        params: Tunable movement and deposit settings.
        heading: Visual facing in radians; sensors are placed from it.
        velocity: Current velocity in world units per second.
        carrying_resource: True while returning home with food.
        food_memory: Most recently visited food cells, newest last.
        sink: Where deposits go; defaults to ``pheromones``.
        mode: Steering rule that won on the last tick.
        age: Ticks since spawn.
        pickups: Food pickups made.
        deliveries: Food deliveries made at the nest.
        resets: Times the ant was respawned at the nest.
    """

    position: Vec2
    world: WorldQuery = field(repr=False)
    pheromones: PheromoneField = field(repr=False)
    rng: Generator = field(repr=False)
    params: AntParams = field(default_factory=AntParams)
    heading: float = 0.0
    velocity: Vec2 = field(default_factory=Vec2)
    carrying_resource: bool = False
    food_memory: deque[GridPos] = field(default_factory=deque)
    sink: PheromoneSink | None = field(default=None, repr=False)
    mode: SteeringMode = SteeringMode.LOST
    age: int = 0
    pickups: int = 0
    deliveries: int = 0
    resets: int = 0
    _deposit_timer: float = field(default=0.0, repr=False)

    def __post_init__(self) -> None:
        """Bound the food memory and start moving along the heading."""
        self.food_memory = deque(self.food_memory, maxlen=self.params.memory_size)
        if self.velocity.is_zero():
            self.velocity = Vec2.from_angle(self.heading, self.params.move_speed)

    @classmethod
    def spawn(
        cls,
        world: WorldQuery,
        pheromones: PheromoneField,
        rng: Generator,
        params: AntParams | None = None,
        sink: PheromoneSink | None = None,
    ) -> Ant:
        """Create an ant at the centre of the nest cell with a random heading.

        Args:
            world: Grid queries.
            pheromones: Field to sense.
            rng: Seeded random generator.
            params: Movement settings; defaults to ``AntParams()``.
            sink: Deposit target; defaults to ``pheromones``.

        Returns:
            A new seeking Ant.
        """
        return cls(
            position=world.cell_center(world.home_position()),
            world=world,
            pheromones=pheromones,
            rng=rng,
            params=params if params is not None else AntParams(),
            heading=float(rng.uniform(0.0, 2.0 * math.pi)),
            sink=sink,
        )

    # -- Derived state --------------------------------------------------------

    @property
    def state(self) -> AntState:
        if self.carrying_resource:
            return AntState.RETURNING_HOME
        return AntState.SEEKING_FOOD

    @property
    def following_channel(self) -> PheromoneChannel:
        """Channel leading to the current goal."""
        if self.carrying_resource:
            return PheromoneChannel.HOME
        return PheromoneChannel.FOOD

    @property
    def depositing_channel(self) -> PheromoneChannel:
        """Channel leading back to where the ant came from."""
        if self.carrying_resource:
            return PheromoneChannel.FOOD
        return PheromoneChannel.HOME

    @property
    def grid_position(self) -> GridPos:
        return self.world.world_to_grid(self.position)

    @property
    def forward(self) -> Vec2:
        return Vec2.from_angle(self.heading)

    # -- Tick -----------------------------------------------------------------

    def step(self, dt: float) -> None:
        """Perform one tick: deposit, react to the current cell, steer, move.

        Args:
            dt: Seconds elapsed.
        """
        self.age += 1
        cell = self.grid_position
        if not self.world.is_valid_grid_position(cell):
            self.reset_to_home()
            return

        self._deposit_timer += dt
        if self._deposit_timer >= self.params.deposit_interval:
            self._deposit_trail(cell)
            self._deposit_timer = 0.0

        self._check_cell(cell)

        previous = self.position
        self._integrate(self.steering_force(), dt)
        self._resolve_collision(previous)

    def reset_to_home(self) -> None:
        """Respawn at the nest with a fresh heading, empty-handed."""
        self.position = self.world.cell_center(self.world.home_position())
        self.heading = float(self.rng.uniform(0.0, 2.0 * math.pi))
        self.velocity = Vec2.from_angle(self.heading, self.params.move_speed)
        self.carrying_resource = False
        self._deposit_timer = 0.0
        self.resets += 1
        logger.debug("Ant reset to nest at %s", self.world.home_position())

    def sense(self, channel: PheromoneChannel) -> SensorReading:
        """Read ``channel`` at the left, centre and right sensors."""
        return read_sensors(
            self.pheromones,
            channel,
            self.position,
            self.heading,
            angle=self.params.sensor_angle,
            distance=self.params.sensor_distance,
            freshness_bias=self.params.freshness_bias,
        )

    def steering_force(self) -> Vec2:
        """Compute the force that turns the velocity toward the desired one.

        Also records which rule won in ``mode``.

        Returns:
            ``desired * move_speed - velocity``, or zero when the desired
            direction has no length.
        """
        p = self.params
        forward = self.forward
        desired = self._avoid_walls(forward)

        goal = self.active_goal()
        if goal is not None and self._cell_distance(goal) <= p.goal_direct_distance:
            self.mode = SteeringMode.GOAL
            desired += self._direction_to(goal) * p.goal_weight
            wander_scale = p.follow_wander_scale
        else:
            reading = self.sense(self.following_channel)
            if reading.max_value > p.signal_epsilon:
                self.mode = SteeringMode.FOLLOW
                desired += self._follow_gradient(reading, forward)
                wander_scale = p.follow_wander_scale
            else:
                self.mode = SteeringMode.LOST
                desired += self._lost_bias()
                wander_scale = 1.0

        desired += self._wander() * wander_scale
        direction = desired.normalized()
        if direction.is_zero():
            return Vec2()
        return direction * p.move_speed - self.velocity

    def active_goal(self) -> GridPos | None:
        """Return the cell the ant is currently trying to reach.

        The nest while carrying; otherwise the nearest remembered or
        visible food cell, or None if no food is known.
        """
        if self.carrying_resource:
            return self.world.home_position()
        self._forget_depleted()
        candidates = list(self.food_memory) + self._visible_food()
        if not candidates:
            return None
        return min(candidates, key=self._cell_distance)

    def remember_food(self, cell: GridPos) -> None:
        """Record ``cell`` as the most recent food source."""
        if cell in self.food_memory:
            self.food_memory.remove(cell)
        self.food_memory.append(cell)

    # -- State machine --------------------------------------------------------

    def _check_cell(self, cell: GridPos) -> None:
        match self.world.cell_kind(cell):
            case CellKind.FOOD if not self.carrying_resource:
                self._pick_up(cell)
            case CellKind.HOME if self.carrying_resource:
                self._drop_off(cell)
            case CellKind.WALL:
                self._escape_wall(cell)

    def _pick_up(self, cell: GridPos) -> None:
        """Take food: mark the discovery and turn for home."""
        self.carrying_resource = True
        self.pickups += 1
        self._emit(cell, PheromoneChannel.FOOD, self.params.found_food_deposit)
        self.remember_food(cell)
        self._redirect(self._direction_to(self.world.home_position()))
        logger.debug("Ant picked up food at %s", cell)

    def _drop_off(self, cell: GridPos) -> None:
        """Deliver food: mark the nest and head back out."""
        self.carrying_resource = False
        self.deliveries += 1
        self._emit(cell, PheromoneChannel.HOME, self.params.found_home_deposit)
        if self.food_memory:
            self._redirect(self._direction_to(self.food_memory[-1]))
        else:
            self._reverse()
        logger.debug("Ant delivered food at %s", cell)

    def _bounce(self) -> None:
        """Reflect the velocity with a small random deflection."""
        p = self.params
        turn = float(self.rng.uniform(-p.bounce_perturbation, p.bounce_perturbation))
        self._redirect((-self.velocity).normalized().rotated(turn))

    def _escape_wall(self, cell: GridPos) -> None:
        """Leave a wall cell for its nearest open neighbour.

        Used when a wall appears under the ant.  The ant lands on the
        neighbour's centre heading away from the wall, or respawns at the
        nest if every neighbour is a wall.
        """
        exits = [n for n in self.world.neighbours(cell) if self._is_open(n)]
        if not exits:
            self.reset_to_home()
            return
        target = min(
            exits,
            key=lambda n: self.position.distance_to(self.world.cell_center(n)),
        )
        self.position = self.world.cell_center(target)
        self._redirect(self.position - self.world.cell_center(cell))
        logger.debug("Ant escaped wall at %s to %s", cell, target)

    def _reverse(self) -> None:
        p = self.params
        turn = float(self.rng.uniform(-p.bounce_perturbation, p.bounce_perturbation))
        self._redirect(Vec2.from_angle(self.heading + math.pi + turn))

    def _redirect(self, direction: Vec2) -> None:
        """Point velocity and heading along ``direction`` (if it has one)."""
        if direction.is_zero():
            direction = Vec2.from_angle(self.heading + math.pi)
        direction = direction.normalized()
        self.velocity = direction * self.params.move_speed
        self.heading = direction.angle()

    # -- Steering components --------------------------------------------------

    def _avoid_walls(self, forward: Vec2) -> Vec2:
        """Push away from walls hit by the forward and diagonal rays.

        Each hit adds a push opposite the ray plus a sideways slide;
        nearer hits push harder.  A forward hit slides toward the clear
        side, or a random side if both or neither diagonal is blocked.
        """
        p = self.params
        left = self._cast_ray(forward.rotated(-_DIAGONAL))
        centre = self._cast_ray(forward)
        right = self._cast_ray(forward.rotated(_DIAGONAL))
        side = forward.perpendicular()  # points to the ant's right
        force = Vec2()

        if centre is not None:
            if (left is None) == (right is None):
                sign = 1.0 if self.rng.random() < 0.5 else -1.0
            else:
                sign = -1.0 if left is None else 1.0
            push = -forward + side * (sign * p.slide_ratio)
            force += push * (p.avoid_force * centre)
        if left is not None:
            push = -forward.rotated(-_DIAGONAL) + side * p.slide_ratio
            force += push * (p.avoid_force * p.diagonal_ray_weight * left)
        if right is not None:
            push = -forward.rotated(_DIAGONAL) - side * p.slide_ratio
            force += push * (p.avoid_force * p.diagonal_ray_weight * right)
        return force

    def _cast_ray(self, direction: Vec2) -> float | None:
        """March along ``direction`` one cell at a time looking for a wall.

        Cells outside the grid count as walls.

        Returns:
            Proximity of the first hit (1.0 at the first step, falling
            toward 0 at ``avoid_range``), or None if the ray is clear.
        """
        cell_size = self.world.cell_size
        steps = max(1, math.ceil(self.params.avoid_range / cell_size))
        stride = self.params.avoid_range / steps
        for k in range(1, steps + 1):
            point = self.position + direction * (stride * k)
            kind = self.world.cell_kind(self.world.world_to_grid(point))
            if kind is None or kind is CellKind.WALL:
                return (steps - k + 1) / steps
        return None

    def _follow_gradient(self, reading: SensorReading, forward: Vec2) -> Vec2:
        """Steer toward the strongest sensor, turning harder on strong signal."""
        p = self.params
        strength = min(reading.max_value / p.signal_saturation, 1.0)
        sharpness = 0.5 + 0.5 * strength
        turn = sensor_offset(reading.strongest, p.sensor_angle) * sharpness
        return forward.rotated(turn) * p.pheromone_weight

    def _lost_bias(self) -> Vec2:
        """Weak pull toward the last known goal when no signal is sensed."""
        if self.carrying_resource:
            target: GridPos | None = self.world.home_position()
        else:
            target = self.food_memory[-1] if self.food_memory else None
        if target is None:
            return Vec2()
        return self._direction_to(target) * self.params.lost_goal_bias

    def _wander(self) -> Vec2:
        angle = float(self.rng.uniform(-math.pi, math.pi))
        return Vec2.from_angle(angle, self.params.wander_strength)

    # -- Motion ---------------------------------------------------------------

    def _integrate(self, force: Vec2, dt: float) -> None:
        """Apply ``force`` to the velocity, renormalise, and move."""
        p = self.params
        gain = min(p.steering_gain * dt, 1.0)
        direction = (self.velocity + force * gain).normalized()
        if direction.is_zero():
            direction = self.forward
        self.velocity = direction * p.move_speed
        self.position = self.position + self.velocity * dt
        self.heading = approach_angle(
            self.heading,
            direction.angle(),
            p.turn_speed * dt,
        )

    def _resolve_collision(self, previous: Vec2) -> None:
        """Handle leaving the grid or stepping into a wall after a move."""
        cell = self.grid_position
        kind = self.world.cell_kind(cell)
        if kind is None:
            self.reset_to_home()
        elif kind is CellKind.WALL:
            if self._is_open(self.world.world_to_grid(previous)):
                self.position = previous
                self._bounce()
            else:
                self._escape_wall(cell)

    # -- Deposits -------------------------------------------------------------

    def _deposit_trail(self, cell: GridPos) -> None:
        """Lay the channel leading back to the trail's origin.

        The amount is boosted near the origin (the nest while seeking,
        the last food cell while returning) so the trail carries a
        gradient toward it.
        """
        if not self._is_open(cell):
            return
        p = self.params
        if self.carrying_resource:
            origin = self.food_memory[-1] if self.food_memory else None
        else:
            origin = self.world.home_position()
        amount = p.deposit_amount
        if origin is not None:
            closeness = max(0.0, 1.0 - self._cell_distance(origin) / p.gradient_radius)
            amount *= 1.0 + p.gradient_boost * closeness
        self._emit(cell, self.depositing_channel, amount)

    def _emit(self, cell: GridPos, channel: PheromoneChannel, amount: float) -> None:
        target = self.sink if self.sink is not None else self.pheromones
        target.deposit(cell, channel, amount)

    # -- Helpers --------------------------------------------------------------

    def _cell_distance(self, cell: GridPos) -> float:
        x, y = self.grid_position
        return math.hypot(cell[0] - x, cell[1] - y)

    def _direction_to(self, cell: GridPos) -> Vec2:
        return (self.world.cell_center(cell) - self.position).normalized()

    def _visible_food(self) -> list[GridPos]:
        """Food cells within the goal-direct radius of the ant."""
        reach = int(self.params.goal_direct_distance)
        x, y = self.grid_position
        found: list[GridPos] = []
        for dx in range(-reach, reach + 1):
            for dy in range(-reach, reach + 1):
                cell = (x + dx, y + dy)
                if cell in self.food_memory:
                    continue
                if self.world.cell_kind(cell) is CellKind.FOOD:
                    found.append(cell)
        return found

    def _is_open(self, cell: GridPos) -> bool:
        kind = self.world.cell_kind(cell)
        return kind is not None and kind is not CellKind.WALL

    def _forget_depleted(self) -> None:
        depleted = [
            c for c in self.food_memory if self.world.cell_kind(c) is not CellKind.FOOD
        ]
        for cell in depleted:
            self.food_memory.remove(cell)

