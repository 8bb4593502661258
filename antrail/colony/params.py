"""AntParams — tunable per-agent constants.

The defaults reproduce a colony on 8-unit cells moving at 50 units per
second.  None of the weights are contracts; they are knobs for shaping
how readily ants commit to trails versus exploring.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class AntParams:
    """Movement, sensing and deposit settings shared by a colony's ants.

    Attributes:
        move_speed: Cruising speed in world units per second.
        steering_gain: How quickly velocity converges on the desired
            velocity (fraction per second, clamped to 1 per tick).
        turn_speed: Rate at which the visual heading follows velocity.
        wander_strength: Length of the random wander vector.
        follow_wander_scale: Wander multiplier while a signal or goal is
            being followed.
        sensor_angle: Angle between centre and side sensors (radians).
        sensor_distance: Distance from the ant to each sensor.
        signal_epsilon: Readings at or below this count as no signal.
        signal_saturation: Reading at which turns reach full sharpness.
        pheromone_weight: Weight of the gradient-following direction.
        freshness_bias: How strongly old pheromone is discounted (0..1).
        goal_direct_distance: Cell distance within which the ant ignores
            pheromone and heads straight for its goal.
        goal_weight: Weight of the goal-direct direction.
        lost_goal_bias: Weight of the pull toward the last known goal
            when no signal is sensed.
        avoid_range: Length of the wall-detection rays.
        avoid_force: Weight of a forward-ray wall hit.
        diagonal_ray_weight: Weight of a diagonal hit relative to forward.
        slide_ratio: Perpendicular slide relative to the push-back.
        bounce_perturbation: Maximum random deflection (radians) when
            reflecting off a wall or reversing at the nest.
        deposit_interval: Seconds between trail deposits.
        deposit_amount: Base trail deposit.
        found_food_deposit: FOOD mark laid when food is found.
        found_home_deposit: HOME mark laid when food is delivered.
        gradient_boost: Extra deposit multiplier right at the trail's
            origin, falling off linearly over ``gradient_radius`` cells.
        gradient_radius: Cells over which the deposit boost fades.
        memory_size: Number of food cells remembered.
    """

    move_speed: float = 50.0
    steering_gain: float = 5.0
    turn_speed: float = 10.0
    wander_strength: float = 0.3
    follow_wander_scale: float = 0.2
    sensor_angle: float = math.pi / 4.0
    sensor_distance: float = 8.0
    signal_epsilon: float = 0.01
    signal_saturation: float = 0.5
    pheromone_weight: float = 1.0
    freshness_bias: float = 0.25
    goal_direct_distance: float = 3.0
    goal_weight: float = 2.0
    lost_goal_bias: float = 0.15
    avoid_range: float = 16.0
    avoid_force: float = 3.0
    diagonal_ray_weight: float = 0.5
    slide_ratio: float = 0.5
    bounce_perturbation: float = math.pi / 6.0
    deposit_interval: float = 0.1
    deposit_amount: float = 0.1
    found_food_deposit: float = 0.5
    found_home_deposit: float = 0.5
    gradient_boost: float = 1.0
    gradient_radius: float = 20.0
    memory_size: int = 5

    def __post_init__(self) -> None:
        """Validate the settings that would break the steering maths."""
        if self.move_speed <= 0:
            msg = f"move_speed must be positive, got {self.move_speed}"
            raise ValueError(msg)
        if self.memory_size < 1:
            msg = f"memory_size must be >= 1, got {self.memory_size}"
            raise ValueError(msg)
        if not 0.0 <= self.freshness_bias <= 1.0:
            msg = f"freshness_bias must lie in [0, 1], got {self.freshness_bias}"
            raise ValueError(msg)
        if self.signal_saturation <= 0 or self.gradient_radius <= 0:
            msg = "signal_saturation and gradient_radius must be positive"
            raise ValueError(msg)
        if min(self.found_food_deposit, self.found_home_deposit) <= self.deposit_amount:
            msg = "discovery deposits must exceed the per-tick deposit_amount"
            raise ValueError(msg)
        if self.deposit_interval < 0 or self.deposit_amount < 0:
            msg = "deposit_interval and deposit_amount must be >= 0"
            raise ValueError(msg)
