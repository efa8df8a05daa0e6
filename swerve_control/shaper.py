"""Operator command shaping for the swerve drive.

Turns normalized joystick axes into a chassis velocity while bounding lateral
acceleration and angular acceleration. Translation is filtered in polar form:
the direction turns at a rate inversely proportional to the current speed and
the magnitude follows a linear slew limiter, so a fast-moving robot cannot be
asked to change direction abruptly.
"""

import logging
import math

from . import config
from .geometry import ChassisVelocity, SlewState, angle_difference, step_towards_circular, wrap_angle


class SlewRateLimiter:
    """Linear rate limiter driven by caller-supplied timestamps.

    Attributes:
        rate: Maximum change per second (units/s), applied in both directions.
        value: Last output value.
        last_time: Timestamp of the last update (seconds).
    """

    def __init__(self, rate: float, initial_value: float = 0.0, start_time: float = 0.0):
        if rate <= 0:
            raise ValueError(f"Slew rate must be positive, got {rate}")
        self.rate = rate
        self.value = initial_value
        self.last_time = start_time

    def calculate(self, value: float, now: float) -> float:
        """Step toward `value` by at most rate * elapsed and return the result."""
        elapsed = max(0.0, now - self.last_time)
        max_change = self.rate * elapsed
        self.value += max(-max_change, min(max_change, value - self.value))
        self.last_time = now
        return self.value

    def reset(self, value: float = 0.0, now: float = 0.0) -> None:
        self.value = value
        self.last_time = now


class VelocityShaper:
    """Jerk-limited conversion of operator axes to a chassis velocity.

    The filter keeps a polar translation state (magnitude, direction) plus a
    separately limited rotation command. Depending on how far the requested
    direction is from the current one:

    - small change (< SMALL_ANGLE_THRESHOLD): steer toward it at the adaptive
      rate and follow the requested magnitude;
    - reversal (> REVERSAL_ANGLE_THRESHOLD): hold direction and brake, then flip
      by pi once stopped and accelerate again;
    - anything in between: steer toward it while braking.

    Attributes:
        max_speed: Speed corresponding to a unit translation input (m/s).
        max_angular_speed: Angular rate for a unit rotation input (rad/s).
        direction_slew_rate: Direction rate at unit magnitude (rad/s).
        state: Polar shaping state carried across ticks.
    """

    def __init__(
        self,
        max_speed: float = config.MAX_SPEED,
        max_angular_speed: float = config.MAX_ANGULAR_SPEED,
        direction_slew_rate: float = config.DIRECTION_SLEW_RATE,
        magnitude_slew_rate: float = config.MAGNITUDE_SLEW_RATE,
        rotational_slew_rate: float = config.ROTATIONAL_SLEW_RATE,
        start_time: float = 0.0,
    ):
        """Initialize the shaper.

        Args:
            max_speed: Maximum linear speed (m/s). Must be positive.
            max_angular_speed: Maximum angular speed (rad/s). Must be positive.
            direction_slew_rate: Direction slew rate at unit magnitude (rad/s).
            magnitude_slew_rate: Magnitude slew rate (normalized units/s).
            rotational_slew_rate: Rotation slew rate (normalized units/s).
            start_time: Timestamp the first elapsed interval is measured from.

        Raises:
            ValueError: If any speed or rate is not positive.
        """
        if max_speed <= 0 or max_angular_speed <= 0 or direction_slew_rate <= 0:
            raise ValueError("Speeds and slew rates must be positive")

        self.max_speed = max_speed
        self.max_angular_speed = max_angular_speed
        self.direction_slew_rate = direction_slew_rate

        self._magnitude_limiter = SlewRateLimiter(magnitude_slew_rate, start_time=start_time)
        self._rotation_limiter = SlewRateLimiter(rotational_slew_rate, start_time=start_time)

        self.state = SlewState(last_update_time=start_time)
        self.rotation: float = 0.0

    def shape(
        self,
        x_speed: float,
        y_speed: float,
        rot: float,
        rate_limit: bool,
        now: float,
        field_relative: bool = False,
    ) -> ChassisVelocity:
        """Convert normalized operator axes into a chassis velocity.

        Args:
            x_speed: Forward input in [-1, 1].
            y_speed: Leftward input in [-1, 1].
            rot: Counter-clockwise rotation input in [-1, 1].
            rate_limit: Whether to run the slew filter. When False the output
                is a pure scaling of the inputs and no state is touched.
            now: Current timestamp (seconds).
            field_relative: Frame the translation inputs are expressed in.

        Returns:
            ChassisVelocity in physical units, tagged with `field_relative`.
        """
        if not rate_limit:
            return ChassisVelocity(
                x_speed * self.max_speed,
                y_speed * self.max_speed,
                rot * self.max_angular_speed,
                field_relative=field_relative,
            )

        magnitude, direction = self._shape_translation(x_speed, y_speed, now)
        self.rotation = self._rotation_limiter.calculate(rot, now)

        return ChassisVelocity(
            magnitude * math.cos(direction) * self.max_speed,
            magnitude * math.sin(direction) * self.max_speed,
            self.rotation * self.max_angular_speed,
            field_relative=field_relative,
        )

    def _shape_translation(self, x_speed: float, y_speed: float, now: float):
        state = self.state
        input_magnitude = math.hypot(x_speed, y_speed)

        # A zero request has no direction; keep ours so we only brake
        if input_magnitude < config.REVERSAL_MAGNITUDE_EPSILON:
            input_direction = state.direction
        else:
            input_direction = math.atan2(y_speed, x_speed)

        if state.magnitude != 0.0:
            direction_slew_rate = abs(self.direction_slew_rate / state.magnitude)
        else:
            direction_slew_rate = config.INSTANT_DIRECTION_SLEW_RATE

        elapsed = max(0.0, now - state.last_update_time)
        max_turn = direction_slew_rate * elapsed
        angle_dif = angle_difference(input_direction, state.direction)

        if angle_dif < config.SMALL_ANGLE_THRESHOLD:
            state.direction = step_towards_circular(state.direction, input_direction, max_turn)
            state.magnitude = self._magnitude_limiter.calculate(input_magnitude, now)
        elif angle_dif > config.REVERSAL_ANGLE_THRESHOLD:
            if state.magnitude > config.REVERSAL_MAGNITUDE_EPSILON:
                state.magnitude = self._magnitude_limiter.calculate(0.0, now)
            else:
                state.direction = wrap_angle(state.direction + math.pi)
                state.magnitude = self._magnitude_limiter.calculate(input_magnitude, now)
                logging.debug(f"Translation reversed, direction now {state.direction:.3f} rad")
        else:
            state.direction = step_towards_circular(state.direction, input_direction, max_turn)
            state.magnitude = self._magnitude_limiter.calculate(0.0, now)

        state.last_update_time = now
        return state.magnitude, state.direction

    def reset(self, now: float = 0.0) -> None:
        """Clear the shaping state (subsystem re-creation)."""
        self.state = SlewState(last_update_time=now)
        self.rotation = 0.0
        self._magnitude_limiter.reset(0.0, now)
        self._rotation_limiter.reset(0.0, now)
