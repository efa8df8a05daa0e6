"""Planar geometry types and angle helpers shared by the swerve core.

Angles are radians, counter-clockwise positive, 0 along the +x axis.
Headings are kept in (-pi, pi].
"""

import math
from dataclasses import dataclass, replace
from typing import Iterator, Tuple


def wrap_angle(angle: float) -> float:
    """Normalize an angle to (-pi, pi]."""
    wrapped = math.remainder(angle, 2 * math.pi)
    # remainder() returns -pi for odd multiples of pi, fold it onto +pi
    if wrapped <= -math.pi:
        wrapped = math.pi
    return wrapped


def angle_difference(a: float, b: float) -> float:
    """Absolute shortest angular distance between two angles, in [0, pi].

    Both inputs may be unwrapped or wrapped to different ranges.
    """
    return abs(wrap_angle(a - b))


def step_towards_circular(current: float, target: float, step: float) -> float:
    """Rotate `current` toward `target` along the shorter arc by at most `step`.

    Args:
        current: Current angle (radians, any range).
        target: Target angle (radians, any range).
        step: Maximum rotation for this call (radians, non-negative).

    Returns:
        New angle wrapped to (-pi, pi]. Equals the wrapped target when the
        remaining distance is within `step`.
    """
    delta = wrap_angle(target - current)
    if abs(delta) <= step:
        return wrap_angle(target)
    return wrap_angle(current + math.copysign(step, delta))


def rotate(x: float, y: float, angle: float) -> Tuple[float, float]:
    """Rotate a 2D vector counter-clockwise by `angle`."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


@dataclass(frozen=True)
class Pose2D:
    """Robot position (meters) and heading (radians) in the field frame."""

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "heading", wrap_angle(self.heading))

    def translated(self, dx: float, dy: float) -> "Pose2D":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def interpolate(self, other: "Pose2D", t: float) -> "Pose2D":
        """Linear interpolation toward `other`; heading along the shorter arc."""
        t = max(0.0, min(1.0, t))
        dtheta = wrap_angle(other.heading - self.heading)
        return Pose2D(
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
            self.heading + dtheta * t,
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "heading": self.heading}


@dataclass(frozen=True)
class ChassisVelocity:
    """Chassis translational (m/s) and angular (rad/s) velocity.

    The reference frame travels with the value: `field_relative` is True when
    (vx, vy) are expressed in the field frame, False for the robot frame.
    """

    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0
    field_relative: bool = False

    def to_robot_relative(self, heading: float) -> "ChassisVelocity":
        """Express this velocity in the robot frame given the robot heading."""
        if not self.field_relative:
            return self
        vx, vy = rotate(self.vx, self.vy, -heading)
        return ChassisVelocity(vx, vy, self.omega, field_relative=False)

    def discretize(self, dt: float) -> "ChassisVelocity":
        """Compensate for applying a constant twist over a finite tick.

        Commanding (vx, vy, omega) for `dt` seconds with a first-order
        kinematics model makes the robot drift sideways while rotating. This
        returns the velocity whose constant-curvature arc over `dt` ends at
        the pose the first-order model aimed for.

        Args:
            dt: Tick duration (seconds, > 0).

        Returns:
            Corrected velocity in the same frame.

        Raises:
            ValueError: If dt is not positive.
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        dtheta = self.omega * dt
        half_dtheta = dtheta / 2.0
        cos_minus_one = math.cos(dtheta) - 1.0

        # Pose log of the desired delta pose
        if abs(cos_minus_one) < 1e-9:
            half_theta_by_tan = 1.0 - dtheta * dtheta / 12.0
        else:
            half_theta_by_tan = -(half_dtheta * math.sin(dtheta)) / cos_minus_one

        scale = math.hypot(half_theta_by_tan, half_dtheta)
        angle = math.atan2(-half_dtheta, half_theta_by_tan)
        dx, dy = rotate(self.vx * dt, self.vy * dt, angle)

        return ChassisVelocity(
            dx * scale / dt, dy * scale / dt, self.omega, field_relative=self.field_relative
        )


@dataclass(frozen=True)
class ModuleState:
    """Linear speed (m/s) and steering angle (rad) of one module."""

    speed: float = 0.0
    angle: float = 0.0


ModuleTarget = ModuleState
"""A commanded module state."""


@dataclass(frozen=True)
class ModulePosition:
    """Cumulative drive distance (m) and steering angle (rad) of one module."""

    distance: float = 0.0
    angle: float = 0.0


@dataclass(frozen=True)
class WheelGeometry:
    """Fixed (x, y) offsets of the four modules from the rotation center.

    Ordered front-left, front-right, rear-left, rear-right. +x is forward,
    +y is left.
    """

    offsets: Tuple[Tuple[float, float], ...]

    def __post_init__(self) -> None:
        offsets = tuple((float(x), float(y)) for x, y in self.offsets)
        if len(offsets) != 4:
            raise ValueError(f"Expected 4 module offsets, got {len(offsets)}")
        object.__setattr__(self, "offsets", offsets)

    @classmethod
    def rectangular(cls, wheel_base: float, track_width: float) -> "WheelGeometry":
        """Standard rectangular layout centered on the rotation center."""
        if wheel_base <= 0 or track_width <= 0:
            raise ValueError(
                f"wheel_base and track_width must be positive, got {wheel_base}, {track_width}"
            )
        hx = wheel_base / 2.0
        hy = track_width / 2.0
        return cls(((hx, hy), (hx, -hy), (-hx, hy), (-hx, -hy)))

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        return iter(self.offsets)

    def __len__(self) -> int:
        return len(self.offsets)


@dataclass(frozen=True)
class Correction:
    """Timestamped external position observation.

    Only the position of `pose` is used; its heading is ignored.
    `confidence` in [0, 1] is the blend weight toward the observation.
    """

    pose: Pose2D
    timestamp: float
    confidence: float = 1.0


@dataclass
class SlewState:
    """Polar state of the command shaping filter."""

    magnitude: float = 0.0
    direction: float = 0.0
    last_update_time: float = 0.0
