"""
Swerve drive kinematic model.

This module provides the inverse kinematics for a four-module swerve drive,
converting a desired chassis velocity into individual module speed and steering
targets, plus the forward kinematics used for odometry and heading fallback.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .geometry import ChassisVelocity, ModulePosition, ModuleState, ModuleTarget, WheelGeometry


def desaturate(targets: Sequence[ModuleTarget], max_speed: float) -> List[ModuleTarget]:
    """Scale module speeds so none exceeds the physical limit.

    If the fastest module is over `max_speed`, every module is scaled by the
    same factor (max_speed / fastest), which keeps the ratios between modules
    and therefore the commanded path curvature. Angles are untouched.

    Args:
        targets: Module targets (any number, normally 4).
        max_speed: Maximum allowed module speed (m/s), positive.

    Returns:
        New list of module targets.

    Example:
        >>> desaturate([ModuleTarget(6.0, 0.0), ModuleTarget(3.0, 1.0)], 4.0)
        [ModuleState(speed=4.0, angle=0.0), ModuleState(speed=2.0, angle=1.0)]
    """
    if max_speed <= 0:
        raise ValueError(f"max_speed must be positive, got {max_speed}")

    real_max = max((abs(t.speed) for t in targets), default=0.0)
    if real_max <= max_speed:
        return list(targets)

    scale = max_speed / real_max
    return [ModuleTarget(t.speed * scale, t.angle) for t in targets]


def cross_formation() -> List[ModuleTarget]:
    """Locked X formation: every module points toward the chassis center line.

    Front-left and rear-right at +45 degrees, front-right and rear-left at
    -45 degrees, all at zero speed.
    """
    a = config.CROSS_ANGLE
    return [ModuleTarget(0.0, a), ModuleTarget(0.0, -a), ModuleTarget(0.0, -a), ModuleTarget(0.0, a)]


class KinematicsSolver:
    """Inverse and forward kinematics for a fixed swerve module layout.

    For a module at offset r = (rx, ry) from the rotation center, planar
    rigid-body kinematics gives its ground velocity as

        v_module = v_chassis + omega x r = (vx - omega * ry, vy + omega * rx)

    Stacking these rows for all modules gives the 8x3 matrix M with
    [v_module] = M @ [vx, vy, omega]; forward kinematics solves it in the
    least-squares sense with the pseudo-inverse.

    Attributes:
        geometry: Module offsets (immutable).
        last_angles: Steering angle of each module from the last solve, used
            when a module has no speed to steer by.
    """

    def __init__(self, geometry: Optional[WheelGeometry] = None):
        if geometry is None:
            geometry = WheelGeometry.rectangular(config.WHEEL_BASE, config.TRACK_WIDTH)
        self.geometry = geometry

        rows = []
        for rx, ry in geometry:
            rows.append([1.0, 0.0, -ry])
            rows.append([0.0, 1.0, rx])
        self._inverse_matrix = np.array(rows)
        self._forward_matrix = np.linalg.pinv(self._inverse_matrix)

        self.last_angles: List[float] = [0.0] * len(geometry)

    def solve(self, velocity: ChassisVelocity) -> List[ModuleTarget]:
        """Compute module targets for a robot-relative chassis velocity.

        Args:
            velocity: Desired chassis velocity in the robot frame.

        Returns:
            One ModuleTarget per module, ordered like the geometry. Modules
            with (near) zero speed keep their previous steering angle.

        Raises:
            ValueError: If the velocity is field-relative.
        """
        if velocity.field_relative:
            raise ValueError("solve() needs a robot-relative velocity; call to_robot_relative() first")

        module_velocities = self._inverse_matrix @ np.array(
            [velocity.vx, velocity.vy, velocity.omega]
        )

        targets = []
        for i in range(len(self.geometry)):
            vx = float(module_velocities[2 * i])
            vy = float(module_velocities[2 * i + 1])
            speed = math.hypot(vx, vy)
            if speed < config.MODULE_SPEED_EPSILON:
                targets.append(ModuleTarget(0.0, self.last_angles[i]))
            else:
                angle = math.atan2(vy, vx)
                self.last_angles[i] = angle
                targets.append(ModuleTarget(speed, angle))
        return targets

    def to_chassis_velocity(self, states: Sequence[ModuleState]) -> ChassisVelocity:
        """Estimate the robot-relative chassis velocity from measured module states.

        Args:
            states: Measured speed and angle of each module.

        Returns:
            Least-squares chassis velocity (robot frame).
        """
        vector = self._module_vector([(s.speed, s.angle) for s in states])
        vx, vy, omega = self._forward_matrix @ vector
        return ChassisVelocity(float(vx), float(vy), float(omega))

    def to_displacement(
        self, start: Sequence[ModulePosition], end: Sequence[ModulePosition]
    ) -> Tuple[float, float, float]:
        """Robot-frame displacement (dx, dy, dtheta) between two module position sets.

        Each module is taken to have travelled its distance delta along its
        current steering angle.
        """
        if len(start) != len(end):
            raise ValueError(f"Position sets differ in length: {len(start)} vs {len(end)}")
        deltas = [(e.distance - s.distance, e.angle) for s, e in zip(start, end)]
        dx, dy, dtheta = self._forward_matrix @ self._module_vector(deltas)
        return float(dx), float(dy), float(dtheta)

    def _module_vector(self, polar: Sequence[Tuple[float, float]]) -> np.ndarray:
        if len(polar) != len(self.geometry):
            raise ValueError(f"Expected {len(self.geometry)} modules, got {len(polar)}")
        vector = np.empty(2 * len(polar))
        for i, (magnitude, angle) in enumerate(polar):
            vector[2 * i] = magnitude * math.cos(angle)
            vector[2 * i + 1] = magnitude * math.sin(angle)
        return vector
