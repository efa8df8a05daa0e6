"""Absolute heading tracking with a dead-reckoning fallback."""

import logging
from typing import Optional, Sequence

from .backends import GyroInputs
from .geometry import ModuleState, wrap_angle
from .model import KinematicsSolver


class HeadingTracker:
    """Tracks robot heading from the gyro, or from the wheels when it is missing.

    With a connected gyro its yaw is taken verbatim. Without one, the chassis
    angular rate implied by the measured module states is integrated over the
    tick. The fallback drifts and is only meant to keep the robot drivable.
    """

    def __init__(self, solver: KinematicsSolver, initial_heading: float = 0.0):
        self.solver = solver
        self.heading = wrap_angle(initial_heading)
        self.using_gyro: Optional[bool] = None

    def update(
        self, gyro: Optional[GyroInputs], module_states: Sequence[ModuleState], dt: float
    ) -> float:
        """Advance the heading estimate by one tick.

        Args:
            gyro: Latest gyro snapshot, or None when no gyro is fitted.
            module_states: Measured speed and angle of each module.
            dt: Elapsed time since the previous update (seconds).

        Returns:
            Heading in radians, wrapped to (-pi, pi].
        """
        connected = gyro is not None and gyro.connected
        if connected != self.using_gyro:
            if connected:
                logging.info("Heading source: gyro")
            else:
                logging.info("Heading source: wheel odometry (gyro unavailable)")
            self.using_gyro = connected

        if connected:
            self.heading = wrap_angle(gyro.yaw)
        elif dt > 0:
            omega = self.solver.to_chassis_velocity(module_states).omega
            self.heading = wrap_angle(self.heading + omega * dt)
        return self.heading

    def zero(self) -> None:
        """Reset the tracked heading to 0 rad.

        Only affects the fallback path; a connected gyro is re-zeroed on its
        own and overrides this on the next update.
        """
        self.heading = 0.0
