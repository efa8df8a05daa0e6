"""Fixed-tick orchestration of the swerve drive.

`SwerveDrive` owns one instance of each core component and is the only caller
of their operations. Once per control tick the runtime calls `periodic(now)`
and then at most one command method (`drive`, `drive_chassis`, `set_cross`,
`stop`). Nothing here blocks.
"""

import logging
from typing import List, Optional, Sequence

from . import config
from .backends import Backends, GyroInputs, ModuleInputs
from .geometry import ChassisVelocity, Correction, ModulePosition, ModuleState, ModuleTarget, Pose2D
from .heading import HeadingTracker
from .localizer import CorrectionQueue, PoseEstimator
from .model import KinematicsSolver, cross_formation, desaturate
from .shaper import VelocityShaper


class SwerveDrive:
    """Swerve drive subsystem: sensing, estimation and command output.

    Attributes:
        modules: Module backends, ordered FL, FR, RL, RR.
        gyro: Heading sensor backend.
        solver: Kinematics for the module layout.
        shaper: Operator command filter.
        heading_tracker: Gyro / wheel-odometry heading source.
        estimator: Pose estimator.
        corrections: Pending external corrections, drained every tick.
        targets: Last targets sent to the modules.
    """

    def __init__(
        self,
        backends: Backends,
        solver: Optional[KinematicsSolver] = None,
        shaper: Optional[VelocityShaper] = None,
        corrections: Optional[CorrectionQueue] = None,
        max_speed: float = config.MAX_SPEED,
        tick_period: float = config.TICK_PERIOD,
        history_window: float = config.CORRECTION_HISTORY_WINDOW,
    ):
        """Assemble the drive from its backends.

        Args:
            backends: Module and gyro IO for the selected RobotMode.
            solver: Kinematics (default: configured rectangular layout).
            shaper: Command filter (default: configured rates and limits).
            corrections: Correction queue (default: configured depth).
            max_speed: Module speed limit used for desaturation (m/s).
            tick_period: Nominal tick duration (s), used for discretization.
            history_window: Correction history retention (s).

        Raises:
            ValueError: If the number of module backends does not match the
                kinematics, or a limit is not positive.
        """
        self.solver = solver if solver is not None else KinematicsSolver()
        if len(backends.modules) != len(self.solver.geometry):
            raise ValueError(
                f"Expected {len(self.solver.geometry)} module backends, got {len(backends.modules)}"
            )
        if max_speed <= 0 or tick_period <= 0:
            raise ValueError("max_speed and tick_period must be positive")

        self.modules = backends.modules
        self.gyro = backends.gyro
        self.max_speed = max_speed
        self.tick_period = tick_period

        self.shaper = shaper if shaper is not None else VelocityShaper(max_speed=max_speed)
        self.heading_tracker = HeadingTracker(self.solver)
        self.estimator = PoseEstimator(self.solver, history_window=history_window)
        self.corrections = corrections if corrections is not None else CorrectionQueue()

        self.module_inputs: List[ModuleInputs] = [ModuleInputs() for _ in self.modules]
        self.gyro_inputs = GyroInputs()
        self.targets: List[ModuleTarget] = [ModuleTarget() for _ in self.modules]
        self.last_tick_time: Optional[float] = None

    # ------------------------------------------------------------------
    # Sensing and estimation
    # ------------------------------------------------------------------
    def periodic(self, now: float) -> Pose2D:
        """Run the sensing half of one control tick.

        Reads every backend, advances the heading and odometry, then applies
        all corrections queued since the previous tick.

        Args:
            now: Tick timestamp (seconds), on the same clock as corrections.

        Returns:
            The updated pose estimate.
        """
        self.gyro_inputs = self.gyro.update_inputs()
        self.module_inputs = [module.update_inputs() for module in self.modules]

        first_tick = self.last_tick_time is None
        dt = 0.0 if first_tick else now - self.last_tick_time
        self.last_tick_time = now

        heading = self.heading_tracker.update(self.gyro_inputs, self.get_module_states(), dt)

        if first_tick:
            # Encoders and clocks start anywhere; take them as the baseline
            self.estimator.reset_pose(self.estimator.pose, heading, self.get_module_positions(), now)
            self.shaper.reset(now)
        else:
            self.estimator.update_odometry(heading, self.get_module_positions(), now)

        for correction in self.corrections.drain():
            self.estimator.add_correction(correction)

        return self.estimator.pose

    def add_correction(self, correction: Correction) -> None:
        """Queue an external position observation for the next tick."""
        self.corrections.offer(correction)

    def get_module_states(self) -> List[ModuleState]:
        return [ModuleState(i.drive_velocity, i.turn_angle) for i in self.module_inputs]

    def get_module_positions(self) -> List[ModulePosition]:
        return [ModulePosition(i.drive_position, i.turn_angle) for i in self.module_inputs]

    def get_pose(self) -> Pose2D:
        """Current pose estimate."""
        return self.estimator.pose

    def get_heading(self) -> float:
        """Tracked heading from the gyro or the wheel fallback (radians)."""
        return self.heading_tracker.heading

    def get_turn_rate(self) -> float:
        """Chassis turn rate (rad/s), from the gyro when it is connected."""
        if self.gyro_inputs.connected:
            return self.gyro_inputs.yaw_rate
        return self.solver.to_chassis_velocity(self.get_module_states()).omega

    def reset_pose(self, pose: Pose2D) -> None:
        """Move the estimate to `pose`, keeping the current heading reading as baseline."""
        self.estimator.reset_pose(
            pose, self.heading_tracker.heading, self.get_module_positions(), self.last_tick_time
        )
        logging.info(f"Pose reset to ({pose.x:.2f}, {pose.y:.2f}, {pose.heading:.2f} rad)")

    def zero_heading(self) -> None:
        """Zero the heading sensor, or the tracked heading when there is none."""
        self.gyro.zero()
        if not self.gyro_inputs.connected:
            self.heading_tracker.zero()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def drive(
        self,
        x_speed: float,
        y_speed: float,
        rot: float,
        field_relative: bool,
        rate_limit: bool,
        now: float,
    ) -> List[ModuleTarget]:
        """Drive from normalized operator input.

        Args:
            x_speed: Forward input in [-1, 1].
            y_speed: Leftward input in [-1, 1].
            rot: Counter-clockwise rotation input in [-1, 1].
            field_relative: Whether x/y are relative to the field.
            rate_limit: Whether to apply the slew filter.
            now: Current timestamp (seconds).

        Returns:
            The targets sent to the modules.
        """
        velocity = self.shaper.shape(x_speed, y_speed, rot, rate_limit, now, field_relative)
        return self.drive_chassis(velocity)

    def drive_chassis(self, velocity: ChassisVelocity, discretize: bool = False) -> List[ModuleTarget]:
        """Drive at a chassis velocity (path followers call this directly).

        Args:
            velocity: Desired chassis velocity in either frame.
            discretize: Compensate for the finite tick duration.

        Returns:
            The targets sent to the modules.
        """
        robot_velocity = velocity.to_robot_relative(self.estimator.pose.heading)
        if discretize:
            robot_velocity = robot_velocity.discretize(self.tick_period)
        return self.set_module_targets(self.solver.solve(robot_velocity))

    def set_module_targets(self, targets: Sequence[ModuleTarget]) -> List[ModuleTarget]:
        """Desaturate and send module targets.

        Raises:
            ValueError: If there is not exactly one target per module.
        """
        if len(targets) != len(self.modules):
            raise ValueError(f"Expected {len(self.modules)} targets, got {len(targets)}")

        self.targets = desaturate(targets, self.max_speed)
        for module, target in zip(self.modules, self.targets):
            module.set_target(target)
        # Idle modules hold whatever angle they were last sent
        self.solver.last_angles = [t.angle for t in self.targets]
        return self.targets

    def set_cross(self) -> List[ModuleTarget]:
        """Lock the modules in an X formation so the robot resists pushing."""
        logging.debug("Modules set to cross formation")
        return self.set_module_targets(cross_formation())

    def stop(self) -> List[ModuleTarget]:
        """Command zero velocity, leaving the modules at their current angles."""
        return self.drive_chassis(ChassisVelocity())
