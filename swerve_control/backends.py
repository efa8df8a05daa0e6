"""Sensor and actuator backends for the swerve modules and gyro.

Every backend implements the same small capability interface:

- `ModuleIO.update_inputs()` returns a `ModuleInputs` snapshot and
  `ModuleIO.set_target()` accepts a `ModuleTarget`;
- `GyroIO.update_inputs()` returns a `GyroInputs` snapshot and
  `GyroIO.zero()` re-zeroes the sensor.

Three variants exist, chosen once by `create_backends()` from a `RobotMode`:

- REAL: `BridgeModuleIO` / `BridgeGyroIO`, fed by the WebSocket bridge.
- SIM: `SimModuleIO` ideal modules and a disconnected gyro, so the heading
  falls back to wheel odometry exactly as on a robot without a gyro.
- REPLAY: `NullModuleIO` / `NullGyroIO`, zero inputs and discarded targets.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from . import config
from .geometry import ModuleTarget, wrap_angle
from .modes import RobotMode


@dataclass(frozen=True)
class ModuleInputs:
    """Snapshot of one module's sensors."""

    drive_position: float = 0.0  # Cumulative drive distance (m)
    drive_velocity: float = 0.0  # Drive speed (m/s)
    turn_angle: float = 0.0  # Steering angle (rad)


@dataclass(frozen=True)
class GyroInputs:
    """Snapshot of the heading sensor."""

    connected: bool = False
    yaw: float = 0.0  # rad, CCW positive
    yaw_rate: float = 0.0  # rad/s


class ModuleIO:
    """Capability interface for one swerve module."""

    def update_inputs(self) -> ModuleInputs:
        raise NotImplementedError

    def set_target(self, target: ModuleTarget) -> None:
        raise NotImplementedError


class GyroIO:
    """Capability interface for the heading sensor."""

    def update_inputs(self) -> GyroInputs:
        raise NotImplementedError

    def zero(self) -> None:
        raise NotImplementedError


class NullModuleIO(ModuleIO):
    def update_inputs(self) -> ModuleInputs:
        return ModuleInputs()

    def set_target(self, target: ModuleTarget) -> None:
        pass


class NullGyroIO(GyroIO):
    def update_inputs(self) -> GyroInputs:
        return GyroInputs(connected=False)

    def zero(self) -> None:
        pass


class SimModuleIO(ModuleIO):
    """Ideal module: steers instantly and drives exactly at the target speed.

    Each `update_inputs()` call advances the simulated module by one tick
    using the most recent target. The drive encoder reports the distance and
    speed actually travelled multiplied by `encoder_scale`, which models
    wheel wear or slip as a systematic odometry error.
    """

    def __init__(self, tick_period: float = config.TICK_PERIOD, encoder_scale: float = 1.0):
        if tick_period <= 0:
            raise ValueError(f"tick_period must be positive, got {tick_period}")
        if encoder_scale <= 0:
            raise ValueError(f"encoder_scale must be positive, got {encoder_scale}")
        self.tick_period = tick_period
        self.encoder_scale = encoder_scale
        self.target = ModuleTarget()
        self.drive_position = 0.0

    def update_inputs(self) -> ModuleInputs:
        self.drive_position += self.target.speed * self.tick_period
        return ModuleInputs(
            drive_position=self.drive_position * self.encoder_scale,
            drive_velocity=self.target.speed * self.encoder_scale,
            turn_angle=wrap_angle(self.target.angle),
        )

    def set_target(self, target: ModuleTarget) -> None:
        self.target = target


class BridgeModuleIO(ModuleIO):
    """Module whose sensors and actuators sit on the far side of the bridge.

    The bridge pushes each sensor snapshot in with `push()` and reads the
    latest commanded target back from `target`.
    """

    def __init__(self):
        self.inputs = ModuleInputs()
        self.target = ModuleTarget()

    def push(self, inputs: ModuleInputs) -> None:
        self.inputs = inputs

    def update_inputs(self) -> ModuleInputs:
        return self.inputs

    def set_target(self, target: ModuleTarget) -> None:
        self.target = target


class BridgeGyroIO(GyroIO):
    """Gyro behind the bridge. Zero requests are latched until sent."""

    def __init__(self):
        self.inputs = GyroInputs()
        self.zero_requested = False

    def push(self, inputs: GyroInputs) -> None:
        if self.inputs.connected and not inputs.connected:
            logging.warning("Gyro reported disconnected by bridge")
        self.inputs = inputs

    def update_inputs(self) -> GyroInputs:
        return self.inputs

    def zero(self) -> None:
        self.zero_requested = True

    def take_zero_request(self) -> bool:
        requested = self.zero_requested
        self.zero_requested = False
        return requested


@dataclass
class Backends:
    """The four module backends (FL, FR, RL, RR) and the gyro backend."""

    modules: List[ModuleIO]
    gyro: GyroIO


def create_backends(
    mode: RobotMode, tick_period: Optional[float] = None, encoder_scale: float = 1.0
) -> Backends:
    """Assemble the backend variant for `mode`.

    Args:
        mode: Backend mode.
        tick_period: Simulation step for SIM modules (default config.TICK_PERIOD).
        encoder_scale: Drive encoder scale error of SIM modules (1.0 = exact).

    Returns:
        Backends with one module IO per entry of config.MODULE_NAMES.
    """
    count = len(config.MODULE_NAMES)
    if mode is RobotMode.REAL:
        return Backends([BridgeModuleIO() for _ in range(count)], BridgeGyroIO())
    if mode is RobotMode.SIM:
        period = config.TICK_PERIOD if tick_period is None else tick_period
        return Backends([SimModuleIO(period, encoder_scale) for _ in range(count)], NullGyroIO())
    if mode is RobotMode.REPLAY:
        return Backends([NullModuleIO() for _ in range(count)], NullGyroIO())
    raise ValueError(f"Unknown robot mode: {mode}")
