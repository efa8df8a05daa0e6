"""Offline scripted drive against the SIM or REPLAY backends.

Runs the drive at the fixed tick period on a simulated clock, feeding it a
short operator script that exercises the command filter (straight run,
strafe, full reversal, rotating field-relative arc, release, cross) and a
stream of late, noisy position corrections.

In SIM mode the simulated drive encoders over-read by SIM_ENCODER_SCALE, so
the odometry drifts away from the pose the modules actually travel. That
ground-truth pose is integrated separately from the module targets and the
simulated camera observes it, not the estimate.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Sequence, Tuple

import numpy as np

from . import config
from .backends import create_backends
from .data_collector import DataCollector
from .drive import SwerveDrive
from .geometry import Correction, ModuleTarget, Pose2D, rotate
from .model import KinematicsSolver
from .modes import RobotMode

# (start time s, x, y, rot, field_relative); the last entry runs to the end
OPERATOR_SCRIPT = [
    (0.0, 1.0, 0.0, 0.0, True),
    (2.0, 0.0, 1.0, 0.0, True),
    (4.0, 0.0, -1.0, 0.0, True),
    (6.5, 0.6, 0.0, 0.5, True),
    (9.0, 0.0, 0.0, 0.0, True),
]
CROSS_TIME = 10.5
"""Time after which the modules are locked in the cross formation (s)."""

CORRECTION_PERIOD = 0.25
"""Interval between simulated camera corrections (s)."""

CORRECTION_LATENCY = 0.1
"""Age of each simulated correction when it arrives (s)."""

CORRECTION_NOISE = 0.02
"""Standard deviation of simulated correction noise (m)."""

CORRECTION_CONFIDENCE = 0.3
"""Confidence attached to simulated corrections."""

SIM_ENCODER_SCALE = 1.03
"""Drive encoder scale error of the simulated modules (3% over-read)."""


def operator_input(t: float) -> Tuple[float, float, float, bool]:
    """Scripted (x, y, rot, field_relative) operator input at time t."""
    current = OPERATOR_SCRIPT[0]
    for entry in OPERATOR_SCRIPT:
        if t >= entry[0]:
            current = entry
    return current[1], current[2], current[3], current[4]


class GroundTruth:
    """Pose the simulated modules actually travel.

    Integrated from the module targets with the exact tick period, independent
    of the encoders and of the estimator. Keeps just enough recent samples to
    answer for a fixed observation latency.
    """

    def __init__(self, solver: KinematicsSolver, tick_period: float, latency_ticks: int):
        self.solver = solver
        self.tick_period = tick_period
        self.pose = Pose2D()
        self._recent: Deque[Tuple[float, Pose2D]] = deque([(0.0, self.pose)], maxlen=latency_ticks + 1)

    def advance(self, targets: Sequence[ModuleTarget], now: float) -> Pose2D:
        """Move one tick at the chassis velocity the targets produce."""
        velocity = self.solver.to_chassis_velocity(targets)
        dtheta = velocity.omega * self.tick_period
        dx, dy = rotate(
            velocity.vx * self.tick_period,
            velocity.vy * self.tick_period,
            self.pose.heading + dtheta / 2.0,
        )
        self.pose = Pose2D(self.pose.x + dx, self.pose.y + dy, self.pose.heading + dtheta)
        self._recent.append((now, self.pose))
        return self.pose

    def delayed(self) -> Tuple[float, Pose2D]:
        """Oldest retained (timestamp, pose), i.e. what a late camera saw."""
        return self._recent[0]


@dataclass(frozen=True)
class SimulationResult:
    """Final drive state of a simulated run and where the robot really is."""

    drive: SwerveDrive
    truth: Pose2D

    @property
    def position_error(self) -> float:
        """Distance between the estimated and the true position (m)."""
        estimate = self.drive.get_pose()
        return math.hypot(estimate.x - self.truth.x, estimate.y - self.truth.y)


def run_simulation(
    mode: RobotMode = RobotMode.SIM,
    duration: float = config.SIM_DURATION,
    collector: Optional[DataCollector] = None,
    seed: int = 0,
    tick_period: float = config.TICK_PERIOD,
    correction_period: Optional[float] = CORRECTION_PERIOD,
    encoder_scale: float = SIM_ENCODER_SCALE,
) -> SimulationResult:
    """Run the scripted drive.

    Args:
        mode: SIM or REPLAY. REPLAY modules never move, so the truth stays at
            the origin.
        duration: Simulated run length (s).
        collector: Optional recorder; must already be set up.
        seed: Seed for the correction noise.
        tick_period: Control tick (s).
        correction_period: Interval between corrections (s), None disables them.
        encoder_scale: Drive encoder scale error of SIM modules.

    Returns:
        SimulationResult with the drive in its final state and the true pose.

    Raises:
        ValueError: If mode is REAL (that runs through the bridge client).
    """
    if mode is RobotMode.REAL:
        raise ValueError("REAL mode runs through the WebSocket bridge, not the simulator")

    rng = np.random.default_rng(seed)
    backends = create_backends(mode, tick_period=tick_period, encoder_scale=encoder_scale)
    drive = SwerveDrive(backends, tick_period=tick_period)
    truth = GroundTruth(drive.solver, tick_period, int(round(CORRECTION_LATENCY / tick_period)))

    ticks = int(round(duration / tick_period))
    next_correction = correction_period
    for i in range(ticks + 1):
        now = i * tick_period

        if i > 0:
            # The modules run the previous tick's targets until this one
            if mode is RobotMode.SIM:
                applied = [module.target for module in drive.modules]
            else:
                applied = [ModuleTarget()] * len(drive.modules)
            truth.advance(applied, now)

        pose = drive.periodic(now)

        if next_correction is not None and now >= next_correction:
            observed_at, observed = truth.delayed()
            noise = rng.normal(0.0, CORRECTION_NOISE, size=2)
            correction = Correction(
                Pose2D(observed.x + noise[0], observed.y + noise[1]),
                timestamp=observed_at,
                confidence=CORRECTION_CONFIDENCE,
            )
            drive.add_correction(correction)
            if collector:
                collector.log_correction(correction)
            next_correction += correction_period

        if now >= CROSS_TIME:
            targets = drive.set_cross()
        else:
            x, y, rot, field_relative = operator_input(now)
            targets = drive.drive(x, y, rot, field_relative, True, now)

        if collector:
            collector.log_pose(now, pose)
            collector.log_targets(now, targets)

    result = SimulationResult(drive, truth.pose)
    final = drive.get_pose()
    logging.info(
        f"{config.TERM_BLUE}Simulated {duration:.1f}s in {mode} mode: final pose "
        f"({final.x:.2f}, {final.y:.2f}, {final.heading:.2f} rad), "
        f"error to truth {result.position_error:.3f}m{config.TERM_RESET}"
    )
    return result
