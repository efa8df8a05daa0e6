"""Shared fixtures for the swerve_control tests."""

import matplotlib

matplotlib.use("Agg")

import pytest

from swerve_control.backends import create_backends
from swerve_control.drive import SwerveDrive
from swerve_control.geometry import WheelGeometry
from swerve_control.localizer import PoseEstimator
from swerve_control.model import KinematicsSolver
from swerve_control.modes import RobotMode

TICK = 0.02


@pytest.fixture
def unit_square():
    """Modules at (+-0.5, +-0.5)."""
    return WheelGeometry.rectangular(1.0, 1.0)


@pytest.fixture
def solver(unit_square):
    return KinematicsSolver(unit_square)


@pytest.fixture
def estimator(solver):
    return PoseEstimator(solver, history_window=1.5)


@pytest.fixture
def sim_drive():
    return SwerveDrive(create_backends(RobotMode.SIM, tick_period=TICK), tick_period=TICK)
