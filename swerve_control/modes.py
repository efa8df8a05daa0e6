"""
Backend mode selection.

The drive runs against one of three sensor/actuator backends. The mode is
chosen once, on the command line or by the caller, and passed explicitly to
whatever assembles the drive; nothing reads it from global state.
"""

import argparse
import sys
from enum import Enum


class RobotMode(Enum):
    """Which backend variant the drive is assembled with."""

    REAL = "real"  # Sensors and actuators behind the WebSocket bridge
    SIM = "sim"  # Ideal in-process modules, no gyro
    REPLAY = "replay"  # Null IO: zero inputs, targets discarded

    def __str__(self):
        return self.value


def parse_mode_flags(args=None):
    """
    Parse the backend mode from command-line flags.

    Args:
        args: List of command-line arguments (default: sys.argv[1:])

    Returns:
        tuple: (RobotMode, remaining_args)
            - Selected mode (default REAL)
            - List of remaining arguments not consumed
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--mode",
        type=RobotMode,
        choices=list(RobotMode),
        default=RobotMode.REAL,
        help="Backend to run against: real (WebSocket bridge), sim or replay",
    )

    if args is None:
        args = sys.argv[1:]

    known_args, remaining_args = parser.parse_known_args(args)
    return known_args.mode, remaining_args
