"""Configuration parameters for the swerve control system.

This module centralizes all configuration parameters including:
- Physical drivetrain parameters (module layout, speed limits)
- Operator command shaping rates
- Pose estimation and correction handling
- WebSocket bridge connection parameters

All parameters are documented with their purpose, units and origin. Components
take explicit keyword arguments that default to the values below.
"""

import math

# ============================================================================
# Physical Drivetrain Parameters
# ============================================================================

TRACK_WIDTH = 0.6731
"""Distance between the centers of the left and right modules (meters).
26.5 in, fixed by the chassis frame."""

WHEEL_BASE = 0.6731
"""Distance between the centers of the front and back modules (meters).
26.5 in, fixed by the chassis frame (square drivetrain)."""

MODULE_NAMES = ("front_left", "front_right", "rear_left", "rear_right")
"""Module ordering used everywhere in the system (targets, positions, IO)."""

MAX_SPEED = 4.8
"""Maximum module drive speed (m/s).

Used both to scale normalized operator input and as the desaturation limit.
This is the allowed maximum, not the free speed of the drive motor."""

MAX_ANGULAR_SPEED = 2.0 * math.pi
"""Maximum chassis angular speed (rad/s). One full turn per second."""


# ============================================================================
# Command Shaping Parameters (Polar Slew Filter)
# ============================================================================

DIRECTION_SLEW_RATE = 1.2
"""Translation direction slew rate at unit magnitude (rad/s).

The effective direction rate is DIRECTION_SLEW_RATE / |current magnitude|,
so the direction turns slowly at full speed and freely near standstill.
This bounds lateral acceleration during operator-driven turns.
"""

MAGNITUDE_SLEW_RATE = 1.8
"""Translation magnitude slew rate (normalized units per second).

1.8 means zero to full stick in ~0.56 s.
"""

ROTATIONAL_SLEW_RATE = 2.0
"""Rotation command slew rate (normalized units per second)."""

INSTANT_DIRECTION_SLEW_RATE = 500.0
"""Direction slew rate used while the shaped magnitude is exactly zero (rad/s).
Large enough that the direction snaps within a single tick."""

SMALL_ANGLE_THRESHOLD = 0.45 * math.pi
"""Below this direction change the filter steers and follows magnitude."""

REVERSAL_ANGLE_THRESHOLD = 0.85 * math.pi
"""Above this direction change the request is treated as a reversal."""

REVERSAL_MAGNITUDE_EPSILON = 1e-4
"""Shaped magnitude under which a reversal may flip the direction by pi.

Avoids floating-point equality checks against zero."""


# ============================================================================
# Kinematics Parameters
# ============================================================================

MODULE_SPEED_EPSILON = 1e-6
"""Module speed (m/s) below which the previous steering angle is kept.

Stops the modules from snapping back to 0 rad whenever the robot halts."""

CROSS_ANGLE = math.pi / 4.0
"""Steering angle magnitude of the locked (X) formation (radians)."""


# ============================================================================
# Control Loop Parameters
# ============================================================================

TICK_PERIOD = 0.02
"""Fixed control loop period (seconds). 50 Hz."""


# ============================================================================
# Pose Estimation Parameters
# ============================================================================

CORRECTION_HISTORY_WINDOW = 1.5
"""Retention window for odometry history (seconds).

Corrections whose timestamp is older than newest_odometry_time minus this
window are discarded. 1.5 s covers typical camera pipeline latency with
margin.
"""

CORRECTION_QUEUE_DEPTH = 16
"""Maximum number of pending corrections between two ticks.

When full the oldest pending correction is dropped. At 50 Hz and a few
cameras this is never reached in normal operation.
"""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status messages (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Bridge Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket URI of the robot bridge (hardware or external simulator)."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""


# ============================================================================
# Offline Simulation Configuration
# ============================================================================

SIM_DURATION = 12.0
"""Default length of the scripted offline drive (seconds)."""

# Plot colors
PLOT_POSE_COLOR = "#f74823"
"""Color for the estimated trajectory."""

PLOT_CORRECTION_COLOR = "#2374f7"
"""Color for correction observations."""

PLOT_GUIDE_COLOR = "#686a5f"
"""Color for grids and secondary elements."""
