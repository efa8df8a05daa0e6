"""Swerve Control - Motion Control and Pose Estimation for Swerve Drive Robots

Core control for a four-module independently steered (swerve) robot running a
fixed-period control loop (50 Hz). Operator or path-follower commands become
per-module speed/angle targets, while wheel odometry, heading and delayed
external position corrections are fused into a continuously updated pose.

## Architecture Overview

### Command Path
- `shaper.py` - Polar slew filter on operator input. The translation direction
  turns at a rate inversely proportional to speed, reversals brake before
  flipping, and rotation is slew-limited separately.
- `model.py` - Swerve inverse kinematics (v_module = v + omega x r) with
  ratio-preserving desaturation and the locked cross formation.

### Estimation Path
- `heading.py` - Gyro heading, or wheel-odometry dead-reckoning when the gyro
  is disconnected.
- `localizer.py` - Module odometry plus a rolling pose history; corrections
  are blended at their own timestamp with a confidence weight and carried
  forward to the present.

### Orchestration
- `drive.py` - One tick: read backends, update heading and pose, drain the
  correction queue; commands go shaper -> kinematics -> desaturate -> modules.
- `backends.py` / `modes.py` - Module and gyro IO in REAL (WebSocket bridge),
  SIM (ideal modules, no gyro) and REPLAY (null) variants, chosen by an
  explicit RobotMode.

### Runtime and Tooling
- `client.py` - WebSocket bridge client and logging setup
- `simulate.py` - Offline scripted drive on the SIM/REPLAY backends
- `data_collector.py` - Per-run CSV recording
- `plot_results.py` - Trajectory and module target plots
- `config.py` - Centralized, documented parameters

## Quick Start

```bash
# Offline scripted run, recorded under ./results/run_<timestamp>/
python -m swerve_control --mode sim --output-dir .

# Plot the latest run
python -m swerve_control.plot_results

# Drive a robot (or external simulator) behind a WebSocket bridge
python -m swerve_control --mode real --uri ws://robot.local:8765
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .data_collector import DataCollector
from .drive import SwerveDrive
from .geometry import ChassisVelocity, Correction, ModulePosition, ModuleTarget, Pose2D, WheelGeometry
from .heading import HeadingTracker
from .localizer import CorrectionQueue, PoseEstimator
from .model import KinematicsSolver, desaturate
from .modes import RobotMode
from .shaper import VelocityShaper

__all__ = [
    "SwerveDrive",
    "VelocityShaper",
    "KinematicsSolver",
    "desaturate",
    "HeadingTracker",
    "PoseEstimator",
    "CorrectionQueue",
    "RobotMode",
    "DataCollector",
    "Pose2D",
    "ChassisVelocity",
    "ModuleTarget",
    "ModulePosition",
    "WheelGeometry",
    "Correction",
]
