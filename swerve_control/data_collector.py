"""Per-run CSV recording for the swerve drive.

This module records, for every tick of a run:
- Pose estimates (position and heading)
- Module targets sent to the backends
- External corrections offered to the estimator
"""

import csv
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, TextIO

from .config import MODULE_NAMES, TERM_BLUE, TERM_RESET
from .geometry import Correction, ModuleTarget, Pose2D

POSE_HEADERS = ["timestamp", "x", "y", "heading"]
TARGET_HEADERS = ["timestamp"] + [
    f"{name}_{field}" for name in MODULE_NAMES for field in ("speed", "angle")
]
CORRECTION_HEADERS = ["timestamp", "x", "y", "confidence"]


class DataCollector:
    """Manages CSV file creation and logging for one run.

    Attributes:
        run_dir: Directory path for this run's output files.
        pose_output_path: Path of the pose CSV.
        targets_output_path: Path of the module target CSV.
        corrections_output_path: Path of the correction CSV.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates a
                timestamped directory. Can also be set via RUN_DIR.

        Raises:
            ValueError: If output_dir exists and is not a directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.pose_csv_file: Optional[TextIO] = None
        self.pose_csv_writer: Any = None
        self.targets_csv_file: Optional[TextIO] = None
        self.targets_csv_writer: Any = None
        self.corrections_csv_file: Optional[TextIO] = None
        self.corrections_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.pose_output_path: Path = self.run_dir / "pose.csv"
        self.targets_output_path: Path = self.run_dir / "targets.csv"
        self.corrections_output_path: Path = self.run_dir / "corrections.csv"

    def setup(self) -> None:
        """Create the CSV files and write their headers."""
        self.pose_csv_file = open(self.pose_output_path, "w", newline="")
        self.pose_csv_writer = csv.writer(self.pose_csv_file)
        self.pose_csv_writer.writerow(POSE_HEADERS)

        self.targets_csv_file = open(self.targets_output_path, "w", newline="")
        self.targets_csv_writer = csv.writer(self.targets_csv_file)
        self.targets_csv_writer.writerow(TARGET_HEADERS)

        self.corrections_csv_file = open(self.corrections_output_path, "w", newline="")
        self.corrections_csv_writer = csv.writer(self.corrections_csv_file)
        self.corrections_csv_writer.writerow(CORRECTION_HEADERS)

        logging.info(f"{TERM_BLUE}✓ Recording to {self.run_dir}{TERM_RESET}")

    def log_pose(self, timestamp: float, pose: Pose2D) -> None:
        self.pose_csv_writer.writerow([timestamp, pose.x, pose.y, pose.heading])

    def log_targets(self, timestamp: float, targets: Sequence[ModuleTarget]) -> None:
        row = [timestamp]
        for target in targets:
            row.extend([target.speed, target.angle])
        self.targets_csv_writer.writerow(row)

    def log_correction(self, correction: Correction) -> None:
        self.corrections_csv_writer.writerow(
            [correction.timestamp, correction.pose.x, correction.pose.y, correction.confidence]
        )

    def cleanup(self) -> None:
        """Close all CSV files."""
        for handle in (self.pose_csv_file, self.targets_csv_file, self.corrections_csv_file):
            if handle:
                handle.close()
        logging.info(f"{TERM_BLUE}✓ Saved run data to {self.run_dir}{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
