#!/usr/bin/env python3
"""
Standalone script to visualize recorded swerve drive runs.

Loads the pose, module target and correction CSVs written by DataCollector
and plots the estimated trajectory (with corrections overlaid) and the module
speed and steering targets over time.
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .config import (
    MODULE_NAMES,
    PLOT_CORRECTION_COLOR,
    PLOT_GUIDE_COLOR,
    PLOT_POSE_COLOR,
    TERM_BLUE,
    TERM_RESET,
)


def load_csv_columns(filepath: Path) -> Dict[str, np.ndarray]:
    """Load a numeric CSV file into one numpy array per column.

    Args:
        filepath: Path to the CSV file.

    Returns:
        Dictionary mapping header name to a float array. Empty cells and
        unparseable values become NaN.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If the file has no header row.
    """
    if not filepath.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    with open(filepath, newline="") as f:
        reader = csv.reader(f)
        headers = next(reader, None)
        if not headers:
            raise ValueError(f"Missing header row in {filepath}")
        columns = {name: [] for name in headers}
        for row in reader:
            if len(row) != len(headers):
                continue
            for name, cell in zip(headers, row):
                try:
                    columns[name].append(float(cell))
                except ValueError:
                    columns[name].append(np.nan)

    return {name: np.array(values, dtype=float) for name, values in columns.items()}


def plot_trajectory(
    pose: Dict[str, np.ndarray],
    corrections: Optional[Dict[str, np.ndarray]] = None,
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot the estimated trajectory in the field frame.

    Args:
        pose: Pose columns ('x', 'y', 'heading').
        corrections: Optional correction columns ('x', 'y').
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, ax = plt.subplots(figsize=(8, 8))

    ax.plot(pose["x"], pose["y"], color=PLOT_POSE_COLOR, linewidth=2, label="Estimated pose")
    if len(pose["x"]):
        ax.scatter(pose["x"][0], pose["y"][0], color=PLOT_POSE_COLOR, marker="o", s=60, label="Start")

        # Heading arrows, about 20 along the run
        step = max(1, len(pose["x"]) // 20)
        ax.quiver(
            pose["x"][::step],
            pose["y"][::step],
            np.cos(pose["heading"][::step]),
            np.sin(pose["heading"][::step]),
            color=PLOT_POSE_COLOR,
            alpha=0.6,
            scale=25,
        )

    if corrections is not None and len(corrections.get("x", [])):
        ax.scatter(
            corrections["x"],
            corrections["y"],
            color=PLOT_CORRECTION_COLOR,
            s=12,
            alpha=0.7,
            label="Corrections",
        )

    ax.set_xlabel("x (m)")
    ax.set_ylabel("y (m)")
    ax.set_title("Swerve Trajectory")
    ax.set_aspect("equal", adjustable="datalim")
    ax.grid(True, color=PLOT_GUIDE_COLOR, alpha=0.3)
    ax.legend()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_module_targets(targets: Dict[str, np.ndarray], save_path: Optional[Path] = None) -> Figure:
    """Plot module speed and steering targets over time."""
    fig, (ax_speed, ax_angle) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    t = targets["timestamp"]

    for name in MODULE_NAMES:
        label = name.replace("_", " ")
        ax_speed.plot(t, targets[f"{name}_speed"], label=label)
        ax_angle.plot(t, np.degrees(targets[f"{name}_angle"]), label=label)

    ax_speed.set_ylabel("Speed (m/s)")
    ax_speed.set_title("Module Targets")
    ax_speed.legend(loc="upper right")
    ax_angle.set_ylabel("Angle (deg)")
    ax_angle.set_xlabel("Time (s)")
    for ax in (ax_speed, ax_angle):
        ax.grid(True, color=PLOT_GUIDE_COLOR, alpha=0.3)

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> None:
    """Generate all plots for a run directory.

    Raises:
        FileNotFoundError: If pose.csv or targets.csv is missing.
    """
    pose = load_csv_columns(run_dir / "pose.csv")
    targets = load_csv_columns(run_dir / "targets.csv")
    corrections_path = run_dir / "corrections.csv"
    corrections = load_csv_columns(corrections_path) if corrections_path.exists() else None

    plot_trajectory(pose, corrections, run_dir / "trajectory.png" if save_plots else None)
    plot_module_targets(targets, run_dir / "module_targets.png" if save_plots else None)

    if show_plots:
        plt.show()
    else:
        plt.close("all")


def run_directories(results_dir: Path) -> List[Path]:
    """Recorded run directories under `results_dir`, oldest first.

    Raises:
        FileNotFoundError: If `results_dir` does not exist.
    """
    if not results_dir.is_dir():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    return sorted(d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_"))


def find_latest_run(results_dir: Path) -> Path:
    """Most recent run directory (run names sort by their timestamp).

    Raises:
        FileNotFoundError: If there is no results directory or no run in it.
    """
    runs = run_directories(results_dir)
    if not runs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")
    return runs[-1]


def list_available_runs(results_dir: Path) -> None:
    try:
        runs = run_directories(results_dir)
    except FileNotFoundError as e:
        logging.error(str(e))
        return

    if not runs:
        logging.info(f"No recorded runs in {results_dir}")
        return
    logging.info(f"{len(runs)} recorded run(s) in {results_dir}:")
    for run_dir in runs:
        logging.info(f"  {run_dir.name}")


def main(args=None) -> None:
    """Main entry point for the plotting script."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        description="Visualize recorded swerve drive runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Plot the most recent run
  python -m swerve_control.plot_results

  # Plot a specific run and save the figures next to its data
  python -m swerve_control.plot_results --run run_20261019_184704 --save --no-show
        """,
    )
    parser.add_argument("--run", type=str, default=None, help="Run directory name (default: latest)")
    parser.add_argument(
        "--results-dir", type=str, default="results", help="Path to the results directory"
    )
    parser.add_argument("--save", action="store_true", help="Save plots as PNG files in the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not display plots interactively")
    parser.add_argument("--list", action="store_true", help="List all available runs and exit")
    args = parser.parse_args(args)

    results_dir = Path(args.results_dir)

    if args.list:
        list_available_runs(results_dir)
        return

    if args.run:
        run_dir = results_dir / args.run
        if not run_dir.exists():
            logging.error(f"Error: Run directory not found: {run_dir}")
            list_available_runs(results_dir)
            sys.exit(1)
    else:
        try:
            run_dir = find_latest_run(results_dir)
            logging.info(f"{TERM_BLUE}Plotting most recent run: {run_dir.name}{TERM_RESET}")
        except FileNotFoundError as e:
            logging.error(f"Error: {e}")
            sys.exit(1)

    try:
        plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
        if args.save:
            logging.info(f"{TERM_BLUE}✓ Saved plots to {run_dir}{TERM_RESET}")
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
