"""Localization module for swerve pose estimation.

This module provides pose estimation by fusing wheel odometry, heading and
external position corrections:
- Module odometry every tick (50 Hz) for continuous dead-reckoning
- Heading from the HeadingTracker (gyro or wheel fallback)
- Timestamped, confidence-weighted corrections (e.g. from cameras) that may
  arrive late and out of order
- A bounded queue that buffers corrections between ticks
"""

import bisect
import logging
import math
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from . import config
from .geometry import Correction, ModulePosition, Pose2D, rotate, wrap_angle
from .model import KinematicsSolver


class CorrectionQueue:
    """Bounded FIFO of pending corrections, drained once per tick.

    When full, offering a new correction drops the oldest pending one.

    Attributes:
        max_depth: Maximum number of pending corrections.
        dropped: Total number of corrections dropped on overflow.
    """

    def __init__(self, max_depth: int = config.CORRECTION_QUEUE_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self.dropped = 0
        self._items: Deque[Correction] = deque(maxlen=max_depth)

    def offer(self, correction: Correction) -> None:
        """Queue a correction without blocking."""
        if len(self._items) == self.max_depth:
            self.dropped += 1
            logging.debug(f"Correction queue full, dropped oldest (total dropped {self.dropped})")
        self._items.append(correction)

    def drain(self) -> List[Correction]:
        """Remove and return every pending correction in arrival order."""
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


class PoseEstimator:
    """Swerve odometry with delayed, confidence-weighted position corrections.

    State:
        - pose: current best estimate (x, y, heading) in the field frame
        - history: (timestamp, pose) pairs covering the last `history_window`
          seconds, used to look up where the robot was when a correction was
          observed

    Corrections are blended linearly: the residual between the observed
    position and the historical estimate at the observation time is scaled by
    the confidence and added to the current pose and to every history entry
    from that time on, so later corrections see a consistent history. Heading
    is never corrected; the heading source is trusted.
    """

    def __init__(
        self,
        solver: KinematicsSolver,
        initial_pose: Optional[Pose2D] = None,
        initial_heading: float = 0.0,
        initial_positions: Optional[Sequence[ModulePosition]] = None,
        history_window: float = config.CORRECTION_HISTORY_WINDOW,
    ):
        """Initialize the estimator.

        Args:
            solver: Kinematics for the module layout.
            initial_pose: Starting pose (default origin, heading 0).
            initial_heading: Heading source reading that corresponds to
                initial_pose.heading.
            initial_positions: Module positions at the starting pose.
            history_window: Odometry history retention (seconds), positive.
        """
        if history_window <= 0:
            raise ValueError(f"history_window must be positive, got {history_window}")

        self.solver = solver
        self.history_window = history_window

        self._history: List[Tuple[float, Pose2D]] = []
        self.corrections_applied = 0
        self.corrections_rejected = 0

        self.reset_pose(
            initial_pose if initial_pose is not None else Pose2D(),
            initial_heading,
            initial_positions,
        )

    @property
    def pose(self) -> Pose2D:
        return self._pose

    def update_odometry(
        self, heading: float, module_positions: Sequence[ModulePosition], timestamp: float
    ) -> Pose2D:
        """Integrate one tick of module motion.

        Args:
            heading: Heading source reading (radians).
            module_positions: Cumulative position of each module.
            timestamp: Time of the readings (seconds).

        Returns:
            Updated pose estimate.
        """
        field_heading = wrap_angle(heading + self._heading_offset)

        dx, dy, _ = self.solver.to_displacement(self._previous_positions, module_positions)

        # Rotate by the mean of previous and current heading
        mean_heading = self._previous_heading + wrap_angle(field_heading - self._previous_heading) / 2.0
        field_dx, field_dy = rotate(dx, dy, mean_heading)

        self._pose = Pose2D(self._pose.x + field_dx, self._pose.y + field_dy, field_heading)
        self._previous_positions = list(module_positions)
        self._previous_heading = field_heading

        if self._history and timestamp <= self._history[-1][0]:
            # Same (or stale) timestamp: overwrite the newest sample
            self._history[-1] = (self._history[-1][0], self._pose)
        else:
            self._history.append((timestamp, self._pose))
        self._prune_history(timestamp)

        return self._pose

    def add_correction(self, correction: Correction) -> bool:
        """Blend an external position observation into the estimate.

        Args:
            correction: Observed position, its timestamp and confidence.

        Returns:
            True if the correction was applied, False if it was discarded
            because no odometry history covers its timestamp or one of its
            values is not finite.
        """
        if not self._history:
            self.corrections_rejected += 1
            logging.debug("Correction discarded: no odometry history yet")
            return False

        values = (correction.timestamp, correction.pose.x, correction.pose.y, correction.confidence)
        if not all(math.isfinite(v) for v in values):
            self.corrections_rejected += 1
            logging.debug(f"Correction discarded: non-finite value in {correction}")
            return False

        newest = self._history[-1][0]
        oldest = self._history[0][0]
        if correction.timestamp < newest - self.history_window or correction.timestamp < oldest:
            self.corrections_rejected += 1
            logging.debug(
                f"Correction discarded: timestamp {correction.timestamp:.3f}s outside "
                f"history [{oldest:.3f}, {newest:.3f}]s"
            )
            return False

        # Observations stamped after the newest tick are treated as current
        timestamp = min(correction.timestamp, newest)
        sample = self.sample_at(timestamp)

        weight = max(0.0, min(1.0, correction.confidence))
        residual_x = (correction.pose.x - sample.x) * weight
        residual_y = (correction.pose.y - sample.y) * weight

        start = bisect.bisect_left(self._timestamps(), timestamp)
        for i in range(start, len(self._history)):
            t, pose = self._history[i]
            self._history[i] = (t, pose.translated(residual_x, residual_y))
        self._pose = self._pose.translated(residual_x, residual_y)

        self.corrections_applied += 1
        logging.debug(
            f"Correction applied at {timestamp:.3f}s: confidence {weight:.2f}, "
            f"shift {math.hypot(residual_x, residual_y):.3f}m"
        )
        return True

    def sample_at(self, timestamp: float) -> Optional[Pose2D]:
        """Estimated pose at `timestamp`, interpolated between history samples.

        Returns None before the oldest retained sample or with no history.
        Timestamps after the newest sample return the newest pose.
        """
        if not self._history or timestamp < self._history[0][0]:
            return None
        if timestamp >= self._history[-1][0]:
            return self._history[-1][1]

        index = bisect.bisect_right(self._timestamps(), timestamp)
        t0, p0 = self._history[index - 1]
        t1, p1 = self._history[index]
        return p0.interpolate(p1, (timestamp - t0) / (t1 - t0))

    def reset_pose(
        self,
        pose: Pose2D,
        heading: float,
        module_positions: Optional[Sequence[ModulePosition]] = None,
        timestamp: Optional[float] = None,
    ) -> None:
        """Replace the pose, heading baseline and module baseline together.

        Args:
            pose: New pose estimate.
            heading: Current heading source reading; future readings are
                offset so that this reading maps to pose.heading.
            module_positions: Current module positions (default all zero).
            timestamp: If given, seeds the history with the new pose.
        """
        if module_positions is None:
            module_positions = [ModulePosition()] * len(self.solver.geometry)
        self._pose = pose
        self._heading_offset = pose.heading - heading
        self._previous_heading = pose.heading
        self._previous_positions = list(module_positions)
        self._history = []
        if timestamp is not None:
            self._history.append((timestamp, pose))

    def get_diagnostics(self) -> Dict[str, float]:
        """Get estimator diagnostic information for logging and monitoring.

        Returns:
            Dictionary containing:
                - history_length: Number of retained odometry samples
                - history_span: Time covered by the history (s)
                - corrections_applied: Total corrections blended in
                - corrections_rejected: Total corrections discarded
        """
        span = self._history[-1][0] - self._history[0][0] if self._history else 0.0
        return {
            "history_length": len(self._history),
            "history_span": span,
            "corrections_applied": self.corrections_applied,
            "corrections_rejected": self.corrections_rejected,
        }

    def _timestamps(self) -> List[float]:
        return [t for t, _ in self._history]

    def _prune_history(self, now: float) -> None:
        cutoff = now - self.history_window
        keep_from = bisect.bisect_left(self._timestamps(), cutoff)
        if keep_from:
            del self._history[:keep_from]
