from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..logging_utils import get_logger
from .catalog import Direction, ExerciseConfig
from .joints import AngleSet, resolve_joint_angle

logger = get_logger("RepDetector")


class RepPhase(Enum):
    START = "start"
    PEAK = "peak"
    RETURN = "return"


@dataclass(frozen=True)
class RepEvent:
    """Emitted once per completed repetition."""
    rep_count: int
    timestamp_ms: float
    angle: float


class RepDetector:
    """
    Per-session phase state machine: start -> peak -> return.

    Must be fed every frame; a skipped frame can hide a threshold crossing
    and drop a repetition.
    """

    def __init__(self, config: Optional[ExerciseConfig] = None):
        self.config = config
        self.phase = RepPhase.START
        self.rep_count = 0
        self.last_angle: Optional[float] = None

    def reset(self, config: Optional[ExerciseConfig] = None) -> None:
        """Return to START with zero reps, optionally for a new exercise."""
        self.config = config
        self.phase = RepPhase.START
        self.rep_count = 0
        self.last_angle = None

    def _reached_peak(self, angle: float) -> bool:
        if self.config.direction is Direction.INCREASING:
            return angle > self.config.peak_threshold
        return angle < self.config.peak_threshold

    def _returned(self, angle: float) -> bool:
        if self.config.direction is Direction.INCREASING:
            return angle < self.config.return_threshold
        return angle > self.config.return_threshold

    def update(self, angle_set: AngleSet) -> Optional[RepEvent]:
        """
        Advance the state machine by one frame.

        Args:
            angle_set: Angles resolved for the current frame

        Returns:
            RepEvent when this frame completes a repetition, otherwise None
        """
        if self.config is None or self.config.primary_joint is None:
            return None
        angle = resolve_joint_angle(angle_set, self.config.primary_joint)
        if angle is None:
            return None
        self.last_angle = angle

        if self.phase is not RepPhase.PEAK:
            if self._reached_peak(angle):
                self.phase = RepPhase.PEAK
                logger.debug(f"[PHASE] peak at {angle:.1f}")
            return None

        if self._returned(angle):
            self.phase = RepPhase.RETURN
            self.rep_count += 1
            logger.debug(f"[PHASE] return at {angle:.1f}, rep {self.rep_count}")
            return RepEvent(self.rep_count, angle_set.timestamp_ms, angle)
        return None
