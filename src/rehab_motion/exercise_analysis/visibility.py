from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..logging_utils import get_logger
from .catalog import ExerciseConfig
from .pose_utils import KeypointFrame

logger = get_logger("VisibilityGate")


class Severity(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class GateResult:
    """A blocking condition that suppresses all other analysis for the frame."""
    message: str
    severity: Severity


class VisibilityGate:
    """Checks that the active exercise's joints are tracked well enough to analyze."""

    def __init__(
        self,
        visibility_threshold: float = 0.6,
        min_landmark_count: int = 33,
        max_missing_joints: int = 3,
    ):
        self.visibility_threshold = visibility_threshold
        self.min_landmark_count = min_landmark_count
        self.max_missing_joints = max_missing_joints

    def missing_joints(self, frame: KeypointFrame, config: Optional[ExerciseConfig]) -> List[str]:
        """Required landmarks below the visibility threshold, in catalog order."""
        if config is None:
            return []
        return [
            name for name in config.required_joints
            if frame.visibility(name) < self.visibility_threshold
        ]

    def check(self, frame: KeypointFrame, config: Optional[ExerciseConfig]) -> Optional[GateResult]:
        """
        Return a blocking condition, or None when analysis may proceed.

        Args:
            frame: Current keypoint frame
            config: Active exercise, or None when unknown

        Returns:
            GateResult describing the problem, or None
        """
        if len(frame) < self.min_landmark_count:
            return GateResult("Camera initializing...", Severity.WARNING)

        missing = self.missing_joints(frame, config)
        if len(missing) > self.max_missing_joints:
            logger.debug(f"Gate blocked: {len(missing)} required joints not visible")
            return GateResult("Full body not visible, please step back", Severity.ERROR)
        if missing:
            joint_name = missing[0].replace("_", " ")
            return GateResult(f"Make sure your {joint_name} is visible to the camera", Severity.ERROR)
        return None
