from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..logging_utils import get_logger
from .catalog import ExerciseCatalog, JointRange, default_catalog
from .frame_buffer import FrameRecord
from .joints import Joint, resolve_joint_angle

logger = get_logger("ROMTracker")

MIN_CONSISTENCY_SAMPLES = 10


@dataclass(frozen=True)
class ROMStats:
    primary_joint: Optional[Joint]
    min_angle: int
    max_angle: int
    range_of_motion: int
    average_angle: int
    consistency: int
    frame_count: int = 0


@dataclass(frozen=True)
class Recommendation:
    kind: str  # "success" or "warning"
    message: str
    priority: str  # "low", "medium", "high"


def calculate_rom_consistency(angles: Sequence[float]) -> float:
    """
    Stability of the range across overlapping windows of ``len(angles) // 3`` samples.

    Fewer than 10 samples is not enough to judge, so the score is 100.
    """
    if len(angles) < MIN_CONSISTENCY_SAMPLES:
        return 100.0
    values = np.asarray(angles, dtype=float)
    window = len(values) // 3
    ranges = [
        float(np.ptp(values[i:i + window]))
        for i in range(len(values) - window + 1)
    ]
    return max(0.0, 100.0 - float(np.var(ranges)) / 2.0)


def track_range_of_motion(
    frames: Iterable[FrameRecord],
    exercise_id: Optional[str],
    catalog: Optional[ExerciseCatalog] = None,
) -> ROMStats:
    """
    Min, max, range, average and consistency of the primary joint's angle.

    Args:
        frames: Buffered frame records, oldest first
        exercise_id: Active exercise identifier
        catalog: Exercise catalog (bundled catalog when omitted)

    Returns:
        ROMStats; all zeros when there is no usable data
    """
    if catalog is None:
        catalog = default_catalog()
    config = catalog.get(exercise_id)
    if config is None:
        logger.warning(f"No ROM data for unknown exercise '{exercise_id}'")
        return ROMStats(None, 0, 0, 0, 0, 0)

    joint = config.primary_joint
    angles = [a for a in (resolve_joint_angle(f.angles, joint) for f in frames) if a is not None]
    if not angles:
        return ROMStats(joint, 0, 0, 0, 0, 0)

    min_angle = min(angles)
    max_angle = max(angles)
    return ROMStats(
        primary_joint=joint,
        min_angle=int(round(min_angle)),
        max_angle=int(round(max_angle)),
        range_of_motion=int(round(max_angle - min_angle)),
        average_angle=int(round(float(np.mean(angles)))),
        consistency=int(round(calculate_rom_consistency(angles))),
        frame_count=len(angles),
    )


def generate_rom_recommendations(current: Optional[ROMStats], previous: Optional[ROMStats] = None) -> List[Recommendation]:
    """Suggestions based on this session's ROM and, when given, the previous session's."""
    recommendations: List[Recommendation] = []
    if current is None:
        return recommendations

    if current.range_of_motion < 20:
        recommendations.append(Recommendation(
            "warning", "Limited range of motion detected. Try to move through a fuller range.", "high"))
    if current.consistency < 60:
        recommendations.append(Recommendation(
            "warning", "ROM is inconsistent. Try to maintain a steady range throughout.", "medium"))

    if previous is not None:
        improvement = current.range_of_motion - previous.range_of_motion
        if improvement > 5:
            recommendations.append(Recommendation(
                "success", f"Great! Your ROM improved by {improvement}°", "low"))
        elif improvement < -5:
            recommendations.append(Recommendation(
                "warning", f"ROM decreased by {abs(improvement)}°. Take it easy today.", "medium"))
    return recommendations


@dataclass(frozen=True)
class RepCompletion:
    is_complete: bool
    progress: int  # 0, 50 or 100
    phase: str  # "start", "flexion" or "extension"
    min_angle: int = 0
    max_angle: int = 0
    current_angle: int = 0


def calculate_rep_completion(angle_history: Sequence[float], ideal: JointRange) -> RepCompletion:
    """
    How far the angles seen so far cover the ideal range.

    Reaching within 5° of the range minimum is the flexion half, within 5°
    of the maximum the full movement. A rep is complete once both ends
    came within 10°.
    """
    if not angle_history:
        return RepCompletion(False, 0, "start")

    min_angle = min(angle_history)
    max_angle = max(angle_history)
    phase, progress = "start", 0
    if min_angle < ideal.min + 5:
        phase, progress = "flexion", 50
    if max_angle > ideal.max - 5:
        phase, progress = "extension", 100
    return RepCompletion(
        is_complete=min_angle < ideal.min + 10 and max_angle > ideal.max - 10,
        progress=progress,
        phase=phase,
        min_angle=int(round(min_angle)),
        max_angle=int(round(max_angle)),
        current_angle=int(round(angle_history[-1])),
    )
