"""
scoring.py - Form quality scoring over a session's frame history.

The composite score weights four sub-metrics, each on a 0-100 scale:
angle accuracy (40%), consistency (30%), left/right symmetry (20%) and
frame-timing steadiness (10%). Sub-metrics that lack enough history fall
back to 100 so a short session still yields a usable score.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..logging_utils import get_logger
from .catalog import ExerciseCatalog, ExerciseConfig, default_catalog
from .frame_buffer import FrameRecord
from .joints import AngleKey, bilateral_pairs, resolve_joint_angle

logger = get_logger("FormQualityScorer")

WEIGHTS = {
    "angle_accuracy": 0.4,
    "consistency": 0.3,
    "symmetry": 0.2,
    "speed": 0.1,
}

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


@dataclass(frozen=True)
class QualityScore:
    overall_score: int
    angle_accuracy: int
    consistency: int
    symmetry: int
    speed: int
    frame_count: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "overallScore": self.overall_score,
            "angleAccuracy": self.angle_accuracy,
            "consistency": self.consistency,
            "symmetry": self.symmetry,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class SessionScore:
    total_reps: int
    average_score: int
    grade: str


def _clamp(value: float) -> int:
    return int(round(min(100.0, max(0.0, value))))


def calculate_angle_accuracy(frames: Sequence[FrameRecord], config: Optional[ExerciseConfig], tolerance: float = 10.0) -> float:
    """Share of frames inside each joint's widened ideal range, averaged over joints with data."""
    if config is None:
        return 0.0
    joint_scores = []
    for joint, ideal in config.joint_ranges.items():
        angles = [a for a in (resolve_joint_angle(f.angles, joint) for f in frames) if a is not None]
        if not angles:
            continue
        values = np.array(angles)
        within = np.count_nonzero((values >= ideal.min - tolerance) & (values <= ideal.max + tolerance))
        joint_scores.append(within / len(values) * 100.0)
    return float(np.mean(joint_scores)) if joint_scores else 0.0


def calculate_consistency(frames: Sequence[FrameRecord]) -> float:
    """Low per-angle variance across the buffer scores high."""
    if len(frames) < 2:
        return 100.0
    scores = []
    for key in frames[0].angles.keys():
        values = _collect(frames, key)
        if len(values) < 2:
            continue
        scores.append(max(0.0, 100.0 - float(np.var(values)) / 2.0))
    return float(np.mean(scores)) if scores else 100.0


def calculate_symmetry(frames: Sequence[FrameRecord]) -> float:
    """Compare buffer-average left and right angles; 100 when no pair has data on both sides."""
    scores = []
    for _, left_key, right_key in bilateral_pairs():
        left = _collect(frames, left_key)
        right = _collect(frames, right_key)
        if not left or not right:
            continue
        difference = abs(float(np.mean(left)) - float(np.mean(right)))
        scores.append(max(0.0, 100.0 - difference * 2.0))
    return float(np.mean(scores)) if scores else 100.0


def calculate_speed_score(frames: Sequence[FrameRecord]) -> float:
    """Steady frame timing scores high; jittery or stalled delivery scores low."""
    if len(frames) < 2:
        return 100.0
    timestamps = np.array([f.timestamp_ms for f in frames], dtype=float)
    deltas = np.diff(timestamps)
    deltas = deltas[deltas > 0]
    if deltas.size == 0:
        return 100.0
    return max(0.0, 100.0 - float(np.var(deltas)) / 10.0)


def _collect(frames: Iterable[FrameRecord], key: AngleKey) -> List[float]:
    return [f.angles.angles[key] for f in frames if key in f.angles]


def calculate_form_quality(
    frames: Iterable[FrameRecord],
    exercise_id: Optional[str],
    catalog: Optional[ExerciseCatalog] = None,
    tolerance: float = 10.0,
) -> QualityScore:
    """
    Compute the composite form-quality score for a frame history.

    Args:
        frames: Buffered frame records, oldest first
        exercise_id: Active exercise identifier
        catalog: Exercise catalog (bundled catalog when omitted)
        tolerance: Degrees allowed outside the ideal range

    Returns:
        QualityScore with every field in [0, 100]
    """
    frames = list(frames)
    if not frames:
        return QualityScore(0, 0, 0, 0, 0, 0)
    if catalog is None:
        catalog = default_catalog()
    config = catalog.get(exercise_id)
    if config is None:
        logger.warning(f"Scoring unknown exercise '{exercise_id}'; angle accuracy is 0")

    angle_accuracy = calculate_angle_accuracy(frames, config, tolerance)
    consistency = calculate_consistency(frames)
    symmetry = calculate_symmetry(frames)
    speed = calculate_speed_score(frames)

    overall = (
        angle_accuracy * WEIGHTS["angle_accuracy"]
        + consistency * WEIGHTS["consistency"]
        + symmetry * WEIGHTS["symmetry"]
        + speed * WEIGHTS["speed"]
    )
    return QualityScore(
        overall_score=_clamp(overall),
        angle_accuracy=_clamp(angle_accuracy),
        consistency=_clamp(consistency),
        symmetry=_clamp(symmetry),
        speed=_clamp(speed),
        frame_count=len(frames),
    )


def calculate_session_score(rep_scores: Sequence[float]) -> SessionScore:
    """Average per-rep scores and map them to a letter grade."""
    if not rep_scores:
        return SessionScore(0, 0, "N/A")
    average = int(round(float(np.mean(rep_scores))))
    grade = next((letter for threshold, letter in GRADE_THRESHOLDS if average >= threshold), "F")
    return SessionScore(len(rep_scores), average, grade)
