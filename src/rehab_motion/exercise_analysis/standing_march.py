"""
standing_march.py - Exercise-specific checks for the standing march.

The generic feedback engine compares angles with the catalog ranges; this
module adds the march's own posture rules, its lifted/lowered rep phases,
a starting-position check and session metrics.

Hip and knee use the more flexed side (the lifted leg). The shoulder is
measured hip-shoulder-elbow, so a relaxed arm hangs near 0 degrees and
posture drift shows up as a growing angle.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

import numpy as np

from ..logging_utils import get_logger
from .frame_buffer import FrameRecord
from .joints import AngleSet, Joint, Side
from .rom_tracker import Recommendation

logger = get_logger("StandingMarch")

EXERCISE_ID = "standing-march"

# Lifted-leg targets
HIP_MIN = 60
HIP_MAX = 130
KNEE_MIN = 70
KNEE_MAX = 140
SHOULDER_DRIFT_LIMIT = 30  # Upper arm angle away from the torso

# Rep phases on the lifted hip
LIFT_THRESHOLD = 90
LOWER_THRESHOLD = 150

# Starting position: standing tall
STANDING_EXTENSION = 160

TIPS = (
    "Maintain an upright posture throughout",
    "Lift knees to approximately hip height",
    "Keep a steady, controlled rhythm",
    "Engage your core muscles",
    "Breathe steadily - exhale as you lift",
    "Avoid leaning backward",
    "Keep your arms relaxed at your sides",
)


class MarchPhase(Enum):
    START = "start"
    LIFTED = "lifted"
    LOWERED = "lowered"


@dataclass(frozen=True)
class MarchAngles:
    hip: Optional[float]
    knee: Optional[float]
    shoulder: Optional[float]


@dataclass(frozen=True)
class MarchAssessment:
    score: int
    feedback: str
    rep_completed: bool
    phase: MarchPhase
    angles: MarchAngles


@dataclass(frozen=True)
class StartingPositionCheck:
    is_valid: bool
    details: Dict[str, bool]
    message: str


@dataclass(frozen=True)
class MarchMetrics:
    average_hip_angle: int
    average_knee_angle: int
    symmetry: int
    consistency: int
    frame_count: int = 0


def lower_side(angle_set: AngleSet, joint: Joint) -> Optional[float]:
    """The smaller of the left and right angles; a side-less angle wins when present."""
    direct = angle_set.get(joint)
    if direct is not None:
        return direct
    sides = [a for a in (angle_set.get(joint, Side.LEFT), angle_set.get(joint, Side.RIGHT)) if a is not None]
    return min(sides) if sides else None


def march_angles(angle_set: AngleSet) -> MarchAngles:
    return MarchAngles(
        hip=lower_side(angle_set, Joint.HIP),
        knee=lower_side(angle_set, Joint.KNEE),
        shoulder=_upper_side(angle_set, Joint.SHOULDER),
    )


def _upper_side(angle_set: AngleSet, joint: Joint) -> Optional[float]:
    direct = angle_set.get(joint)
    if direct is not None:
        return direct
    sides = [a for a in (angle_set.get(joint, Side.LEFT), angle_set.get(joint, Side.RIGHT)) if a is not None]
    return max(sides) if sides else None


def assess_standing_march(angle_set: AngleSet, phase: MarchPhase = MarchPhase.START) -> MarchAssessment:
    """
    Score one frame of the standing march and advance its rep phase.

    Later checks overwrite the feedback of earlier ones, so the posture
    message wins over the leg messages. A missing angle skips its check.

    Args:
        angle_set: Angles resolved for the frame
        phase: Phase after the previous frame

    Returns:
        MarchAssessment with a 0-100 score
    """
    angles = march_angles(angle_set)
    score = 100
    feedback = "Good form!"
    rep_completed = False

    if angles.hip is not None:
        if angles.hip < HIP_MIN:
            score -= 20
            feedback = "Lift your knee higher"
        elif angles.hip > HIP_MAX:
            score -= 10
            feedback = "Lower your knee slightly"

    if angles.knee is not None:
        if angles.knee < KNEE_MIN:
            score -= 15
            feedback = "Bend your knee more"
        elif angles.knee > KNEE_MAX:
            score -= 10
            feedback = "Straighten your leg a bit"

    if angles.shoulder is not None and angles.shoulder > SHOULDER_DRIFT_LIMIT:
        score -= 15
        feedback = "Keep your shoulders level"

    if angles.hip is not None:
        if angles.hip < LIFT_THRESHOLD and phase is not MarchPhase.LIFTED:
            phase = MarchPhase.LIFTED
        elif angles.hip > LOWER_THRESHOLD and phase is MarchPhase.LIFTED:
            phase = MarchPhase.LOWERED
            rep_completed = True
            feedback = "Great! One more"

    return MarchAssessment(max(0, score), feedback, rep_completed, phase, angles)


class StandingMarchTracker:
    """Keeps the march phase and rep count between frames."""

    def __init__(self):
        self.phase = MarchPhase.START
        self.rep_count = 0

    def reset(self) -> None:
        self.phase = MarchPhase.START
        self.rep_count = 0

    def update(self, angle_set: AngleSet) -> MarchAssessment:
        assessment = assess_standing_march(angle_set, self.phase)
        self.phase = assessment.phase
        if assessment.rep_completed:
            self.rep_count += 1
            logger.debug(f"[MARCH] step {self.rep_count} complete")
        return assessment


def validate_starting_position(angle_set: AngleSet) -> StartingPositionCheck:
    """Standing tall: hips and knees extended, arms relaxed at the sides."""
    angles = march_angles(angle_set)
    details = {
        "hips": angles.hip is not None and angles.hip > STANDING_EXTENSION,
        "knees": angles.knee is not None and angles.knee > STANDING_EXTENSION,
        "shoulders": angles.shoulder is not None and angles.shoulder < SHOULDER_DRIFT_LIMIT,
    }
    if all(details.values()):
        message = "Perfect starting position! Ready to begin."
    else:
        message = "Adjust your position: " + ", ".join(k for k, ok in details.items() if not ok)
    return StartingPositionCheck(all(details.values()), details, message)


def calculate_standing_march_metrics(frames: Iterable[FrameRecord]) -> MarchMetrics:
    """
    Session averages, left/right hip symmetry and hip consistency.

    Symmetry falls back to 100 when one side was never seen.
    """
    frames = list(frames)
    if not frames:
        return MarchMetrics(0, 0, 0, 0, 0)

    hips = [a for a in (lower_side(f.angles, Joint.HIP) for f in frames) if a is not None]
    knees = [a for a in (lower_side(f.angles, Joint.KNEE) for f in frames) if a is not None]
    left_hips = [f.angles.get(Joint.HIP, Side.LEFT) for f in frames if f.angles.get(Joint.HIP, Side.LEFT) is not None]
    right_hips = [f.angles.get(Joint.HIP, Side.RIGHT) for f in frames if f.angles.get(Joint.HIP, Side.RIGHT) is not None]

    avg_hip = float(np.mean(hips)) if hips else 0.0
    avg_knee = float(np.mean(knees)) if knees else 0.0
    if left_hips and right_hips:
        symmetry = max(0.0, 100.0 - abs(float(np.mean(left_hips)) - float(np.mean(right_hips))) * 2.0)
    else:
        symmetry = 100.0
    consistency = max(0.0, 100.0 - float(np.var(hips)) / 2.0) if hips else 0.0

    return MarchMetrics(
        average_hip_angle=int(round(avg_hip)),
        average_knee_angle=int(round(avg_knee)),
        symmetry=int(round(symmetry)),
        consistency=int(round(consistency)),
        frame_count=len(frames),
    )


def generate_standing_march_recommendations(metrics: MarchMetrics) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    if metrics.average_hip_angle < 80:
        recommendations.append(Recommendation(
            "warning", "Try lifting your knees higher for better hip flexion", "high"))
    if metrics.symmetry < 70:
        recommendations.append(Recommendation(
            "warning", "Work on balancing your left and right leg lifts", "medium"))
    if metrics.consistency < 60:
        recommendations.append(Recommendation(
            "warning", "Try to maintain a more consistent rhythm", "medium"))
    if metrics.average_hip_angle > 100 and metrics.symmetry > 80 and metrics.consistency > 80:
        recommendations.append(Recommendation(
            "success", "Excellent form! You're performing this exercise very well.", "low"))
    return recommendations
