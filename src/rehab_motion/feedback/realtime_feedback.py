"""
Real-time feedback engine.

Compares the current joint angles with the exercise's ideal ranges and
turns the result into one prioritized message plus audio/visual cues.
The visibility gate always runs first; when it blocks, no angle analysis
is done for that frame.
"""
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exercise_analysis.catalog import ExerciseCatalog, ExerciseConfig, JointRange, default_catalog
from ..exercise_analysis.joints import AngleSet, Joint, resolve_joint_angle
from ..exercise_analysis.pose_utils import KeypointFrame
from ..exercise_analysis.visibility import Severity, VisibilityGate
from ..logging_utils import get_logger

logger = get_logger("FeedbackEngine")


class AudioCue(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"


class VisualCue(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


FEEDBACK_MESSAGES = {
    "good_form": "Excellent form!",
    "show_body": "Show your full body to the camera to begin",
    "slow_down": "Slow down",
    "speed_up": "Move a bit faster",
    "good_pace": "Good pace",
    "no_speed_data": "Insufficient data",
}

ENCOURAGEMENTS = (
    "Great job, keep it up!",
    "You're doing great!",
    "Perfect! Stay steady.",
    "Nice control, keep going!",
    "Looking strong!",
)


@dataclass(frozen=True)
class Correction:
    joint: Joint
    angle: float
    target: float
    message: str
    severity: Severity
    direction: str  # "extend", "flex" or "adjust"


@dataclass(frozen=True)
class FeedbackResult:
    message: str
    severity: Severity
    audio_cue: Optional[AudioCue] = None
    visual_cue: Optional[VisualCue] = None
    corrections: Tuple[Correction, ...] = ()
    timestamp_ms: float = 0.0
    gated: bool = False  # True when the visibility gate suppressed angle analysis


@dataclass(frozen=True)
class SpeedAnalysis:
    speed: int  # Degrees per second
    feedback: str
    is_optimal: bool


@dataclass(frozen=True)
class Deviation:
    key: str
    change: float
    message: str
    severity: Severity = Severity.WARNING


@dataclass(frozen=True)
class FeedbackReport:
    realtime: FeedbackResult
    speed: SpeedAnalysis
    deviations: Tuple[Deviation, ...] = field(default_factory=tuple)
    overall_quality: int = 100


def classify_joint(joint: Joint, angle: float, ideal: JointRange, tolerance: float = 10.0) -> Optional[Correction]:
    """Compare one joint angle with its ideal range. None means no correction is needed."""
    shown = int(round(angle))
    target = int(round(ideal.optimal))
    if angle < ideal.min - tolerance:
        return Correction(joint, angle, ideal.optimal,
                          f"{joint.label}: extend more ({shown}° → {target}°)", Severity.ERROR, "extend")
    if angle > ideal.max + tolerance:
        return Correction(joint, angle, ideal.optimal,
                          f"{joint.label}: bend more ({shown}° → {target}°)", Severity.ERROR, "flex")
    if abs(angle - ideal.optimal) > tolerance:
        return Correction(joint, angle, ideal.optimal,
                          f"{joint.label}: almost perfect, adjust slightly toward {target}° (now {shown}°)",
                          Severity.WARNING, "adjust")
    return None


class FeedbackEngine:
    """Produces one feedback message per frame for the active exercise."""

    def __init__(
        self,
        catalog: Optional[ExerciseCatalog] = None,
        gate: Optional[VisibilityGate] = None,
        tolerance: float = 10.0,
        encouragement_rate: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog if catalog is not None else default_catalog()
        self.gate = gate or VisibilityGate()
        self.tolerance = tolerance
        self.encouragement_rate = encouragement_rate
        self._rng = rng or random.Random()

    def corrections_for(self, angles: AngleSet, config: ExerciseConfig) -> List[Correction]:
        corrections = []
        for joint, ideal in config.joint_ranges.items():
            angle = resolve_joint_angle(angles, joint)
            if angle is None:
                continue
            correction = classify_joint(joint, angle, ideal, self.tolerance)
            if correction is not None:
                corrections.append(correction)
        return corrections

    def _success_message(self) -> str:
        if self._rng.random() < self.encouragement_rate:
            return self._rng.choice(ENCOURAGEMENTS)
        return FEEDBACK_MESSAGES["good_form"]

    def evaluate(self, angles: AngleSet, exercise_id: Optional[str], frame: KeypointFrame) -> FeedbackResult:
        """
        Classify the current frame.

        Args:
            angles: Angles resolved for the frame
            exercise_id: Active exercise, or None when nothing is selected
            frame: The keypoint frame the angles came from, for the visibility gate

        Returns:
            FeedbackResult for display and audio
        """
        timestamp = frame.timestamp_ms
        config = self.catalog.get(exercise_id)

        blocking = self.gate.check(frame, config)
        if blocking is not None:
            logger.debug(f"[GATE] {blocking.message}")
            return FeedbackResult(blocking.message, blocking.severity,
                                  AudioCue.WARNING, VisualCue.RED, (), timestamp, gated=True)

        if config is None or len(angles) == 0:
            return FeedbackResult(FEEDBACK_MESSAGES["show_body"], Severity.INFO, timestamp_ms=timestamp)

        corrections = self.corrections_for(angles, config)
        if not corrections:
            return FeedbackResult(self._success_message(), Severity.SUCCESS,
                                  AudioCue.SUCCESS, VisualCue.GREEN, (), timestamp)

        if len(corrections) == 1:
            only = corrections[0]
            if only.severity is Severity.ERROR:
                audio, visual = AudioCue.WARNING, VisualCue.RED
            else:
                audio, visual = AudioCue.INFO, VisualCue.YELLOW
            return FeedbackResult(only.message, only.severity, audio, visual, tuple(corrections), timestamp)

        message = f"{corrections[0].message} (+{len(corrections) - 1} more)"
        return FeedbackResult(message, Severity.ERROR, AudioCue.WARNING, VisualCue.RED,
                              tuple(corrections), timestamp)


def analyze_movement_speed(angle_history: Sequence[float], time_window_ms: float = 1000.0) -> SpeedAnalysis:
    """
    Angular speed over a time window; 20-80 degrees/second counts as a good rehab pace.
    """
    if angle_history is None or len(angle_history) < 2:
        return SpeedAnalysis(0, FEEDBACK_MESSAGES["no_speed_data"], False)
    change = abs(angle_history[-1] - angle_history[0])
    speed = change / (time_window_ms / 1000.0)
    if speed < 20:
        return SpeedAnalysis(int(round(speed)), FEEDBACK_MESSAGES["speed_up"], False)
    if speed > 80:
        return SpeedAnalysis(int(round(speed)), FEEDBACK_MESSAGES["slow_down"], False)
    return SpeedAnalysis(int(round(speed)), FEEDBACK_MESSAGES["good_pace"], True)


def detect_form_deviations(current: AngleSet, previous: Optional[AngleSet] = None, max_change: float = 15.0) -> List[Deviation]:
    """Flag angles that jumped more than ``max_change`` degrees since the previous frame."""
    deviations = []
    if previous is None:
        return deviations
    for key, value in current.angles.items():
        before = previous.angles.get(key, value)
        change = abs(value - before)
        if change > max_change:
            deviations.append(Deviation(str(key), change, f"Jerky movement detected at {key}"))
    return deviations


def calculate_overall_quality(realtime: FeedbackResult, speed: SpeedAnalysis, deviations: Sequence[Deviation]) -> int:
    score = 100
    if realtime.severity is Severity.ERROR:
        score -= 30
    elif realtime.severity is Severity.WARNING:
        score -= 15
    if not speed.is_optimal:
        score -= 10
    score -= len(deviations) * 5
    return int(np.clip(score, 0, 100))


def generate_feedback_report(
    engine: FeedbackEngine,
    angles: AngleSet,
    exercise_id: Optional[str],
    frame: KeypointFrame,
    angle_history: Sequence[float] = (),
    previous_angles: Optional[AngleSet] = None,
) -> FeedbackReport:
    """Combine the real-time message with speed and jerk analysis."""
    realtime = engine.evaluate(angles, exercise_id, frame)
    speed = analyze_movement_speed(angle_history)
    deviations = tuple(detect_form_deviations(angles, previous_angles))
    return FeedbackReport(realtime, speed, deviations, calculate_overall_quality(realtime, speed, deviations))


def summarize_corrections(results: Sequence[FeedbackResult]) -> Dict[str, int]:
    """Count how often each joint needed correcting over a run of results."""
    counts: Dict[str, int] = {}
    for result in results:
        for correction in result.corrections:
            counts[correction.joint.value] = counts.get(correction.joint.value, 0) + 1
    return counts
