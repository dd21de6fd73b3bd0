"""
Rehab decision engine.

Turns recent pain reports and session quality into an intensity
multiplier, then rebuilds the day's exercise plan from the catalog.
Volume is reduced through fewer sets before fewer repetitions, so reps
are only ever scaled up.
"""
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exercise_analysis.catalog import ExerciseCatalog, ExerciseConfig, default_catalog
from ..logging_utils import get_logger

logger = get_logger("RehabDecisionEngine")

DEFAULT_PAIN_LEVEL = 5
ACUTE_PAIN_LEVEL = 7
HIGH_QUALITY = 85
MIN_REPS = 5
FALLBACK_EXERCISE_COUNT = 3


class PlanStatus(Enum):
    STABLE = "Stable"
    PROGRESSING = "Progressing"
    REGRESSING = "Regressing"
    ACUTE_CAUTION = "Acute Caution"


REASONING = {
    "regressing": "Pain spike and quality decline detected. Reducing intensity to prevent "
                  "re-injury and prioritize tissue healing.",
    "acute": "High pain levels reported. Recommending low-impact mobility only. Focus on "
             "breathing and gentle range of motion.",
    "progressing": "Excellent form and stable pain levels. Increasing challenge to drive "
                   "neural adaptation and strength gains.",
    "initial": "Initial calibration: protocol generated without history. Please log pain "
               "daily so the plan can adapt.",
    "stable": "Maintaining current protocol based on stable progress.",
}


@dataclass(frozen=True)
class PatientProfile:
    injury_type: str = "General Recovery"
    rehab_phase: str = "Mid"


@dataclass(frozen=True)
class PainLogEntry:
    level: float  # 0-10
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class SessionQualityEntry:
    quality: float  # 0-100
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class PlannedExercise:
    exercise_id: str
    name: str
    sets: int
    reps: int


@dataclass(frozen=True)
class TrendAnalysis:
    recent_pain: float
    previous_pain: float
    pain_increasing: bool
    recent_quality: Optional[float]
    quality_decreasing: bool
    high_quality: bool
    has_history: bool


@dataclass(frozen=True)
class RehabPlan:
    date: str
    status: PlanStatus
    reasoning: str
    intensity_adjustment: float
    exercises: Tuple[PlannedExercise, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "status": self.status.value,
            "reasoning": self.reasoning,
            "intensityAdjustment": self.intensity_adjustment,
            "exercises": [asdict(ex) for ex in self.exercises],
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def analyze_trends(
    pain_logs: Sequence[PainLogEntry],
    session_history: Sequence[SessionQualityEntry],
) -> TrendAnalysis:
    """Compare the newest entries with the ones before them. Both sequences are newest first."""
    recent_pain = pain_logs[0].level if pain_logs else DEFAULT_PAIN_LEVEL
    previous_pain = pain_logs[1].level if len(pain_logs) > 1 else recent_pain

    recent_quality = session_history[0].quality if session_history else None
    previous_quality = session_history[1].quality if len(session_history) > 1 else None
    quality_decreasing = (
        recent_quality is not None
        and previous_quality is not None
        and recent_quality < previous_quality
    )
    return TrendAnalysis(
        recent_pain=recent_pain,
        previous_pain=previous_pain,
        pain_increasing=recent_pain > previous_pain,
        recent_quality=recent_quality,
        quality_decreasing=quality_decreasing,
        high_quality=recent_quality is not None and recent_quality > HIGH_QUALITY,
        has_history=bool(pain_logs),
    )


def decide_intensity(trends: TrendAnalysis) -> Tuple[float, PlanStatus, str]:
    """First matching rule wins."""
    if trends.pain_increasing and trends.quality_decreasing:
        return 0.7, PlanStatus.REGRESSING, REASONING["regressing"]
    if trends.recent_pain > ACUTE_PAIN_LEVEL:
        return 0.5, PlanStatus.ACUTE_CAUTION, REASONING["acute"]
    if not trends.pain_increasing and trends.high_quality:
        return 1.2, PlanStatus.PROGRESSING, REASONING["progressing"]
    if not trends.has_history:
        return 1.0, PlanStatus.STABLE, REASONING["initial"]
    return 1.0, PlanStatus.STABLE, REASONING["stable"]


def scale_exercise(exercise: ExerciseConfig, intensity: float) -> PlannedExercise:
    sets = max(1, round_half_up(exercise.sets * intensity))
    rep_factor = intensity if intensity > 1 else 1.0
    reps = max(MIN_REPS, round_half_up(exercise.reps_per_set * rep_factor))
    return PlannedExercise(exercise.exercise_id, exercise.name, sets, reps)


def select_exercises(catalog: ExerciseCatalog, profile: PatientProfile) -> List[ExerciseConfig]:
    candidates = catalog.filter(phase=profile.rehab_phase, injury_type=profile.injury_type)
    if not candidates:
        logger.info(
            f"No exercises for phase '{profile.rehab_phase}' and injury '{profile.injury_type}', "
            f"falling back to easy exercises"
        )
        candidates = catalog.easy_exercises(FALLBACK_EXERCISE_COUNT)
    return candidates


def calculate_daily_plan(
    profile: Optional[PatientProfile] = None,
    pain_logs: Sequence[PainLogEntry] = (),
    session_history: Sequence[SessionQualityEntry] = (),
    catalog: Optional[ExerciseCatalog] = None,
    today: Optional[datetime] = None,
) -> RehabPlan:
    """
    Build the day's plan from recent pain and quality history.

    Args:
        profile: Patient injury type and rehab phase
        pain_logs: Pain reports, newest first
        session_history: Session quality results, newest first
        catalog: Exercise catalog (bundled catalog when omitted)
        today: Plan date; now (UTC) when omitted

    Returns:
        Immutable RehabPlan
    """
    profile = profile or PatientProfile()
    if catalog is None:
        catalog = default_catalog()

    trends = analyze_trends(pain_logs, session_history)
    intensity, status, reasoning = decide_intensity(trends)
    exercises = tuple(scale_exercise(ex, intensity) for ex in select_exercises(catalog, profile))

    date = (today or datetime.now(timezone.utc)).isoformat()
    logger.info(f"Plan generated: status={status.value}, intensity={intensity}, exercises={len(exercises)}")
    return RehabPlan(date, status, reasoning, intensity, exercises)


class RehabDecisionEngine:
    """Holds the catalog and patient profile between planning cycles."""

    def __init__(self, profile: Optional[PatientProfile] = None, catalog: Optional[ExerciseCatalog] = None):
        self.profile = profile or PatientProfile()
        self.catalog = catalog if catalog is not None else default_catalog()
        self.last_plan: Optional[RehabPlan] = None

    def plan(
        self,
        pain_logs: Sequence[PainLogEntry] = (),
        session_history: Sequence[SessionQualityEntry] = (),
        today: Optional[datetime] = None,
    ) -> RehabPlan:
        self.last_plan = calculate_daily_plan(self.profile, pain_logs, session_history, self.catalog, today)
        return self.last_plan

    @staticmethod
    def from_records(records: Dict[str, Any]) -> Tuple[PatientProfile, List[PainLogEntry], List[SessionQualityEntry]]:
        """
        Parse ``{"profile": {...}, "painLogs": [...], "sessions": [...]}`` as supplied
        by the surrounding application. Lists are sorted newest first.
        """
        raw_profile = records.get("profile", {})
        profile = PatientProfile(
            injury_type=raw_profile.get("injuryType", PatientProfile.injury_type),
            rehab_phase=raw_profile.get("rehabPhase", PatientProfile.rehab_phase),
        )
        pain_logs = [
            PainLogEntry(float(entry["level"]), _parse_timestamp(entry.get("timestamp")))
            for entry in records.get("painLogs", [])
        ]
        sessions = [
            SessionQualityEntry(float(entry["quality"]), _parse_timestamp(entry.get("timestamp")))
            for entry in records.get("sessions", [])
        ]
        return profile, _newest_first(pain_logs), _newest_first(sessions)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Epoch milliseconds or an ISO 8601 string (a trailing ``Z`` is accepted).

    Always returns an aware datetime; naive strings are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e

    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _newest_first(entries: List[Any]) -> List[Any]:
    """Sort by timestamp descending when every entry has one, else keep the given order."""
    if entries and all(e.timestamp is not None for e in entries):
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)
    return entries
