from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..logging_utils import get_logger
from .config_utils import load_catalog_config
from .joints import Joint

logger = get_logger("ExerciseCatalog")


class Direction(Enum):
    """Which way the primary joint angle travels on the way to the peak."""
    INCREASING = "increasing"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class JointRange:
    min: float
    max: float
    optimal: float


@dataclass(frozen=True)
class ExerciseConfig:
    """Static description of one exercise. Never mutated at runtime."""
    exercise_id: str
    name: str
    joint_ranges: Mapping[Joint, JointRange]  # Ordered; the first entry is the primary joint
    required_joints: Tuple[str, ...]  # Landmark names, in the order they are reported
    direction: Direction
    peak_threshold: float
    return_threshold: float
    description: str = ""
    difficulty: str = "Easy"
    phase: Optional[str] = None
    suitable_for: Optional[Tuple[str, ...]] = None
    sets: int = 3
    reps_per_set: int = 10
    legacy_joint_ranges: Mapping[Joint, JointRange] = field(default_factory=dict)  # Superseded ranges, never used for feedback

    @property
    def primary_joint(self) -> Optional[Joint]:
        return next(iter(self.joint_ranges), None)


def _parse_ranges(raw: Dict[str, Any]) -> Dict[Joint, JointRange]:
    return {
        Joint(joint_name): JointRange(float(r["min"]), float(r["max"]), float(r["optimal"]))
        for joint_name, r in raw.items()
    }


def _parse_exercise(exercise_id: str, raw: Dict[str, Any]) -> ExerciseConfig:
    joint_ranges = _parse_ranges(raw["joint_ranges"])
    rep = raw["rep_detection"]
    suitable_for = raw.get("suitable_for")
    return ExerciseConfig(
        exercise_id=exercise_id,
        name=raw.get("name", exercise_id),
        joint_ranges=joint_ranges,
        required_joints=tuple(raw.get("required_joints", [])),
        direction=Direction(rep["direction"]),
        peak_threshold=float(rep["peak_threshold"]),
        return_threshold=float(rep["return_threshold"]),
        description=raw.get("description", ""),
        difficulty=raw.get("difficulty", "Easy"),
        phase=raw.get("phase"),
        suitable_for=tuple(suitable_for) if suitable_for is not None else None,
        sets=int(raw.get("sets", 3)),
        reps_per_set=int(raw.get("reps_per_set", 10)),
        legacy_joint_ranges=_parse_ranges(raw.get("legacy_joint_ranges", {})),
    )


@dataclass
class ExerciseCatalog:
    """Lookup table of exercises keyed by identifier, in file order."""
    exercises: Dict[str, ExerciseConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ExerciseCatalog":
        exercises = {}
        for exercise_id, entry in raw.get("exercises", {}).items():
            try:
                exercises[exercise_id] = _parse_exercise(exercise_id, entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping invalid catalog entry '{exercise_id}': {e}")
        return cls(exercises)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "ExerciseCatalog":
        return cls.from_dict(load_catalog_config(config_path))

    def get(self, exercise_id: Optional[str]) -> Optional[ExerciseConfig]:
        if exercise_id is None:
            return None
        return self.exercises.get(exercise_id)

    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self.exercises

    def __iter__(self) -> Iterator[ExerciseConfig]:
        return iter(self.exercises.values())

    def __len__(self) -> int:
        return len(self.exercises)

    def filter(self, phase: Optional[str] = None, injury_type: Optional[str] = None) -> List[ExerciseConfig]:
        """
        Exercises suitable for a rehab phase and injury.

        Entries without a phase or injury list match any value.
        """
        matches = []
        for exercise in self:
            if exercise.phase and phase is not None and exercise.phase != phase:
                continue
            if exercise.suitable_for is not None and injury_type not in exercise.suitable_for:
                continue
            matches.append(exercise)
        return matches

    def easy_exercises(self, limit: int = 3) -> List[ExerciseConfig]:
        return [ex for ex in self if ex.difficulty == "Easy"][:limit]


_DEFAULT_CATALOG: Optional[ExerciseCatalog] = None


def default_catalog() -> ExerciseCatalog:
    """The bundled catalog, loaded once on first use."""
    global _DEFAULT_CATALOG
    if _DEFAULT_CATALOG is None:
        _DEFAULT_CATALOG = ExerciseCatalog.load()
    return _DEFAULT_CATALOG
