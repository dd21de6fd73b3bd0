"""
pose_utils.py - Keypoint frame types, geometry, and the angle resolver.
"""
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..logging_utils import get_logger
from .catalog import ExerciseCatalog, default_catalog
from .joints import AngleKey, AngleSet, Joint, Side

logger = get_logger("PoseUtils")

# MediaPipe Pose landmark order
LANDMARK_NAMES = (
    "nose", "left_eye_inner", "left_eye", "left_eye_outer",
    "right_eye_inner", "right_eye", "right_eye_outer", "left_ear",
    "right_ear", "mouth_left", "mouth_right", "left_shoulder",
    "right_shoulder", "left_elbow", "right_elbow", "left_wrist",
    "right_wrist", "left_pinky", "right_pinky", "left_index",
    "right_index", "left_thumb", "right_thumb", "left_hip",
    "right_hip", "left_knee", "right_knee", "left_ankle",
    "right_ankle", "left_heel", "right_heel", "left_foot_index",
    "right_foot_index",
)

# joint -> (first point, vertex, last point); "{side}" is filled with left/right
ANGLE_DEFINITIONS: Dict[Joint, Tuple[str, str, str]] = {
    Joint.SHOULDER: ("{side}_hip", "{side}_shoulder", "{side}_elbow"),
    Joint.ELBOW: ("{side}_shoulder", "{side}_elbow", "{side}_wrist"),
    Joint.WRIST: ("{side}_elbow", "{side}_wrist", "{side}_index"),
    Joint.HIP: ("{side}_shoulder", "{side}_hip", "{side}_knee"),
    Joint.KNEE: ("{side}_hip", "{side}_knee", "{side}_ankle"),
    Joint.ANKLE: ("{side}_knee", "{side}_ankle", "{side}_foot_index"),
}


@dataclass(frozen=True)
class Landmark:
    name: str
    x: float
    y: float
    z: float
    visibility: float

    def as_point(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class KeypointFrame:
    """One pose-estimation result: ordered landmarks plus a timestamp in ms."""
    landmarks: Tuple[Landmark, ...]
    timestamp_ms: float = 0.0

    @cached_property
    def _by_name(self) -> Dict[str, Landmark]:
        return {lm.name: lm for lm in self.landmarks}

    def get(self, name: str) -> Optional[Landmark]:
        return self._by_name.get(name)

    def visibility(self, name: str) -> float:
        """Visibility of a landmark, 0.0 when the landmark is absent."""
        landmark = self.get(name)
        return landmark.visibility if landmark is not None else 0.0

    def __len__(self) -> int:
        return len(self.landmarks)

    @classmethod
    def from_points(
        cls,
        points: Sequence[Sequence[float]],
        timestamp_ms: float = 0.0,
        names: Sequence[str] = LANDMARK_NAMES,
    ) -> "KeypointFrame":
        """Build a frame from ``[x, y, z, visibility]`` rows in landmark order."""
        landmarks = tuple(
            Landmark(name, float(p[0]), float(p[1]), float(p[2]), float(p[3]))
            for name, p in zip(names, points)
        )
        return cls(landmarks, timestamp_ms)

    @classmethod
    def from_mapping(cls, landmarks: Mapping[str, Sequence[float]], timestamp_ms: float = 0.0) -> "KeypointFrame":
        """Build a frame from ``{name: [x, y, z, visibility]}``."""
        return cls(
            tuple(Landmark(name, *(float(v) for v in values[:4])) for name, values in landmarks.items()),
            timestamp_ms,
        )


# --- Math & Geometry Utilities ---
def calculate_angle(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> float:
    """
    Calculate the angle at point ``b`` between vectors ``ba`` and ``bc``.

    Args:
        a: First point (x, y, z)
        b: Vertex point (x, y, z)
        c: Last point (x, y, z)

    Returns:
        Angle in degrees within 0-180, or NaN when a vector is degenerate
    """
    a = np.array(a[:3], dtype=float)
    b = np.array(b[:3], dtype=float)
    c = np.array(c[:3], dtype=float)
    ba = a - b
    bc = c - b
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba < 1e-6 or norm_bc < 1e-6:
        return np.nan
    cosine_angle = np.clip(np.dot(ba, bc) / (norm_ba * norm_bc), -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine_angle)))


def calculate_joint_angle(
    frame: KeypointFrame,
    joint: Joint,
    side: Side,
    min_visibility: float = 0.5,
) -> Optional[float]:
    """Angle for one side of a joint, or None when its landmarks are unusable."""
    points = []
    for template in ANGLE_DEFINITIONS[joint]:
        landmark = frame.get(template.format(side=side.value))
        if landmark is None or landmark.visibility < min_visibility:
            return None
        points.append(landmark.as_point())
    angle = calculate_angle(*points)
    if np.isnan(angle):
        return None
    return angle


def calculate_angles(
    frame: KeypointFrame,
    joints: Iterable[Joint],
    min_visibility: float = 0.5,
) -> AngleSet:
    """Compute left and right angles for each joint, skipping unusable sides."""
    angles: Dict[AngleKey, float] = {}
    for joint in joints:
        for side in Side:
            angle = calculate_joint_angle(frame, joint, side, min_visibility)
            if angle is not None:
                angles[AngleKey(joint, side)] = angle
    return AngleSet(angles, frame.timestamp_ms)


def resolve_angles(
    frame: KeypointFrame,
    exercise_id: Optional[str],
    catalog: Optional[ExerciseCatalog] = None,
    min_visibility: float = 0.5,
) -> AngleSet:
    """
    Convert a keypoint frame into the angles the active exercise needs.

    Unknown or missing exercises produce an empty AngleSet.
    """
    if catalog is None:
        catalog = default_catalog()
    config = catalog.get(exercise_id)
    if config is None:
        logger.debug(f"No angle definitions for exercise '{exercise_id}'")
        return AngleSet({}, frame.timestamp_ms)
    return calculate_angles(frame, config.joint_ranges.keys(), min_visibility)
