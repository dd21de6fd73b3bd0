"""
joints.py - Typed joint vocabulary and the left/right angle resolution rule.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple


class Joint(Enum):
    """Body joints whose angles the analyzers understand."""
    SHOULDER = "shoulder"
    ELBOW = "elbow"
    WRIST = "wrist"
    HIP = "hip"
    KNEE = "knee"
    ANKLE = "ankle"

    @property
    def rest_angle(self) -> float:
        # Arms hang at ~0 degrees from the torso; every other joint rests extended.
        return 0.0 if self is Joint.SHOULDER else 180.0

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Side(Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class AngleKey:
    """Identifies one angle: a joint plus an optional body side."""
    joint: Joint
    side: Optional[Side] = None

    def __str__(self) -> str:
        if self.side is None:
            return self.joint.value
        return f"{self.side.value}_{self.joint.value}"


@dataclass(frozen=True)
class AngleSet:
    """
    Joint angles (degrees) resolved from one keypoint frame.

    A key is absent when its landmarks were not visible; values are never
    defaulted to zero.
    """
    angles: Mapping[AngleKey, float] = field(default_factory=dict)
    timestamp_ms: float = 0.0

    def get(self, joint: Joint, side: Optional[Side] = None) -> Optional[float]:
        return self.angles.get(AngleKey(joint, side))

    def keys(self) -> Iterator[AngleKey]:
        return iter(self.angles.keys())

    def __contains__(self, key: AngleKey) -> bool:
        return key in self.angles

    def __len__(self) -> int:
        return len(self.angles)

    def as_dict(self) -> Dict[str, float]:
        """Flatten to ``{"left_knee": 92.0, ...}`` for logging and serialization."""
        return {str(k): v for k, v in self.angles.items()}


def pick_active_side(left: Optional[float], right: Optional[float], rest_angle: float) -> Optional[float]:
    """
    Choose whichever side deviates more from the rest angle.

    A missing side is treated as resting. Ties go to the right side.
    """
    if left is None and right is None:
        return None
    l = left if left is not None else rest_angle
    r = right if right is not None else rest_angle
    return l if abs(l - rest_angle) > abs(r - rest_angle) else r


def resolve_joint_angle(angle_set: AngleSet, joint: Joint) -> Optional[float]:
    """
    Resolve a single angle for ``joint``.

    A side-less angle wins when present; otherwise the left/right pair is
    reduced with :func:`pick_active_side`.
    """
    direct = angle_set.get(joint)
    if direct is not None:
        return direct
    return pick_active_side(
        angle_set.get(joint, Side.LEFT),
        angle_set.get(joint, Side.RIGHT),
        joint.rest_angle,
    )


SYMMETRY_JOINTS = (Joint.KNEE, Joint.HIP, Joint.ELBOW, Joint.SHOULDER, Joint.ANKLE)


def bilateral_pairs() -> Tuple[Tuple[Joint, AngleKey, AngleKey], ...]:
    """Left/right key pairs compared by symmetry checks. The wrist is not compared."""
    return tuple(
        (joint, AngleKey(joint, Side.LEFT), AngleKey(joint, Side.RIGHT))
        for joint in SYMMETRY_JOINTS
    )
