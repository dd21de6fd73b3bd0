import math
import random

import pytest

from rehab_motion.exercise_analysis.catalog import default_catalog
from rehab_motion.exercise_analysis.frame_buffer import FrameRecord
from rehab_motion.exercise_analysis.joints import AngleKey, AngleSet, Joint, Side
from rehab_motion.exercise_analysis.pose_utils import LANDMARK_NAMES, KeypointFrame

SEGMENT = 0.2


def build_frame(knee=180.0, hip=180.0, timestamp_ms=0.0, hidden=(), landmark_count=33, right_knee=None):
    """
    Keypoint frame whose left/right knee and hip angles equal the given values.

    Landmarks named in ``hidden`` get visibility 0.
    """
    points = {name: [0.5, 0.1, 0.0, 1.0] for name in LANDMARK_NAMES}
    for side, x in (("left", 0.45), ("right", 0.55)):
        knee_angle = math.radians(right_knee if side == "right" and right_knee is not None else knee)
        hip_angle = math.radians(hip)
        hip_pt = (x, 0.5)
        knee_pt = (x, 0.5 + SEGMENT)
        ankle_pt = (knee_pt[0] + SEGMENT * math.sin(knee_angle), knee_pt[1] - SEGMENT * math.cos(knee_angle))
        shoulder_pt = (hip_pt[0] + SEGMENT * math.sin(hip_angle), hip_pt[1] + SEGMENT * math.cos(hip_angle))
        points[f"{side}_hip"] = [hip_pt[0], hip_pt[1], 0.0, 1.0]
        points[f"{side}_knee"] = [knee_pt[0], knee_pt[1], 0.0, 1.0]
        points[f"{side}_ankle"] = [ankle_pt[0], ankle_pt[1], 0.0, 1.0]
        points[f"{side}_shoulder"] = [shoulder_pt[0], shoulder_pt[1], 0.0, 1.0]
        points[f"{side}_foot_index"] = [ankle_pt[0] + 0.05, ankle_pt[1], 0.0, 1.0]
        points[f"{side}_elbow"] = [shoulder_pt[0], shoulder_pt[1] + SEGMENT, 0.0, 1.0]
        points[f"{side}_wrist"] = [shoulder_pt[0], shoulder_pt[1] + 2 * SEGMENT, 0.0, 1.0]
    for name in hidden:
        points[name][3] = 0.0
    rows = [points[name] for name in LANDMARK_NAMES][:landmark_count]
    return KeypointFrame.from_points(rows, timestamp_ms)


def angle_set(timestamp_ms=0.0, **angles):
    """``angle_set(left_knee=90, right_knee=95)`` -> AngleSet."""
    values = {}
    for key, value in angles.items():
        if "_" in key:
            side, joint = key.split("_", 1)
            values[AngleKey(Joint(joint), Side(side))] = float(value)
        else:
            values[AngleKey(Joint(key))] = float(value)
    return AngleSet(values, timestamp_ms)


def records(angle_sets):
    return [FrameRecord(a, a.timestamp_ms) for a in angle_sets]


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def seeded_rng():
    return random.Random(42)


class FakeEngine:
    """Stands in for a pyttsx3 engine."""

    def __init__(self):
        self.properties = {}
        self.spoken = []

    def setProperty(self, name, value):
        self.properties[name] = value

    def say(self, message):
        self.spoken.append(message)

    def runAndWait(self):
        pass


@pytest.fixture
def fake_engine():
    return FakeEngine()
