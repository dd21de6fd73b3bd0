"""
Exercise analysis package: angle resolution, visibility gating, rep
detection, form scoring and range-of-motion tracking.
"""

from .catalog import Direction, ExerciseCatalog, ExerciseConfig, JointRange, default_catalog
from .config_utils import CatalogError, SessionSettings, load_session_settings
from .frame_buffer import FrameBuffer, FrameRecord
from .joints import AngleKey, AngleSet, Joint, Side, resolve_joint_angle
from .pose_utils import KeypointFrame, Landmark, resolve_angles
from .rep_detector import RepDetector, RepEvent, RepPhase
from .rom_tracker import RepCompletion, ROMStats, calculate_rep_completion, track_range_of_motion
from .scoring import QualityScore, calculate_form_quality, calculate_session_score
from .standing_march import MarchPhase, StandingMarchTracker, assess_standing_march
from .visibility import GateResult, Severity, VisibilityGate

__all__ = [
    'AngleKey',
    'AngleSet',
    'CatalogError',
    'Direction',
    'ExerciseCatalog',
    'ExerciseConfig',
    'FrameBuffer',
    'FrameRecord',
    'GateResult',
    'Joint',
    'JointRange',
    'KeypointFrame',
    'Landmark',
    'MarchPhase',
    'QualityScore',
    'ROMStats',
    'RepCompletion',
    'RepDetector',
    'RepEvent',
    'RepPhase',
    'SessionSettings',
    'Severity',
    'Side',
    'StandingMarchTracker',
    'VisibilityGate',
    'assess_standing_march',
    'calculate_form_quality',
    'calculate_rep_completion',
    'calculate_session_score',
    'default_catalog',
    'load_session_settings',
    'resolve_angles',
    'resolve_joint_angle',
    'track_range_of_motion',
]
