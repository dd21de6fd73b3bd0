"""
Rehab motion analysis: joint angles, rep counting, form feedback and
adaptive daily rehab plans from pose-estimation keypoints.
"""

from .trainer import FrameResult, RehabTrainer, SessionSummary

__version__ = "0.1.0"

__all__ = [
    'RehabTrainer',
    'FrameResult',
    'SessionSummary',
]
