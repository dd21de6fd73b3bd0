import time
from typing import Optional, Sequence

import cv2
import mediapipe as mp
import numpy as np

from ..exercise_analysis.pose_utils import LANDMARK_NAMES, KeypointFrame
from ..logging_utils import get_logger
from .base_detector import BasePoseDetector

logger = get_logger("MediaPipePoseDetector")


class MediaPipePoseDetector(BasePoseDetector):
    """MediaPipe implementation of pose detection."""

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1,
    ):
        """
        Initialize the MediaPipe pose detector.

        Args:
            min_detection_confidence: Minimum confidence for pose detection
            min_tracking_confidence: Minimum confidence for pose tracking
            model_complexity: 0, 1 or 2; higher is more accurate and slower
        """
        self.mp_pose = mp.solutions.pose
        self.pose = self.mp_pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._start = time.monotonic()

    def detect(self, frame: np.ndarray, timestamp_ms: Optional[float] = None) -> Optional[KeypointFrame]:
        if timestamp_ms is None:
            timestamp_ms = (time.monotonic() - self._start) * 1000.0

        # Convert BGR to RGB
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.pose.process(frame_rgb)
        if not results.pose_landmarks:
            logger.debug("No pose detected")
            return None

        points = [
            (landmark.x, landmark.y, landmark.z, landmark.visibility)
            for landmark in results.pose_landmarks.landmark
        ]
        return KeypointFrame.from_points(points, timestamp_ms)

    def get_landmark_names(self) -> Sequence[str]:
        return LANDMARK_NAMES

    def close(self) -> None:
        self.pose.close()
