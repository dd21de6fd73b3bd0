from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from ..exercise_analysis.pose_utils import KeypointFrame


class BasePoseDetector(ABC):
    """Base class for pose detection implementations."""

    @abstractmethod
    def detect(self, frame: np.ndarray, timestamp_ms: Optional[float] = None) -> Optional[KeypointFrame]:
        """
        Detect pose landmarks in the given frame.

        Args:
            frame: Input frame as numpy array (BGR)
            timestamp_ms: Capture time of the frame; the detector's clock when omitted

        Returns:
            KeypointFrame with every landmark the model reports, or None when no pose is found
        """

    @abstractmethod
    def get_landmark_names(self) -> Sequence[str]:
        """
        Get the landmark names this detector provides, in output order.
        """

    def close(self) -> None:
        """Release model resources."""
