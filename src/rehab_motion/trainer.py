from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .exercise_analysis.catalog import ExerciseCatalog, default_catalog
from .exercise_analysis.config_utils import SessionSettings, load_session_settings
from .exercise_analysis.frame_buffer import FrameBuffer
from .exercise_analysis.joints import AngleSet
from .exercise_analysis.pose_utils import KeypointFrame, resolve_angles
from .exercise_analysis.rep_detector import RepDetector, RepEvent, RepPhase
from .exercise_analysis.rom_tracker import ROMStats, Recommendation, generate_rom_recommendations, track_range_of_motion
from .exercise_analysis.scoring import QualityScore, SessionScore, calculate_form_quality, calculate_session_score
from .exercise_analysis import standing_march
from .exercise_analysis.visibility import VisibilityGate
from .feedback.realtime_feedback import FeedbackEngine, FeedbackResult, summarize_corrections
from .feedback.throttle import DisplayThrottle
from .feedback.voice_feedback import VoiceFeedback
from .logging_utils import get_logger
from .pose_detection.base_detector import BasePoseDetector

logger = get_logger("RehabTrainer")


@dataclass(frozen=True)
class FrameResult:
    """Everything the UI needs for one processed frame."""
    angles: AngleSet
    feedback: FeedbackResult
    phase: RepPhase
    rep_count: int
    rep_event: Optional[RepEvent] = None
    quality: Optional[QualityScore] = None  # Recomputed only when a rep completes
    should_render: bool = True
    spoken: Optional[str] = None


@dataclass(frozen=True)
class SessionSummary:
    exercise_id: Optional[str]
    exercise_name: Optional[str]
    total_reps: int
    quality: QualityScore
    rom: ROMStats
    session_score: SessionScore
    duration_seconds: float
    corrections: Dict[str, int] = field(default_factory=dict)
    recommendations: Tuple[Recommendation, ...] = ()


class RehabTrainer:
    """
    Per-session controller.

    Owns the frame history, rep state machine, feedback engine, display
    throttle and voice output for exactly one active exercise at a time.
    Nothing here is shared between sessions.
    """

    def __init__(
        self,
        settings: Optional[SessionSettings] = None,
        catalog: Optional[ExerciseCatalog] = None,
        pose_detector: Optional[BasePoseDetector] = None,
        voice_feedback: Optional[VoiceFeedback] = None,
        feedback_engine: Optional[FeedbackEngine] = None,
    ):
        """
        Initialize the trainer.

        Args:
            settings: Session thresholds; loaded from session_config.json when omitted
            catalog: Exercise catalog; the bundled catalog when omitted
            pose_detector: Needed only for process_frame on raw images
            voice_feedback: Spoken cue player; a pyttsx3-backed player when omitted
            feedback_engine: Overrides the engine built from settings
        """
        self.settings = settings or load_session_settings()
        self.catalog = catalog if catalog is not None else default_catalog()
        self.pose_detector = pose_detector

        gate = VisibilityGate(
            visibility_threshold=self.settings.visibility_threshold,
            min_landmark_count=self.settings.min_landmark_count,
            max_missing_joints=self.settings.max_missing_joints,
        )
        self.feedback_engine = feedback_engine or FeedbackEngine(
            catalog=self.catalog,
            gate=gate,
            tolerance=self.settings.angle_tolerance,
            encouragement_rate=self.settings.encouragement_rate,
        )
        self.voice_feedback = voice_feedback or VoiceFeedback(
            rate=self.settings.audio_rate,
            volume=self.settings.audio_volume,
            cooldown=self.settings.audio_cooldown_seconds,
        )
        self.frame_buffer = FrameBuffer(maxlen=self.settings.frame_buffer_size)
        self.rep_detector = RepDetector()
        self.throttle = DisplayThrottle(self.settings.display_rate_hz)

        self.exercise_id: Optional[str] = None
        self.rep_scores: List[int] = []
        self.is_open = False
        self._correction_counts: Dict[str, int] = {}
        self._first_timestamp_ms: Optional[float] = None
        self._last_timestamp_ms: Optional[float] = None

    def open(self, exercise_id: Optional[str] = None) -> "RehabTrainer":
        """Start a session, optionally selecting the exercise."""
        if not self.is_open:
            self.voice_feedback.open()
            self.is_open = True
            logger.info("Session opened")
        if exercise_id is not None:
            self.select_exercise(exercise_id)
        return self

    def close(self) -> SessionSummary:
        """End the session, release the voice engine and return its summary."""
        summary = self.summary()
        self.voice_feedback.close()
        self.frame_buffer.clear()
        self.is_open = False
        logger.info(
            f"Session closed: exercise={summary.exercise_id}, reps={summary.total_reps}, "
            f"grade={summary.session_score.grade}"
        )
        return summary

    def __enter__(self) -> "RehabTrainer":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def select_exercise(self, exercise_id: str) -> None:
        """Switch exercise: resets the rep state and drops the frame history."""
        config = self.catalog.get(exercise_id)
        if config is None:
            logger.warning(f"Unknown exercise '{exercise_id}'; no analysis will be produced")
        self.exercise_id = exercise_id
        self.rep_detector.reset(config)
        self.frame_buffer.clear()
        self.throttle.reset()
        self.rep_scores = []
        self._correction_counts = {}
        self._first_timestamp_ms = None
        self._last_timestamp_ms = None
        logger.info(f"Exercise selected: {exercise_id}")

    def process_keypoints(self, frame: KeypointFrame) -> FrameResult:
        """
        Run the per-frame pipeline on one keypoint frame.

        Args:
            frame: Landmarks from the pose detector

        Returns:
            FrameResult for this frame
        """
        if self._first_timestamp_ms is None:
            self._first_timestamp_ms = frame.timestamp_ms
        self._last_timestamp_ms = frame.timestamp_ms

        angles = resolve_angles(frame, self.exercise_id, self.catalog, self.settings.angle_visibility_threshold)

        # The rep detector sees every frame, gated or not
        rep_event = self.rep_detector.update(angles)

        feedback = self.feedback_engine.evaluate(angles, self.exercise_id, frame)
        if not feedback.gated and len(angles) > 0:
            self.frame_buffer.append(angles, feedback)
            for joint, count in summarize_corrections([feedback]).items():
                self._correction_counts[joint] = self._correction_counts.get(joint, 0) + count

        quality = None
        if rep_event is not None:
            quality = self.quality_score()
            self.rep_scores.append(quality.overall_score)
            logger.info(f"Rep {rep_event.rep_count} completed, quality {quality.overall_score}")
            self.voice_feedback.announce_rep(rep_event.rep_count)

        spoken = self.voice_feedback.generate_feedback(feedback)
        if spoken:
            self.voice_feedback.speak(spoken)

        should_render = self.throttle.should_render(frame.timestamp_ms, force=rep_event is not None)
        return FrameResult(
            angles=angles,
            feedback=feedback,
            phase=self.rep_detector.phase,
            rep_count=self.rep_detector.rep_count,
            rep_event=rep_event,
            quality=quality,
            should_render=should_render,
            spoken=spoken,
        )

    def process_frame(self, image: np.ndarray, timestamp_ms: Optional[float] = None) -> Optional[FrameResult]:
        """
        Detect the pose in a camera image, then run process_keypoints.

        Returns:
            FrameResult, or None when no pose was detected
        """
        if self.pose_detector is None:
            raise RuntimeError("No pose detector attached")
        keypoints = self.pose_detector.detect(image, timestamp_ms)
        if keypoints is None:
            return None
        return self.process_keypoints(keypoints)

    def quality_score(self) -> QualityScore:
        return calculate_form_quality(
            self.frame_buffer, self.exercise_id, self.catalog, self.settings.angle_tolerance
        )

    def rom_stats(self) -> ROMStats:
        return track_range_of_motion(self.frame_buffer, self.exercise_id, self.catalog)

    def summary(self, previous_rom: Optional[ROMStats] = None) -> SessionSummary:
        config = self.catalog.get(self.exercise_id)
        rom = self.rom_stats()
        duration = 0.0
        if self._first_timestamp_ms is not None and self._last_timestamp_ms is not None:
            duration = max(0.0, (self._last_timestamp_ms - self._first_timestamp_ms) / 1000.0)
        recommendations = generate_rom_recommendations(rom, previous_rom)
        if self.exercise_id == standing_march.EXERCISE_ID and len(self.frame_buffer):
            metrics = standing_march.calculate_standing_march_metrics(self.frame_buffer)
            recommendations.extend(standing_march.generate_standing_march_recommendations(metrics))
        return SessionSummary(
            exercise_id=self.exercise_id,
            exercise_name=config.name if config is not None else None,
            total_reps=self.rep_detector.rep_count,
            quality=self.quality_score(),
            rom=rom,
            session_score=calculate_session_score(self.rep_scores),
            duration_seconds=duration,
            corrections=dict(self._correction_counts),
            recommendations=tuple(recommendations),
        )
