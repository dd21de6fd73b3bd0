import queue
import threading
import time
from typing import Any, Callable, Optional

import pyttsx3

from ..exercise_analysis.visibility import Severity
from ..logging_utils import get_logger
from .realtime_feedback import AudioCue, FeedbackResult

logger = get_logger("VoiceFeedback")


class VoiceFeedback:
    """
    Spoken cues for the active session.

    The text-to-speech engine is a single owned resource: ``open()`` when the
    session starts, ``close()`` when it ends. Messages are spoken on a
    background thread so the frame loop never blocks.
    """

    def __init__(
        self,
        rate: int = 150,
        volume: float = 1.0,
        cooldown: float = 4.0,
        engine_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            rate: Speech rate (words per minute)
            volume: Speech volume (0.0 to 1.0)
            cooldown: Minimum seconds between two spoken corrections
            engine_factory: Builds the TTS engine; defaults to ``pyttsx3.init``
            clock: Time source in seconds
        """
        self.rate = rate
        self.volume = volume
        self.feedback_cooldown = cooldown
        self._engine_factory = engine_factory or pyttsx3.init
        self._clock = clock

        self.engine = None
        self._tts_queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._tts_thread: Optional[threading.Thread] = None

        self.last_feedback_time = 0.0
        self._last_feedback_message: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self._tts_thread is not None

    def open(self) -> None:
        """Create the TTS engine and start the speaking thread."""
        if self.is_open:
            return
        self.engine = self._engine_factory()
        self.engine.setProperty('rate', self.rate)
        self.engine.setProperty('volume', self.volume)
        self._tts_queue = queue.Queue()
        self._tts_thread = threading.Thread(
            target=self._tts_worker, args=(self.engine, self._tts_queue), daemon=True
        )
        self._tts_thread.start()
        logger.info("Voice feedback opened")

    def close(self, timeout: float = 2.0) -> None:
        """Stop the speaking thread and release the engine."""
        if not self.is_open:
            return
        self._tts_queue.put(None)
        self._tts_thread.join(timeout)
        if self._tts_thread.is_alive():
            # The worker keeps its own engine reference until it exits
            logger.warning(f"Speech thread did not stop within {timeout}s")
        else:
            self.engine = None
        self._tts_thread = None
        self._last_feedback_message = None
        logger.info("Voice feedback closed")

    def generate_feedback(self, result: FeedbackResult) -> Optional[str]:
        """
        Decide whether a frame's feedback should be spoken.

        Only warnings are voiced (blocked tracking or form corrections), and
        never the same message twice in a row or within the cooldown.

        Args:
            result: Feedback for the current frame

        Returns:
            Message to speak, or None
        """
        if result.audio_cue is not AudioCue.WARNING and result.severity is not Severity.WARNING:
            return None
        current_time = self._clock()
        if current_time - self.last_feedback_time < self.feedback_cooldown:
            return None
        if result.message == self._last_feedback_message:
            return None
        self._last_feedback_message = result.message
        self.last_feedback_time = current_time
        return result.message

    def announce_rep(self, rep_count: int) -> None:
        self.speak(f"Rep {rep_count} complete!")

    def speak(self, message: str) -> None:
        """
        Queue the given message to be spoken by the background TTS thread.

        Args:
            message: Message to speak
        """
        if not self.is_open:
            logger.debug(f"Voice feedback closed, dropping: {message}")
            return
        self._tts_queue.put(message)

    def _tts_worker(self, engine, tts_queue: "queue.Queue[Optional[str]]"):
        while True:
            msg = tts_queue.get()
            if msg is None:
                break
            try:
                engine.say(msg)
                engine.runAndWait()
            except Exception as e:
                # Keep draining the queue after a failed utterance
                logger.error(f"Speech engine error: {e}")
