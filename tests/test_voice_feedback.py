import threading

from rehab_motion.exercise_analysis.visibility import Severity
from rehab_motion.feedback.realtime_feedback import AudioCue, FeedbackResult, VisualCue
from rehab_motion.feedback.voice_feedback import VoiceFeedback


def warning(message):
    return FeedbackResult(message, Severity.ERROR, AudioCue.WARNING, VisualCue.RED)


def make_voice(engine, now):
    return VoiceFeedback(cooldown=4.0, engine_factory=lambda: engine, clock=lambda: now[0])


def test_open_configures_engine(fake_engine):
    voice = VoiceFeedback(rate=120, volume=0.5, engine_factory=lambda: fake_engine)
    voice.open()
    try:
        assert voice.is_open
        assert fake_engine.properties == {"rate": 120, "volume": 0.5}
    finally:
        voice.close()
    assert not voice.is_open


def test_queued_messages_are_spoken_before_close(fake_engine):
    voice = VoiceFeedback(engine_factory=lambda: fake_engine)
    voice.open()
    voice.speak("Hello")
    voice.announce_rep(3)
    voice.close()
    assert fake_engine.spoken == ["Hello", "Rep 3 complete!"]


def test_speak_when_closed_is_dropped(fake_engine):
    voice = VoiceFeedback(engine_factory=lambda: fake_engine)
    voice.speak("Nobody hears this")
    assert fake_engine.spoken == []


def test_only_warnings_are_voiced(fake_engine):
    now = [100.0]
    voice = make_voice(fake_engine, now)
    assert voice.generate_feedback(FeedbackResult("Excellent form!", Severity.SUCCESS, AudioCue.SUCCESS)) is None
    assert voice.generate_feedback(warning("Knee: extend more (60° → 90°)")) == "Knee: extend more (60° → 90°)"


def test_cooldown_and_repeat_suppression(fake_engine):
    now = [100.0]
    voice = make_voice(fake_engine, now)
    assert voice.generate_feedback(warning("Knee: bend more")) == "Knee: bend more"

    now[0] = 102.0
    assert voice.generate_feedback(warning("Hip: bend more")) is None  # Within cooldown

    now[0] = 105.0
    assert voice.generate_feedback(warning("Knee: bend more")) is None  # Same as last spoken
    assert voice.generate_feedback(warning("Hip: bend more")) == "Hip: bend more"


class FlakyEngine:
    """Fails on the first utterance, then works."""

    def __init__(self):
        self.spoken = []

    def setProperty(self, name, value):
        pass

    def say(self, message):
        if not self.spoken and message == "first":
            self.spoken.append(None)
            raise OSError("audio device busy")
        self.spoken.append(message)

    def runAndWait(self):
        pass


class BlockingEngine:
    """runAndWait blocks until released."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()

    def setProperty(self, name, value):
        pass

    def say(self, message):
        self.started.set()

    def runAndWait(self):
        self.release.wait(5.0)


def test_worker_survives_engine_errors():
    engine = FlakyEngine()
    voice = VoiceFeedback(engine_factory=lambda: engine)
    voice.open()
    voice.speak("first")
    voice.speak("second")
    voice.close()
    assert engine.spoken == [None, "second"]


def test_close_keeps_engine_while_worker_is_busy():
    engine = BlockingEngine()
    voice = VoiceFeedback(engine_factory=lambda: engine)
    voice.open()
    voice.speak("long message")
    assert engine.started.wait(2.0)
    voice.close(timeout=0.05)
    assert not voice.is_open
    assert voice.engine is engine
    engine.release.set()
