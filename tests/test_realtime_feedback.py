import random

import pytest

from rehab_motion.exercise_analysis.catalog import JointRange
from rehab_motion.exercise_analysis.joints import Joint
from rehab_motion.exercise_analysis.pose_utils import resolve_angles
from rehab_motion.exercise_analysis.visibility import Severity
from rehab_motion.feedback.realtime_feedback import (
    ENCOURAGEMENTS,
    AudioCue,
    FeedbackEngine,
    VisualCue,
    analyze_movement_speed,
    calculate_overall_quality,
    classify_joint,
    detect_form_deviations,
    generate_feedback_report,
    summarize_corrections,
)

from conftest import angle_set

KNEE_RANGE = JointRange(80, 120, 90)


@pytest.fixture
def engine(catalog):
    return FeedbackEngine(catalog=catalog, encouragement_rate=0.0, rng=random.Random(0))


def evaluate(engine, frame, exercise_id="squats"):
    angles = resolve_angles(frame, exercise_id, engine.catalog)
    return engine.evaluate(angles, exercise_id, frame)


def test_classify_extend_bend_adjust():
    extend = classify_joint(Joint.KNEE, 60, KNEE_RANGE)
    assert extend.message == "Knee: extend more (60° → 90°)"
    assert extend.severity is Severity.ERROR

    bend = classify_joint(Joint.KNEE, 135, KNEE_RANGE)
    assert bend.message == "Knee: bend more (135° → 90°)"
    assert bend.direction == "flex"

    adjust = classify_joint(Joint.KNEE, 105, KNEE_RANGE)
    assert adjust.message == "Knee: almost perfect, adjust slightly toward 90° (now 105°)"
    assert adjust.severity is Severity.WARNING

    assert classify_joint(Joint.KNEE, 95, KNEE_RANGE) is None
    # Tolerance widens the range on both sides
    assert classify_joint(Joint.KNEE, 70, KNEE_RANGE).severity is Severity.WARNING


def test_good_form(engine, make_frame):
    result = evaluate(engine, make_frame(knee=90, hip=90))
    assert result.message == "Excellent form!"
    assert result.severity is Severity.SUCCESS
    assert result.audio_cue is AudioCue.SUCCESS
    assert result.visual_cue is VisualCue.GREEN
    assert result.corrections == ()


def test_encouragement_is_seeded(catalog, make_frame):
    frame = make_frame(knee=90, hip=90)
    first = evaluate(FeedbackEngine(catalog=catalog, encouragement_rate=1.0, rng=random.Random(7)), frame)
    second = evaluate(FeedbackEngine(catalog=catalog, encouragement_rate=1.0, rng=random.Random(7)), frame)
    assert first.message in ENCOURAGEMENTS
    assert first.message == second.message


def test_single_error_correction(engine, make_frame):
    result = evaluate(engine, make_frame(knee=60, hip=90))
    assert result.message == "Knee: extend more (60° → 90°)"
    assert result.severity is Severity.ERROR
    assert result.audio_cue is AudioCue.WARNING
    assert result.visual_cue is VisualCue.RED


def test_single_warning_correction(engine, make_frame):
    result = evaluate(engine, make_frame(knee=105, hip=90))
    assert result.severity is Severity.WARNING
    assert result.audio_cue is AudioCue.INFO
    assert result.visual_cue is VisualCue.YELLOW


def test_multiple_corrections_are_aggregated(engine, make_frame):
    result = evaluate(engine, make_frame(knee=60, hip=150))
    assert result.message == "Knee: extend more (60° → 90°) (+1 more)"
    assert result.severity is Severity.ERROR
    assert len(result.corrections) == 2


def test_gate_takes_precedence(engine, make_frame):
    result = evaluate(engine, make_frame(knee=60, hidden=("left_knee",)))
    assert result.gated
    assert result.message == "Make sure your left knee is visible to the camera"
    assert result.corrections == ()
    assert result.visual_cue is VisualCue.RED


def test_no_exercise_asks_for_full_body(engine, make_frame):
    frame = make_frame()
    result = engine.evaluate(angle_set(), None, frame)
    assert result.message == "Show your full body to the camera to begin"
    assert result.severity is Severity.INFO
    assert not result.gated


def test_timestamp_is_carried(engine, make_frame):
    assert evaluate(engine, make_frame(timestamp_ms=500.0)).timestamp_ms == 500.0


@pytest.mark.parametrize("history, feedback, optimal", [
    ([90, 150], "Good pace", True),
    ([90, 95], "Move a bit faster", False),
    ([0, 100], "Slow down", False),
    ([90], "Insufficient data", False),
])
def test_movement_speed(history, feedback, optimal):
    result = analyze_movement_speed(history)
    assert result.feedback == feedback
    assert result.is_optimal is optimal


def test_jerky_movement_detected():
    deviations = detect_form_deviations(angle_set(left_knee=90, left_hip=100), angle_set(left_knee=120, left_hip=95))
    assert [d.key for d in deviations] == ["left_knee"]
    assert deviations[0].change == pytest.approx(30.0)
    assert detect_form_deviations(angle_set(left_knee=90)) == []


def test_report_quality(engine, make_frame):
    frame = make_frame(knee=60, hip=90)
    angles = resolve_angles(frame, "squats", engine.catalog)
    report = generate_feedback_report(
        engine, angles, "squats", frame,
        angle_history=[90, 92],
        previous_angles=angle_set(left_knee=90, right_knee=60, left_hip=90, right_hip=90),
    )
    assert report.realtime.severity is Severity.ERROR
    assert not report.speed.is_optimal
    assert len(report.deviations) == 1
    assert report.overall_quality == 55
    assert calculate_overall_quality(report.realtime, report.speed, ()) == 60


def test_summarize_corrections(engine, make_frame):
    results = [
        evaluate(engine, make_frame(knee=60, hip=150)),
        evaluate(engine, make_frame(knee=60, hip=90)),
        evaluate(engine, make_frame(knee=90, hip=90)),
    ]
    assert summarize_corrections(results) == {"knee": 2, "hip": 1}


def test_hidden_body_is_an_error_without_corrections(engine, make_frame):
    frame = make_frame(knee=40, hip=20, hidden=("left_hip", "right_hip", "left_knee", "left_ankle"))
    angles = angle_set(right_knee=40, right_hip=20)
    result = engine.evaluate(angles, "squats", frame)
    assert result.severity is Severity.ERROR
    assert result.message == "Full body not visible, please step back"
    assert result.corrections == ()
