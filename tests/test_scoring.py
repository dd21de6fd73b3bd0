import pytest

from rehab_motion.exercise_analysis.scoring import (
    calculate_consistency,
    calculate_form_quality,
    calculate_session_score,
    calculate_speed_score,
    calculate_symmetry,
)

from conftest import angle_set, records


def steady_frames(count=30, knee=90, hip=90):
    return records(
        angle_set(timestamp_ms=i * 33.0, left_knee=knee, right_knee=knee, left_hip=hip, right_hip=hip)
        for i in range(count)
    )


def test_empty_history_scores_zero(catalog):
    score = calculate_form_quality([], "squats", catalog)
    assert score.overall_score == 0
    assert score.as_dict() == {
        "overallScore": 0, "angleAccuracy": 0, "consistency": 0, "symmetry": 0, "speed": 0,
    }


def test_steady_ideal_form_scores_100(catalog):
    score = calculate_form_quality(steady_frames(), "squats", catalog)
    assert score.overall_score == 100
    assert score.angle_accuracy == 100
    assert score.frame_count == 30


def test_out_of_range_angles_lower_accuracy(catalog):
    score = calculate_form_quality(steady_frames(knee=170, hip=170), "squats", catalog)
    assert score.angle_accuracy == 0
    # Steady but wrong: consistency, symmetry and speed still full
    assert score.overall_score == 60


def test_every_field_stays_in_bounds(catalog):
    frames = records(
        angle_set(timestamp_ms=t, left_knee=k, right_knee=180 - k, left_hip=5, right_hip=175)
        for t, k in [(0, 10), (5, 170), (300, 20), (310, 160), (2000, 0)]
    )
    score = calculate_form_quality(frames, "squats", catalog)
    for value in score.as_dict().values():
        assert 0 <= value <= 100


def test_unknown_exercise_has_zero_accuracy(catalog):
    score = calculate_form_quality(steady_frames(), "handstand", catalog)
    assert score.angle_accuracy == 0
    assert score.consistency == 100


def test_symmetry_falls_back_without_pairs():
    frames = records(angle_set(left_knee=90 + i) for i in range(5))
    assert calculate_symmetry(frames) == 100.0


def test_symmetry_penalizes_side_difference():
    frames = records([angle_set(left_knee=90, right_knee=110)])
    assert calculate_symmetry(frames) == pytest.approx(60.0)


def test_single_frame_consistency_and_speed():
    frames = steady_frames(count=1)
    assert calculate_consistency(frames) == 100.0
    assert calculate_speed_score(frames) == 100.0


def test_jittery_timing_scores_lower():
    frames = records(angle_set(timestamp_ms=t, knee=90) for t in [0, 10, 200, 210, 400])
    assert calculate_speed_score(frames) < 100.0


@pytest.mark.parametrize("scores, grade", [
    ([95, 85], "A"),
    ([80], "B"),
    ([72, 68], "C"),
    ([60], "D"),
    ([10, 30], "F"),
])
def test_session_grades(scores, grade):
    assert calculate_session_score(scores).grade == grade


def test_session_without_reps():
    result = calculate_session_score([])
    assert result.grade == "N/A"
    assert result.total_reps == 0


def test_wrist_difference_does_not_affect_symmetry():
    frames = records([angle_set(left_wrist=120, right_wrist=170, left_knee=90, right_knee=90)])
    assert calculate_symmetry(frames) == 100.0
