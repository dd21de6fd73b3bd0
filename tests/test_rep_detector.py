from rehab_motion.exercise_analysis.rep_detector import RepDetector, RepPhase

from conftest import angle_set


def run(detector, knee_angles, joint="knee"):
    events = []
    for i, value in enumerate(knee_angles):
        event = detector.update(angle_set(timestamp_ms=i * 33.0, **{joint: value}))
        if event is not None:
            events.append(event)
    return events


def test_squat_counts_one_rep(catalog):
    detector = RepDetector(catalog.get("squats"))
    events = run(detector, [170, 150, 120, 140, 170])
    assert detector.rep_count == 1
    assert len(events) == 1
    assert events[0].rep_count == 1
    assert events[0].timestamp_ms == 4 * 33.0
    assert detector.phase is RepPhase.RETURN


def test_phase_transitions(catalog):
    detector = RepDetector(catalog.get("squats"))
    run(detector, [170])
    assert detector.phase is RepPhase.START
    run(detector, [120])
    assert detector.phase is RepPhase.PEAK
    run(detector, [150])
    assert detector.phase is RepPhase.PEAK


def test_no_double_count_while_extended(catalog):
    detector = RepDetector(catalog.get("squats"))
    run(detector, [170, 120, 170, 172, 175, 170, 168])
    assert detector.rep_count == 1


def test_multiple_reps(catalog):
    detector = RepDetector(catalog.get("squats"))
    run(detector, [170, 120, 170, 110, 172, 125, 166])
    assert detector.rep_count == 3


def test_same_sequence_same_result(catalog):
    sequence = [175, 140, 128, 100, 131, 160, 166, 170, 120, 170]
    first = RepDetector(catalog.get("squats"))
    second = RepDetector(catalog.get("squats"))
    assert [e.rep_count for e in run(first, sequence)] == [e.rep_count for e in run(second, sequence)]
    assert first.rep_count == second.rep_count == 2


def test_increasing_direction(catalog):
    detector = RepDetector(catalog.get("shoulder-raises"))
    run(detector, [10, 60, 110, 90, 30], joint="shoulder")
    assert detector.rep_count == 1


def test_missing_primary_angle_is_ignored(catalog):
    detector = RepDetector(catalog.get("squats"))
    assert detector.update(angle_set(hip=90)) is None
    assert detector.phase is RepPhase.START
    assert detector.last_angle is None


def test_no_exercise_never_counts():
    detector = RepDetector()
    assert run(detector, [170, 100, 170]) == []
    assert detector.rep_count == 0


def test_reset_clears_state(catalog):
    detector = RepDetector(catalog.get("squats"))
    run(detector, [170, 120, 170])
    detector.reset(catalog.get("knee-bends"))
    assert detector.rep_count == 0
    assert detector.phase is RepPhase.START
    assert detector.config.exercise_id == "knee-bends"


def test_hovering_above_peak_never_counts(catalog):
    detector = RepDetector(catalog.get("squats"))
    assert run(detector, [170, 135, 131, 133, 131, 170, 132, 168]) == []
    assert detector.phase is RepPhase.START
