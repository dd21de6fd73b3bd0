import pytest

from rehab_motion.exercise_analysis.joints import (
    AngleKey,
    Joint,
    Side,
    bilateral_pairs,
    pick_active_side,
    resolve_joint_angle,
)

from conftest import angle_set


def test_angle_key_string_form():
    assert str(AngleKey(Joint.KNEE, Side.LEFT)) == "left_knee"
    assert str(AngleKey(Joint.HIP)) == "hip"


def test_rest_angles():
    assert Joint.SHOULDER.rest_angle == 0.0
    assert Joint.KNEE.rest_angle == 180.0


def test_active_side_is_the_one_further_from_rest():
    assert pick_active_side(100.0, 170.0, 180.0) == 100.0
    assert pick_active_side(175.0, 95.0, 180.0) == 95.0


def test_missing_side_counts_as_resting():
    assert pick_active_side(None, 120.0, 180.0) == 120.0
    assert pick_active_side(60.0, None, 0.0) == 60.0
    assert pick_active_side(None, None, 180.0) is None


def test_tie_goes_to_right_side():
    assert pick_active_side(170.0, 190.0, 180.0) == 190.0


def test_direct_angle_wins_over_sides():
    angles = angle_set(knee=140, left_knee=90, right_knee=100)
    assert resolve_joint_angle(angles, Joint.KNEE) == 140.0


def test_shoulder_resolves_against_zero_rest():
    angles = angle_set(left_shoulder=15, right_shoulder=110)
    assert resolve_joint_angle(angles, Joint.SHOULDER) == 110.0


def test_unresolvable_joint_is_none():
    assert resolve_joint_angle(angle_set(left_knee=90), Joint.ELBOW) is None


def test_bilateral_pairs_skip_the_wrist():
    pairs = bilateral_pairs()
    assert [joint for joint, _, _ in pairs] == [Joint.KNEE, Joint.HIP, Joint.ELBOW, Joint.SHOULDER, Joint.ANKLE]
    for _, left, right in pairs:
        assert left.side is Side.LEFT and right.side is Side.RIGHT


def test_as_dict_flattens_keys():
    assert angle_set(left_knee=91.5).as_dict() == {"left_knee": pytest.approx(91.5)}
