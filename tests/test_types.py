from invisible_body.core.types import PART_NAMES, Keypoint, Phase, Pose, SessionState


def test_state_payload_uses_camel_case():
    assert SessionState(Phase.INFERENCE, 3, "s1").to_payload() == {
        "phase": "inference",
        "currentAction": 3,
        "sessionId": "s1",
    }


def test_state_from_payload_falls_back_to_waiting():
    assert SessionState.from_payload(None, "s1") == SessionState(Phase.WAITING, 0, "s1")
    assert SessionState.from_payload({"phase": "dancing", "currentAction": "x"}, "s1") == SessionState(
        Phase.WAITING, 0, "s1"
    )
    assert SessionState.from_payload({"phase": "training", "currentAction": "2"}, "s1") == SessionState(
        Phase.TRAINING, 2, "s1"
    )


def test_pose_find():
    pose = Pose(keypoints=[Keypoint(part="nose", position=(1.0, 2.0), score=0.5)])
    assert pose.find("nose").position == (1.0, 2.0)
    assert pose.find("leftEye") is None
    assert len(PART_NAMES) == 17
