from __future__ import annotations

import numpy as np

from invisible_body.core.overlay.draw import (
    ACTION_COLORS,
    NEUTRAL_COLOR,
    action_color,
    draw_label_overlay,
    draw_skeleton,
    hud_lines,
    label_banner_text,
    render_frame,
)
from invisible_body.core.types import PART_NAMES, Keypoint, LabelStat, Phase, Pose, SessionState


def _pose(score: float) -> Pose:
    kps = [Keypoint(part=name, position=(10.0 + i * 3, 10.0 + i * 2), score=score) for i, name in enumerate(PART_NAMES)]
    return Pose(keypoints=kps, score=score)


def test_action_color():
    assert action_color(1) == ACTION_COLORS[1]
    assert action_color(0) == NEUTRAL_COLOR
    assert action_color(9) == NEUTRAL_COLOR


def test_hud_lines_per_phase():
    waiting = hud_lines(SessionState(Phase.WAITING, 0, "s1"), None)
    assert waiting[:3] == ["Session : s1", "Phase   : waiting", "Action  : 0"]
    assert waiting[3] == "Press [S] to begin"

    training = hud_lines(SessionState(Phase.TRAINING, 2, "s1"), 12.34)
    assert training[3:] == ["Part 1 - training", "Next action switch in: 12.3s"]

    transition = hud_lines(SessionState(Phase.TRANSITION, 0, "s1"), None)
    assert transition[3] == "Transition to part 2"

    inference = hud_lines(SessionState(Phase.INFERENCE, 1, "s1"), -1.0)
    assert inference[-1] == "Next action switch in: 0.0s"

    assert hud_lines(SessionState(Phase.DONE, 0, "s1"), None)[-1] == "Performance finished."


def test_label_banner_text():
    assert label_banner_text(LabelStat("wave", 72.6, 3)) == '"wave"     confidence 73%    n=3'


def test_render_frame_shape_and_content():
    state = SessionState(Phase.TRAINING, 1, "s1")
    img = render_frame((80, 60), state, _pose(0.9), 10.0, None)
    assert img.shape == (60, 80, 3)
    assert img.dtype == np.uint8
    assert img.any()


def test_low_score_keypoints_are_not_drawn():
    img = np.zeros((60, 80, 3), dtype=np.uint8)
    draw_skeleton(img, _pose(0.1), (255, 255, 255))
    assert not img.any()

    draw_skeleton(img, _pose(0.9), (255, 255, 255))
    assert img.any()


def test_label_overlay_only_during_inference():
    img = np.zeros((200, 400, 3), dtype=np.uint8)
    stats = [LabelStat("wave", 90, 2), LabelStat("clap", 40, 1)]
    draw_label_overlay(img, SessionState(Phase.TRAINING, 1, "s1"), stats)
    assert not img.any()

    draw_label_overlay(img, SessionState(Phase.INFERENCE, 1, "s1"), stats)
    assert img.any()


def test_label_overlay_placeholder_without_stats():
    img = np.zeros((200, 600, 3), dtype=np.uint8)
    draw_label_overlay(img, SessionState(Phase.INFERENCE, 3, "s1"), None)
    assert img.any()
