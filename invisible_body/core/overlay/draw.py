"""Projected overlay rendering (OpenCV).

Draws the smoothed skeleton in the colour of the active action, the operator
HUD in the top-left corner and, during the inference part, the audience labels
for the current action. Text is kept ASCII because OpenCV's Hershey fonts do
not cover typographic quotes.
"""

from __future__ import annotations

import cv2
import numpy as np

from invisible_body.core.types import Keypoint, LabelStat, Phase, Pose, SessionState

# BGR
ACTION_COLORS: dict[int, tuple[int, int, int]] = {
    1: (253, 197, 147),  # soft blue
    2: (165, 165, 252),  # soft coral red
    3: (100, 242, 190),  # spring green
    4: (253, 181, 196),  # lavender
}
NEUTRAL_COLOR = (200, 200, 200)
HUD_COLOR = (180, 180, 180)
HINT_COLOR = (130, 130, 130)
TEXT_COLOR = (255, 255, 255)

KEYPOINT_MIN_SCORE = 0.3
HEAD_RADIUS = 18
FONT = cv2.FONT_HERSHEY_SIMPLEX

LIMBS: tuple[tuple[str, str], ...] = (
    ("leftShoulder", "leftElbow"),
    ("leftElbow", "leftWrist"),
    ("rightShoulder", "rightElbow"),
    ("rightElbow", "rightWrist"),
    ("leftHip", "leftKnee"),
    ("leftKnee", "leftAnkle"),
    ("rightHip", "rightKnee"),
    ("rightKnee", "rightAnkle"),
)
JOINTS: tuple[str, ...] = (
    "leftShoulder",
    "rightShoulder",
    "leftHip",
    "rightHip",
    "leftElbow",
    "rightElbow",
    "leftWrist",
    "rightWrist",
    "leftKnee",
    "rightKnee",
    "leftAnkle",
    "rightAnkle",
)


def action_color(action: int) -> tuple[int, int, int]:
    return ACTION_COLORS.get(int(action), NEUTRAL_COLOR)


def _visible(kp: Keypoint | None) -> bool:
    return kp is not None and kp.score > KEYPOINT_MIN_SCORE


def _pt(kp: Keypoint) -> tuple[int, int]:
    return int(round(kp.position[0])), int(round(kp.position[1]))


def hud_lines(state: SessionState, seconds_remaining: float | None) -> list[str]:
    """Operator HUD text for the current state."""

    lines = [
        f"Session : {state.session_id}",
        f"Phase   : {state.phase.value}",
        f"Action  : {state.current_action}",
    ]
    remaining = f"Next action switch in: {max(0.0, seconds_remaining or 0.0):.1f}s"
    if state.phase is Phase.WAITING:
        lines.append("Press [S] to begin")
    elif state.phase is Phase.TRAINING:
        lines += ["Part 1 - training", remaining]
    elif state.phase is Phase.TRANSITION:
        lines += ["Transition to part 2", "Listening to the system message..."]
    elif state.phase is Phase.INFERENCE:
        lines += ["Part 2 - inference", remaining]
    else:
        lines.append("Performance finished.")
    return lines


def label_banner_text(stat: LabelStat) -> str:
    return f'"{stat.label}"     confidence {stat.avg:.0f}%    n={stat.count}'


def draw_skeleton(img: np.ndarray, pose: Pose, color: tuple[int, int, int]) -> None:
    """Draw head, torso, limbs and joints for keypoints above the visibility score."""

    kp = pose.find
    nose, l_eye, r_eye = kp("nose"), kp("leftEye"), kp("rightEye")

    head: tuple[int, int] | None = None
    if _visible(nose):
        head = _pt(nose)
    elif _visible(l_eye) and _visible(r_eye):
        (lx, ly), (rx, ry) = _pt(l_eye), _pt(r_eye)
        head = ((lx + rx) // 2, (ly + ry) // 2)

    if head is not None:
        cv2.circle(img, head, HEAD_RADIUS, color, 4, cv2.LINE_AA)
        for name, r in (("leftEye", 2), ("rightEye", 2), ("leftEar", 2), ("rightEar", 2)):
            p = kp(name)
            if _visible(p):
                cv2.circle(img, _pt(p), r, color, -1, cv2.LINE_AA)

    torso = [kp("leftShoulder"), kp("rightShoulder"), kp("rightHip"), kp("leftHip")]
    if all(_visible(p) for p in torso):
        ls, rs, rh, lh = (_pt(p) for p in torso)  # type: ignore[arg-type]
        cv2.polylines(img, [np.array([ls, rs, rh, lh], dtype=np.int32)], True, color, 4, cv2.LINE_AA)
        mid_shoulder = ((ls[0] + rs[0]) // 2, (ls[1] + rs[1]) // 2)
        mid_hip = ((lh[0] + rh[0]) // 2, (lh[1] + rh[1]) // 2)
        cv2.line(img, mid_shoulder, mid_hip, color, 4, cv2.LINE_AA)
        if head is not None:
            cv2.line(img, (head[0], head[1] + HEAD_RADIUS), mid_shoulder, color, 4, cv2.LINE_AA)

    for a, b in LIMBS:
        pa, pb = kp(a), kp(b)
        if _visible(pa) and _visible(pb):
            cv2.line(img, _pt(pa), _pt(pb), color, 4, cv2.LINE_AA)  # type: ignore[arg-type]

    for name in JOINTS:
        p = kp(name)
        if _visible(p):
            cv2.circle(img, _pt(p), 5, color, -1, cv2.LINE_AA)  # type: ignore[arg-type]


def draw_hud(img: np.ndarray, lines: list[str]) -> None:
    for i, line in enumerate(lines):
        color = HUD_COLOR if i < 3 else HINT_COLOR
        y = 30 + i * 20 + (15 if i >= 3 else 0)
        cv2.putText(img, line, (20, y), FONT, 0.45, color, 1, cv2.LINE_AA)


def _blend_rect(img: np.ndarray, x1: int, y1: int, x2: int, y2: int, alpha: float) -> None:
    """Darken a rectangle in place (alpha = opacity of the black panel)."""

    h, w = img.shape[:2]
    x1, y1 = max(0, x1), max(0, y1)
    x2, y2 = min(w, x2), min(h, y2)
    roi = img[y1:y2, x1:x2]
    if roi.size == 0:
        return
    roi[:] = (roi.astype(np.float32) * (1.0 - alpha)).astype(img.dtype)


def draw_label_overlay(img: np.ndarray, state: SessionState, stats: list[LabelStat] | None) -> None:
    """Audience labels for the current action (inference part only)."""

    if state.phase is not Phase.INFERENCE or state.current_action <= 0:
        return
    h, w = img.shape[:2]

    if stats:
        text = label_banner_text(stats[0])
        (tw, th), _ = cv2.getTextSize(text, FONT, 0.8, 2)
        x1 = w // 2 - tw // 2 - 16
        _blend_rect(img, x1, h - 100, x1 + tw + 32, h - 54, 0.75)
        cv2.putText(img, text, (w // 2 - tw // 2, h - 77 + th // 2), FONT, 0.8, TEXT_COLOR, 2, cv2.LINE_AA)
    else:
        text = f"(no audience labels yet for action {state.current_action})"
        (tw, _), _ = cv2.getTextSize(text, FONT, 0.6, 1)
        cv2.putText(img, text, (w // 2 - tw // 2, h - 70), FONT, 0.6, HUD_COLOR, 1, cv2.LINE_AA)

    others = (stats or [])[1:]
    if not others:
        return

    panel_x, panel_w = w - 320, 300
    _blend_rect(img, panel_x - 10, 50, panel_x - 10 + panel_w, h - 70, 0.55)
    cv2.putText(
        img,
        f"Other audience labels for action {state.current_action}:",
        (panel_x, 72),
        FONT,
        0.42,
        (220, 220, 220),
        1,
        cv2.LINE_AA,
    )
    y = 90
    for item in others:
        # Brighter cards for more confident labels.
        level = int(np.interp(item.avg, [0, 100], [130, 255]))
        alpha = float(np.interp(item.avg, [0, 100], [0.27, 0.67]))
        _blend_rect(img, panel_x, y, panel_x + panel_w - 20, y + 44, alpha)
        cv2.putText(img, f'"{item.label}"', (panel_x + 10, y + 20), FONT, 0.5, (level, level, level), 1, cv2.LINE_AA)
        meta = f"confidence {item.avg:.0f}%   n={item.count}"
        cv2.putText(img, meta, (panel_x + 10, y + 38), FONT, 0.4, HUD_COLOR, 1, cv2.LINE_AA)
        y += 54
        if y > h - 70:
            break


def render_frame(
    size: tuple[int, int],
    state: SessionState,
    pose: Pose | None,
    seconds_remaining: float | None,
    stats: list[LabelStat] | None,
) -> np.ndarray:
    """Render one overlay frame on a black canvas of `size` = (width, height)."""

    width, height = size
    img = np.zeros((height, width, 3), dtype=np.uint8)
    if pose is not None:
        draw_skeleton(img, pose, action_color(state.current_action))
    draw_hud(img, hud_lines(state, seconds_remaining))
    draw_label_overlay(img, state, stats)
    return img
