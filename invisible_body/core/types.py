"""Shared type definitions used across the performance core.

This module centralizes the small, stable types (keypoints, poses, session
state, votes and label statistics) so the filter, controller, aggregator and
API layers can stay strongly typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

Point = tuple[float, float]

# PoseNet landmark names, in model output order.
PART_NAMES: tuple[str, ...] = (
    "nose",
    "leftEye",
    "rightEye",
    "leftEar",
    "rightEar",
    "leftShoulder",
    "rightShoulder",
    "leftElbow",
    "rightElbow",
    "leftWrist",
    "rightWrist",
    "leftHip",
    "rightHip",
    "leftKnee",
    "rightKnee",
    "leftAnkle",
    "rightAnkle",
)


class Phase(str, Enum):
    """Macro-stage of a performance run."""

    WAITING = "waiting"
    TRAINING = "training"
    TRANSITION = "transition"
    INFERENCE = "inference"
    DONE = "done"


@dataclass
class Keypoint:
    """One body landmark in display coordinates."""

    part: str
    position: Point
    score: float


@dataclass
class Pose:
    """Ordered keypoints for a single detected body."""

    keypoints: list[Keypoint] = field(default_factory=list)
    score: float = 0.0

    def find(self, part: str) -> Keypoint | None:
        """Return the first keypoint labelled `part`, if any."""

        for kp in self.keypoints:
            if kp.part == part:
                return kp
        return None


@dataclass(frozen=True)
class SessionState:
    """Observable controller state shared with viewers."""

    phase: Phase = Phase.WAITING
    current_action: int = 0
    session_id: str = "session-001"

    def to_payload(self) -> dict[str, object]:
        """Return the store/wire representation (camelCase keys)."""

        return {
            "phase": self.phase.value,
            "currentAction": int(self.current_action),
            "sessionId": self.session_id,
        }

    @classmethod
    def from_payload(cls, payload: object, session_id: str) -> SessionState:
        """Build a state from a store snapshot; missing or unknown values mean waiting/0."""

        if not isinstance(payload, dict):
            return cls(session_id=session_id)
        try:
            phase = Phase(payload.get("phase") or Phase.WAITING.value)
        except ValueError:
            phase = Phase.WAITING
        try:
            action = int(payload.get("currentAction") or 0)
        except (TypeError, ValueError):
            action = 0
        return cls(phase=phase, current_action=action, session_id=session_id)


@dataclass(frozen=True)
class Vote:
    """A single viewer submission for one action."""

    viewer_id: str
    action: int
    label: str
    confidence: float
    created_at: int
    phase: Phase = Phase.TRAINING

    def to_payload(self) -> dict[str, object]:
        return {
            "viewerId": self.viewer_id,
            "phase": self.phase.value,
            "action": self.action,
            "label": self.label,
            "confidence": self.confidence,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class LabelStat:
    """Aggregate for one distinct label within an action."""

    label: str
    avg: float
    count: int


ActionLabelStats = dict[int, list[LabelStat]]
