"""Viewer vote validation and submission.

A vote is accepted only while the session is in the training part with an
active action. Rejections carry a message meant for the viewer; store failures
are reported separately so the viewer can simply try again.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from invisible_body.core.errors import StoreError, VoteRejected, VoteSubmissionFailed
from invisible_body.core.store.base import RealtimeStore
from invisible_body.core.sync.publisher import state_path
from invisible_body.core.types import Phase, SessionState, Vote

logger = logging.getLogger(__name__)

MSG_OUT_OF_PHASE = "You can only submit during the training phase when an action is active."
MSG_EMPTY_LABEL = "Please describe the action before submitting."
MSG_CONFIDENCE_RANGE = "Confidence must be a number between 0 and 100."

CONFIDENCE_MIN = 0.0
CONFIDENCE_MAX = 100.0


def votes_path(session_id: str, action: int) -> str:
    return f"sessions/{session_id}/votes/action_{int(action)}"


def parse_confidence(value: object) -> float:
    """Parse a viewer confidence; raise `VoteRejected` unless it is within [0, 100]."""

    if isinstance(value, bool) or value is None:
        raise VoteRejected(MSG_CONFIDENCE_RANGE)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise VoteRejected(MSG_CONFIDENCE_RANGE)
    try:
        conf = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        raise VoteRejected(MSG_CONFIDENCE_RANGE) from None
    if not math.isfinite(conf) or not CONFIDENCE_MIN <= conf <= CONFIDENCE_MAX:
        raise VoteRejected(MSG_CONFIDENCE_RANGE)
    return conf


def viewer_gate(state: SessionState | None) -> tuple[bool, str]:
    """Return (form enabled, message) for the viewer page in `state`."""

    if state is None:
        return False, "You can vote once the training phase begins."
    if state.phase is Phase.TRAINING and state.current_action > 0:
        return True, f"You are annotating action {state.current_action} in the training phase."
    if state.phase is Phase.INFERENCE:
        return False, "The system is now replaying your collective labels. New votes are disabled."
    if state.phase is Phase.DONE:
        return False, "The performance has ended. Thank you for participating."
    return False, "Waiting for the next segment to begin…"


@dataclass(frozen=True)
class SubmittedVote:
    key: str
    vote: Vote


class VoteIntake:
    """Validates viewer submissions and appends them to the session's votes."""

    def __init__(
        self,
        store: RealtimeStore,
        session_id: str,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.store = store
        self.session_id = session_id
        self._clock = clock or time.time

    def current_state(self) -> SessionState | None:
        """Latest published state, or `None` if the performance never published one."""

        payload = self.store.get(state_path(self.session_id))
        if payload is None:
            return None
        return SessionState.from_payload(payload, self.session_id)

    def validate(self, state: SessionState | None, label: object, confidence: object) -> tuple[str, float]:
        if state is None or state.phase is not Phase.TRAINING or state.current_action <= 0:
            raise VoteRejected(MSG_OUT_OF_PHASE)
        text = "" if label is None else str(label).strip()
        if not text:
            raise VoteRejected(MSG_EMPTY_LABEL)
        return text, parse_confidence(confidence)

    def submit(
        self,
        viewer_id: str,
        label: object,
        confidence: object,
        state: SessionState | None = None,
    ) -> SubmittedVote:
        """Validate and store one vote.

        Raises:
            VoteRejected: validation failed; nothing was written.
            VoteSubmissionFailed: the store write failed.
        """

        if state is None:
            try:
                state = self.current_state()
            except StoreError:
                logger.exception("Error reading session state")
                raise VoteSubmissionFailed() from None
        text, conf = self.validate(state, label, confidence)
        vote = Vote(
            viewer_id=str(viewer_id),
            action=state.current_action,
            label=text,
            confidence=conf,
            created_at=int(self._clock() * 1000),
            phase=state.phase,
        )
        try:
            key = self.store.push(votes_path(self.session_id, vote.action), vote.to_payload())
        except StoreError:
            logger.exception("Error submitting vote")
            raise VoteSubmissionFailed() from None
        logger.info("Recorded vote for action %s from %s", vote.action, vote.viewer_id)
        return SubmittedVote(key=key, vote=vote)
