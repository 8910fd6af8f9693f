"""Publishes the controller's observable state to the shared store.

The engine calls `publish()` every frame; only changes reach the store.
"""

from __future__ import annotations

import json
import logging

from invisible_body.core.errors import StoreError
from invisible_body.core.store.base import SERVER_TIMESTAMP, RealtimeStore
from invisible_body.core.types import SessionState

logger = logging.getLogger(__name__)


def state_path(session_id: str) -> str:
    return f"sessions/{session_id}/state"


def serialize_state(state: SessionState) -> str:
    """Canonical serialization used for change detection."""

    return json.dumps(state.to_payload(), sort_keys=True, separators=(",", ":"))


class SessionStatePublisher:
    """Writes `sessions/<id>/state` whenever the serialized state changes."""

    def __init__(self, store: RealtimeStore, session_id: str) -> None:
        self.store = store
        self.session_id = session_id
        self.last_published: str | None = None
        self.writes = 0

    def publish(self, state: SessionState) -> bool:
        """Write `state` if it differs from the last successful write.

        Returns True when a write happened. A failed write leaves the cache
        untouched so the next call retries.
        """

        serialized = serialize_state(state)
        if serialized == self.last_published:
            return False
        payload = {**state.to_payload(), "updatedAt": SERVER_TIMESTAMP}
        try:
            self.store.set(state_path(self.session_id), payload)
        except StoreError:
            logger.exception("Failed to publish session state")
            return False
        self.last_published = serialized
        self.writes += 1
        logger.debug("Published state %s", serialized)
        return True
