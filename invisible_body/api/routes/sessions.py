"""Session endpoints used by the viewer page and the performer console."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from invisible_body.api.schemas.models import (
    GateSchema,
    LabelsSchema,
    LabelStatSchema,
    SessionStateSchema,
    VoteRequest,
    VoteResponse,
)
from invisible_body.api.services.engine import PerformanceEngine
from invisible_body.api.services.state import get_engine, get_store
from invisible_body.core.analytics.votes import aggregate_votes
from invisible_body.core.errors import StoreError, VoteRejected, VoteSubmissionFailed
from invisible_body.core.store.base import RealtimeStore
from invisible_body.core.sync.publisher import state_path
from invisible_body.core.types import SessionState
from invisible_body.core.votes.intake import VoteIntake, viewer_gate

router = APIRouter(prefix="/sessions", tags=["sessions"])

logger = logging.getLogger(__name__)


def _read(store: RealtimeStore, path: str):
    try:
        return store.get(path)
    except StoreError:
        logger.exception("Error reading %s", path)
        raise HTTPException(status_code=503, detail="Could not reach the live session. Please try again.") from None


@router.get("/{session_id}/state", response_model=SessionStateSchema)
def get_state(session_id: str, store: RealtimeStore = Depends(get_store)) -> SessionStateSchema:
    """Return the last published state (waiting/0 before the performance starts)."""

    payload = _read(store, state_path(session_id))
    state = SessionState.from_payload(payload, session_id)
    updated_at = payload.get("updatedAt") if isinstance(payload, dict) else None
    return SessionStateSchema(**state.to_payload(), updatedAt=updated_at)


@router.get("/{session_id}/gate", response_model=GateSchema)
def get_gate(session_id: str, store: RealtimeStore = Depends(get_store)) -> GateSchema:
    """Return whether the viewer form should accept submissions right now."""

    payload = _read(store, state_path(session_id))
    state = None if payload is None else SessionState.from_payload(payload, session_id)
    enabled, message = viewer_gate(state)
    return GateSchema(enabled=enabled, message=message)


@router.post("/{session_id}/start", response_model=SessionStateSchema)
def start_performance(session_id: str, engine: PerformanceEngine = Depends(get_engine)) -> SessionStateSchema:
    """Manual "begin performance" trigger for the session run by this host."""

    if session_id != engine.session_id:
        raise HTTPException(status_code=404, detail="Unknown session")
    state = engine.begin_performance()
    return SessionStateSchema(**state.to_payload())


@router.post("/{session_id}/votes", response_model=VoteResponse, status_code=201)
def submit_vote(session_id: str, body: VoteRequest, store: RealtimeStore = Depends(get_store)) -> VoteResponse:
    """Validate and record one viewer label for the active action."""

    intake = VoteIntake(store, session_id)
    try:
        submitted = intake.submit(body.viewerId, body.label, body.confidence)
    except VoteRejected as exc:
        raise HTTPException(status_code=422, detail=exc.reason) from None
    except VoteSubmissionFailed as exc:
        raise HTTPException(status_code=503, detail=exc.reason) from None
    vote = submitted.vote
    return VoteResponse(id=submitted.key, action=vote.action, label=vote.label, confidence=vote.confidence)


@router.get("/{session_id}/labels", response_model=LabelsSchema)
def get_labels(session_id: str, store: RealtimeStore = Depends(get_store)) -> LabelsSchema:
    """Return ranked audience labels per action."""

    stats = aggregate_votes(_read(store, f"sessions/{session_id}/votes"))
    return LabelsSchema(
        actions={
            action: [LabelStatSchema(label=s.label, avg=s.avg, count=s.count) for s in ranked]
            for action, ranked in sorted(stats.items())
        },
        primary={action: ranked[0].label for action, ranked in sorted(stats.items())},
    )
