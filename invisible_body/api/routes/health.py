"""Liveness endpoint for the projection host and the viewer page proxy."""

from fastapi import APIRouter

from invisible_body.api.services.state import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    """Report that the API is up and which session it serves.

    Does not start the performance engine.
    """

    return {"status": "ok", "sessionId": get_settings().session_id}
