"""Pydantic models for the HTTP/WS API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class SessionStateSchema(BaseModel):
    """Published session state (camelCase, as stored)."""

    phase: str
    currentAction: int
    sessionId: str
    updatedAt: int | None = None


class GateSchema(BaseModel):
    """Whether the viewer form is open, and what to tell the viewer."""

    enabled: bool
    message: str


class VoteRequest(BaseModel):
    """Viewer submission.

    `confidence` is validated by the intake (range message), not by pydantic,
    so any JSON scalar is accepted here.
    """

    viewerId: str = Field(min_length=1)
    label: str = ""
    confidence: Any = None


class VoteResponse(BaseModel):
    id: str
    action: int
    label: str
    confidence: float
    message: str = "Thank you. Your annotation has been recorded."


class LabelStatSchema(BaseModel):
    label: str
    avg: float
    count: int


class LabelsSchema(BaseModel):
    """Ranked audience labels keyed by action number."""

    actions: dict[int, list[LabelStatSchema]]
    primary: dict[int, str]


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    session_id: str
    segment_duration_ms: int = Field(gt=0)
    num_actions: int = Field(default=4, ge=1)
    smoothing_threshold: float = Field(default=0.2, ge=0.0, le=1.0)
    smoothing_blend: float = Field(default=0.4, gt=0.0, le=1.0)
    video_source: str = "webcam"
    video_path: str | None = None
    camera_index: int = Field(default=0, ge=0)
    model_name: str = "yolo11n-pose.pt"
    pose_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    canvas_width: int = Field(default=1280, gt=0)
    canvas_height: int = Field(default=720, gt=0)
    target_fps: float = Field(default=30.0, gt=0)
    jpeg_quality: int = Field(default=70, ge=10, le=100)
    speech_backend: str = "auto"
    speech_command: str = "espeak"
    speech_voice: str | None = "en-gb"

    @field_validator("video_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"none", "webcam", "file"}:
            raise ValueError("video_source must be none|webcam|file")
        return v

    @field_validator("speech_backend")
    @classmethod
    def _validate_speech_backend(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in {"auto", "command", "none"}:
            raise ValueError("speech_backend must be auto|command|none")
        return v2
