"""Performance configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `IBP_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PerformanceSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `IBP_` env overrides."""

    # Shared by the performer display and the viewer page.
    session_id: str = "session-001"

    # Timeline: each part cycles through `num_actions` segments.
    segment_duration_ms: int = 30000
    num_actions: int = 4

    # Pose smoothing: keypoints scoring at or below the threshold keep their last position.
    smoothing_threshold: float = 0.2
    smoothing_blend: float = 0.4

    video_source: str = Field("webcam", description="none|webcam|file")
    video_path: str | None = None
    camera_index: int = 0
    model_name: str = "yolo11n-pose.pt"
    pose_confidence: float = 0.3

    canvas_width: int = 1280
    canvas_height: int = 720
    target_fps: float = 30.0
    jpeg_quality: int = 70

    speech_backend: str = Field("auto", description="auto|command|none")
    speech_command: str = "espeak"
    speech_voice: str | None = "en-gb"

    model_config = SettingsConfigDict(env_prefix="IBP_", validate_assignment=True)

    @field_validator("session_id")
    @classmethod
    def _validate_session_id(cls, v: str) -> str:
        v2 = str(v).strip()
        if not v2 or "/" in v2:
            raise ValueError("session_id must be non-empty and must not contain '/'")
        return v2

    @field_validator("segment_duration_ms")
    @classmethod
    def _validate_segment_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("segment_duration_ms must be > 0")
        return v

    @field_validator("num_actions")
    @classmethod
    def _validate_num_actions(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("num_actions must be >= 1")
        return v

    @field_validator("smoothing_threshold", "pose_confidence")
    @classmethod
    def _validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("value must be in [0, 1]")
        return float(v)

    @field_validator("smoothing_blend")
    @classmethod
    def _validate_blend(cls, v: float) -> float:
        if not 0.0 < float(v) <= 1.0:
            raise ValueError("smoothing_blend must be in (0, 1]")
        return float(v)

    @field_validator("video_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"none", "webcam", "file"}:
            raise ValueError("video_source must be none|webcam|file")
        return v

    @field_validator("canvas_width", "canvas_height")
    @classmethod
    def _validate_canvas(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("canvas size must be > 0")
        return v

    @field_validator("target_fps")
    @classmethod
    def _validate_target_fps(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("target_fps must be > 0")
        return float(v)

    @field_validator("jpeg_quality")
    @classmethod
    def _validate_jpeg_quality(cls, v: int) -> int:
        if not 10 <= v <= 100:
            raise ValueError("jpeg_quality must be in [10, 100]")
        return v

    @field_validator("speech_backend")
    @classmethod
    def _validate_speech_backend(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in {"auto", "command", "none"}:
            raise ValueError("speech_backend must be auto|command|none")
        return v2


def settings_to_dict(settings: PerformanceSettings) -> dict[str, Any]:
    return cast(dict[str, Any], settings.model_dump())


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/performance.config.yml)."""

    return Path(os.getenv("IBP_CONFIG", "config/performance.config.yml"))


def load_settings() -> PerformanceSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = PerformanceSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides}
    return PerformanceSettings(**merged)
