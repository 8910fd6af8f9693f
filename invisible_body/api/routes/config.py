"""Operator configuration: timeline, smoothing, pose input and speech settings.

Every change restarts the performance engine, which puts the session back in
waiting. Votes already in the store are kept.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from invisible_body.api.schemas.models import ConfigSchema
from invisible_body.api.services.state import get_settings, reload_settings
from invisible_body.core.config.presets import list_presets, preset_patch
from invisible_body.core.config.settings import PerformanceSettings, settings_to_dict

router = APIRouter(prefix="/config", tags=["config"])


def _as_schema(settings: PerformanceSettings) -> ConfigSchema:
    return ConfigSchema(**settings_to_dict(settings))


@router.get("", response_model=ConfigSchema)
def get_config() -> ConfigSchema:
    return _as_schema(get_settings())


@router.post("", response_model=ConfigSchema)
def update_config(cfg: ConfigSchema) -> ConfigSchema:
    """Replace the in-memory settings.

    Changes last until the process exits; persist them in the YAML file or in
    `IBP_*` environment variables.
    """

    return _as_schema(reload_settings(cfg.model_dump()))


@router.get("/presets")
def get_presets() -> dict[str, list[dict[str, object]]]:
    return {"presets": list_presets()}


@router.post("/presets/{preset_id}", response_model=ConfigSchema)
def apply_preset(preset_id: str) -> ConfigSchema:
    """Merge a named preset (e.g. `rehearsal`) over the loaded settings."""

    try:
        patch = preset_patch(preset_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown preset: {preset_id}") from None
    return _as_schema(reload_settings(patch))
