from __future__ import annotations

from typing import Any


# Runtime presets applied on top of the loaded settings.
#
# Notes:
# - segment_duration_ms is per action; a part lasts num_actions segments
# - "rehearsal" keeps the full flow but runs through it in a couple of minutes
# - "silent" is for venues where announcements come from a separate PA


PRESETS: dict[str, dict[str, Any]] = {
    # Show timing.
    "performance": {
        "segment_duration_ms": 30000,
        "num_actions": 4,
        "speech_backend": "auto",
        "target_fps": 30.0,
    },
    # Quick run-through for technical checks.
    "rehearsal": {
        "segment_duration_ms": 5000,
        "num_actions": 4,
        "speech_backend": "auto",
        "target_fps": 15.0,
    },
    "silent": {
        "speech_backend": "none",
    },
}


PRESET_LABELS: dict[str, str] = {
    "performance": "Performance",
    "rehearsal": "Rehearsal",
    "silent": "Silent",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
