from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import invisible_body.api.routes.config as config_routes
from invisible_body.api.main import app
from invisible_body.core.config.settings import PerformanceSettings


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch):
    current = {"settings": PerformanceSettings(session_id="s1", video_source="none")}

    def _reload(data=None):
        merged = {**current["settings"].model_dump(), **(data or {})}
        current["settings"] = PerformanceSettings(**merged)
        return current["settings"]

    monkeypatch.setattr(config_routes, "get_settings", lambda: current["settings"])
    monkeypatch.setattr(config_routes, "reload_settings", _reload)
    return TestClient(app)


def test_get_config(client):
    data = client.get("/config").json()
    assert data["session_id"] == "s1"
    assert data["segment_duration_ms"] == 30000
    assert data["smoothing_threshold"] == 0.2


def test_update_config(client):
    payload = client.get("/config").json()
    payload["segment_duration_ms"] = 10000
    res = client.post("/config", json=payload)
    assert res.status_code == 200
    assert res.json()["segment_duration_ms"] == 10000


def test_config_validation(client):
    payload = client.get("/config").json()
    payload["smoothing_blend"] = 1.5  # invalid
    assert client.post("/config", json=payload).status_code == 422

    payload = client.get("/config").json()
    payload["video_source"] = "rtsp"
    assert client.post("/config", json=payload).status_code == 422


def test_presets(client):
    ids = [p["id"] for p in client.get("/config/presets").json()["presets"]]
    assert "rehearsal" in ids

    res = client.post("/config/presets/rehearsal")
    assert res.status_code == 200
    assert res.json()["segment_duration_ms"] == 5000

    assert client.post("/config/presets/unknown").status_code == 404
