from pathlib import Path

import pytest

from invisible_body.core.config import settings as cfg


def test_load_settings_reads_updated_file(tmp_path: Path, monkeypatch):
    conf_path = tmp_path / "config.yml"
    conf_path.write_text("session_id: rehearsal-a\nsegment_duration_ms: 5000\n", encoding="utf-8")
    monkeypatch.setenv("IBP_CONFIG", str(conf_path))

    first = cfg.load_settings()
    assert first.session_id == "rehearsal-a"
    assert first.segment_duration_ms == 5000

    conf_path.write_text("session_id: rehearsal-b\nsmoothing_blend: 0.5\n", encoding="utf-8")

    second = cfg.load_settings()
    assert second.session_id == "rehearsal-b"
    assert second.segment_duration_ms == 30000
    assert second.smoothing_blend == 0.5


def test_env_overrides_yaml(tmp_path: Path, monkeypatch):
    conf_path = tmp_path / "config.yml"
    conf_path.write_text("segment_duration_ms: 1000\nnum_actions: 3\n", encoding="utf-8")
    monkeypatch.setenv("IBP_CONFIG", str(conf_path))
    monkeypatch.setenv("IBP_SEGMENT_DURATION_MS", "2500")

    loaded = cfg.load_settings()
    assert loaded.segment_duration_ms == 2500
    assert loaded.num_actions == 3


def test_missing_file_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("IBP_CONFIG", str(tmp_path / "missing.yml"))
    loaded = cfg.load_settings()
    assert loaded.segment_duration_ms == 30000
    assert loaded.num_actions == 4
    assert loaded.smoothing_threshold == 0.2
    assert loaded.smoothing_blend == 0.4


def test_session_id_validation():
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(session_id="  ")
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(session_id="a/b")
    assert cfg.PerformanceSettings(session_id=" s1 ").session_id == "s1"


def test_timeline_validation():
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(segment_duration_ms=0)
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(num_actions=0)


def test_smoothing_validation():
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(smoothing_threshold=1.5)
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(smoothing_blend=0.0)
    assert cfg.PerformanceSettings(smoothing_blend=1.0).smoothing_blend == 1.0


def test_output_validation():
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(video_source="rtsp")
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(canvas_width=0)
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(target_fps=0)
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(jpeg_quality=5)


def test_speech_backend_is_normalized():
    assert cfg.PerformanceSettings(speech_backend=" NONE ").speech_backend == "none"
    with pytest.raises(ValueError):
        cfg.PerformanceSettings(speech_backend="cloud")


def test_settings_to_dict_round_trips():
    s = cfg.PerformanceSettings(session_id="x", num_actions=2)
    again = cfg.PerformanceSettings(**cfg.settings_to_dict(s))
    assert again.model_dump() == s.model_dump()
