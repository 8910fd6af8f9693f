from __future__ import annotations

import asyncio

import cv2
import numpy as np
import pytest

from invisible_body.api.services.engine import PerformanceEngine
from invisible_body.core.config.settings import PerformanceSettings
from invisible_body.core.store.base import MemoryStore
from invisible_body.core.types import PART_NAMES, Keypoint, Phase, Pose


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingSpeaker:
    def __init__(self):
        self.spoken = []

    def speak(self, text, on_complete=None):
        self.spoken.append(text)
        if on_complete is not None:
            on_complete()


class StaticSource:
    def __init__(self, frame):
        self.frame = frame
        self.closed = False

    def read(self):
        return self.frame

    def close(self):
        self.closed = True


class StaticEstimator:
    def __init__(self, score: float = 0.9):
        self.score = score
        self.calls = []

    def estimate(self, frame, scale=(1.0, 1.0)):
        self.calls.append(scale)
        kps = [Keypoint(part=name, position=(100.0, 100.0), score=self.score) for name in PART_NAMES]
        return [Pose(keypoints=kps, score=self.score)]


def _settings(**kwargs) -> PerformanceSettings:
    base = dict(
        session_id="s1",
        video_source="none",
        speech_backend="none",
        canvas_width=64,
        canvas_height=48,
    )
    base.update(kwargs)
    return PerformanceSettings(**base)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


def test_tick_publishes_waiting_and_renders_frame(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    state = engine.tick()
    assert state.phase is Phase.WAITING
    assert store.get("sessions/s1/state")["phase"] == "waiting"

    frame = engine.latest_frame()
    assert frame is not None
    img = cv2.imdecode(np.frombuffer(frame, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert img.shape == (48, 64, 3)


def test_repeated_ticks_write_once(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    for _ in range(5):
        engine.tick()
    assert engine.publisher.writes == 1


def test_begin_performance_runs_through_timeline(clock, store):
    speaker = RecordingSpeaker()
    engine = PerformanceEngine(_settings(segment_duration_ms=1000, num_actions=2), store=store, speaker=speaker, clock=clock)
    engine.tick()

    state = engine.begin_performance()
    assert (state.phase, state.current_action) == (Phase.TRAINING, 1)
    assert store.get("sessions/s1/state")["currentAction"] == 1

    clock.now = 1500
    assert engine.tick().current_action == 2
    clock.now = 2000
    assert engine.tick().phase is Phase.TRANSITION
    clock.now = 2001
    assert engine.tick().phase is Phase.INFERENCE
    clock.now = 4001
    assert engine.tick().phase is Phase.DONE

    assert speaker.spoken[:2] == ["Action 1", "Action 2"]
    assert store.get("sessions/s1/state")["phase"] == "done"


def test_votes_reach_aggregator_and_status(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.aggregator.attach(store, "s1")
    store.push("sessions/s1/votes/action_1", {"label": "wave", "confidence": 40})
    store.push("sessions/s1/votes/action_1", {"label": "wave", "confidence": 60})

    engine.begin_performance()
    status = engine.status()
    assert status["phase"] == "training"
    assert status["currentAction"] == 1
    assert status["secondsRemaining"] == pytest.approx(30.0)
    assert status["labels"] == {"1": [{"label": "wave", "avg": 50.0, "count": 2}]}
    engine.aggregator.detach()


def test_pose_is_smoothed_from_source(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.source = StaticSource(np.zeros((24, 32, 3), dtype=np.uint8))
    engine.estimator = StaticEstimator()
    engine.tick()
    assert engine.estimator.calls == [(2.0, 2.0)]
    assert engine.smoother.pose is not None
    assert engine.smoother.pose.find("nose").position == (100.0, 100.0)


def test_pose_failure_does_not_stop_tick(clock, store):
    class Broken(StaticEstimator):
        def estimate(self, frame, scale=(1.0, 1.0)):
            raise RuntimeError("model crashed")

    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.source = StaticSource(np.zeros((24, 32, 3), dtype=np.uint8))
    engine.estimator = Broken()
    assert engine.tick().phase is Phase.WAITING
    assert engine.last_error == "Pose estimation failed"


def test_engine_reports_source_error(store):
    settings = _settings(video_source="file", video_path="/nonexistent/video.mp4")
    engine = PerformanceEngine(settings, store=store, speaker=RecordingSpeaker())
    engine.start()
    try:
        assert engine.last_error == "Failed to initialize pose input"
        assert engine.source is None
    finally:
        engine.stop()


def test_mjpeg_generator_yields_frame(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.tick()

    async def _first():
        gen = engine.mjpeg_generator()
        chunk = await gen.__anext__()
        await gen.aclose()
        return chunk

    chunk = asyncio.run(_first())
    assert chunk.startswith(b"--frame\r\nContent-Type: image/jpeg")


def test_state_stream_yields_current_status(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.begin_performance()

    async def _first():
        gen = engine.state_stream()
        payload = await gen.__anext__()
        await gen.aclose()
        return payload

    payload = asyncio.run(_first())
    assert payload["phase"] == "training"
    assert payload["sessionId"] == "s1"


def test_begin_performance_reads_clock_once(store):
    class CountingClock(FakeClock):
        def __init__(self):
            super().__init__(5000.0)
            self.calls = 0

        def __call__(self):
            self.calls += 1
            self.now += 1000.0
            return self.now

    clock = CountingClock()
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.begin_performance()
    assert clock.calls == 1
    assert engine.controller.training_started_at == 6000.0
    assert engine.status()["secondsRemaining"] == pytest.approx(30.0)


def test_state_stream_pushes_label_changes_within_a_segment(clock, store):
    engine = PerformanceEngine(_settings(), store=store, speaker=RecordingSpeaker(), clock=clock)
    engine.aggregator.attach(store, "s1")
    engine.begin_performance()

    async def _two_payloads():
        gen = engine.state_stream()
        first = await gen.__anext__()
        store.push("sessions/s1/votes/action_1", {"label": "wave", "confidence": 70})
        second = await gen.__anext__()
        await gen.aclose()
        return first, second

    first, second = asyncio.run(_two_payloads())
    engine.aggregator.detach()
    assert (first["phase"], first["currentAction"]) == (second["phase"], second["currentAction"])
    assert first["labels"] == {}
    assert second["labels"] == {"1": [{"label": "wave", "avg": 70.0, "count": 1}]}
