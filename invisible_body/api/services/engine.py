from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import cv2

from invisible_body.core.analytics.votes import VoteAggregator
from invisible_body.core.config.settings import PerformanceSettings
from invisible_body.core.overlay.draw import render_frame
from invisible_body.core.phase.announcer import Announcer
from invisible_body.core.phase.controller import PhaseController
from invisible_body.core.pose.yolo import YoloPoseEstimator
from invisible_body.core.smoothing.pose_filter import PoseSmoother
from invisible_body.core.speech.speakers import Speaker, make_speaker
from invisible_body.core.store.base import MemoryStore, RealtimeStore
from invisible_body.core.sync.publisher import SessionStatePublisher
from invisible_body.core.types import Pose, SessionState
from invisible_body.core.video_sources.base import FileSource, VideoSource, WebcamSource

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class PerformanceEngine:
    """Runs the performer display loop for one session.

    Every tick reads the camera (when configured), smooths the first detected
    pose, advances the phase controller, publishes state changes to the store
    and renders the overlay as JPEG. Votes arrive through a store subscription
    and only feed the aggregator.
    """

    def __init__(
        self,
        settings: PerformanceSettings,
        store: RealtimeStore | None = None,
        speaker: Speaker | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.settings = settings
        self.session_id = settings.session_id
        self.store = store or MemoryStore()
        self.clock = clock or monotonic_ms
        self.speaker = speaker or make_speaker(
            settings.speech_backend,
            settings.speech_command,
            settings.speech_voice,
        )
        self.aggregator = VoteAggregator()
        self.controller = PhaseController(
            self.session_id,
            Announcer(self.speaker, self.aggregator.stats_for),
            segment_duration_ms=settings.segment_duration_ms,
            num_actions=settings.num_actions,
        )
        self.smoother = PoseSmoother(settings.smoothing_threshold, settings.smoothing_blend)
        self.publisher = SessionStatePublisher(self.store, self.session_id)

        self.source: VideoSource | None = None
        self.estimator: Any | None = None
        self.running = False
        self._thread: threading.Thread | None = None
        self._lock = threading.RLock()
        self._latest_frame: bytes | None = None
        self._latest_state: SessionState = self.controller.snapshot()
        self._latest_remaining: float | None = None
        self._version = 0
        self.last_error: str | None = None

    def _make_source(self) -> VideoSource | None:
        """Instantiate the configured `VideoSource` (`None` when disabled)."""

        if self.settings.video_source == "none":
            return None
        if self.settings.video_source == "file":
            video_path = Path(self.settings.video_path or "")
            if not self.settings.video_path or not video_path.exists():
                raise RuntimeError(f"Video path not found: {video_path}")
            return FileSource(str(video_path))
        return WebcamSource(
            self.settings.camera_index,
            self.settings.canvas_width,
            self.settings.canvas_height,
        )

    def _make_estimator(self) -> YoloPoseEstimator:
        return YoloPoseEstimator(self.settings.model_name, conf=self.settings.pose_confidence)

    def start(self) -> None:
        """Subscribe to votes, open the pose input and start the loop thread.

        Safe to call multiple times. Pose input failures are logged and the
        loop runs without a skeleton.
        """

        if self.running:
            return
        self.aggregator.attach(self.store, self.session_id)
        try:
            self.source = self._make_source()
            if self.source is not None:
                self.estimator = self._make_estimator()
        except Exception:
            self.last_error = "Failed to initialize pose input"
            logger.exception(self.last_error)
            if self.source is not None:
                self.source.close()
            self.source = None
            self.estimator = None
        self.running = True
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the loop thread, close the pose input and drop the vote subscription."""

        self.running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
        if self.source:
            self.source.close()
            self.source = None
        self.aggregator.detach()
        close = getattr(self.speaker, "close", None)
        if callable(close):
            close()

    def begin_performance(self) -> SessionState:
        """Manual start trigger; restarts the sequence from training."""

        with self._lock:
            now = self.clock()
            self.controller.start(now)
            state = self.controller.update(now)
            self.publisher.publish(state)
            self._set_latest(state, self.controller.seconds_remaining(now))
        return state

    def _read_pose(self) -> Pose | None:
        if self.source is None or self.estimator is None:
            return None
        frame = self.source.read()
        if frame is None:
            return None
        h, w = frame.shape[:2]
        scale = (self.settings.canvas_width / float(w or 1), self.settings.canvas_height / float(h or 1))
        poses = self.estimator.estimate(frame, scale=scale)
        if not poses:
            return None
        return self.smoother.update(poses[0])

    def _set_latest(self, state: SessionState, remaining: float | None) -> None:
        with self._lock:
            if state != self._latest_state:
                self._version += 1
            self._latest_state = state
            self._latest_remaining = remaining

    def tick(self) -> SessionState:
        """Run one frame of the performer loop and return the resulting state."""

        try:
            pose = self._read_pose()
        except Exception:
            self.last_error = "Pose estimation failed"
            logger.exception(self.last_error)
            pose = None

        with self._lock:
            now = self.clock()
            state = self.controller.update(now)
            remaining = self.controller.seconds_remaining(now)
            self.publisher.publish(state)
        self._set_latest(state, remaining)

        stats = self.aggregator.stats_for(state.current_action) if state.current_action > 0 else None
        size = (self.settings.canvas_width, self.settings.canvas_height)
        img = render_frame(size, state, pose, remaining, stats)
        ok, jpg = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), self.settings.jpeg_quality])
        if ok:
            with self._lock:
                self._latest_frame = jpg.tobytes()
        return state

    def _loop(self) -> None:
        logger.debug("Performance loop started")
        interval = 1.0 / float(self.settings.target_fps)
        while self.running:
            start = time.perf_counter()
            try:
                self.tick()
            except Exception:
                self.last_error = "Performance loop iteration failed"
                logger.exception(self.last_error)
            delay = interval - (time.perf_counter() - start)
            if delay > 0:
                time.sleep(delay)

    def latest_frame(self) -> bytes | None:
        """Return the latest rendered JPEG (or `None` if not ready)."""

        with self._lock:
            return self._latest_frame

    def latest_state(self) -> SessionState:
        with self._lock:
            return self._latest_state

    def status(self) -> dict[str, Any]:
        """State payload for operator/viewer streams."""

        with self._lock:
            state = self._latest_state
            remaining = self._latest_remaining
        stats = self.aggregator.stats()
        return {
            **state.to_payload(),
            "secondsRemaining": remaining,
            "labels": {
                str(action): [{"label": s.label, "avg": s.avg, "count": s.count} for s in ranked]
                for action, ranked in sorted(stats.items())
            },
        }

    async def mjpeg_generator(self) -> AsyncGenerator[bytes, None]:
        """Yield MJPEG multipart chunks for HTTP streaming."""

        last_sent = None
        while True:
            frame = self.latest_frame()
            if frame is not None and frame != last_sent:
                yield (b"--frame\r\n" b"Content-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
                last_sent = frame
            await asyncio.sleep(0.02)

    async def state_stream(self) -> AsyncGenerator[dict[str, Any], None]:
        """Yield the status payload whenever the phase, action or label stats change."""

        last_version = None
        while True:
            with self._lock:
                version = (self._version, self.aggregator.revision)
            if version != last_version:
                last_version = version
                yield self.status()
            await asyncio.sleep(0.05)
