"""Timed phase state machine for one performance session.

The controller is polled with a monotonic clock (milliseconds) once per frame.
It owns the session's phase and active action, and fires announcements when
the action changes:

    waiting --start--> training --4 segments--> transition
        --intro spoken--> inference --4 segments--> done

`start()` is accepted in every phase and restarts from training. Each segment
lasts `segment_duration_ms`; the active action is `segment index + 1`.

Announce-once is tracked with values instead of flags: `last_announced` is the
highest action index already spoken in the current part, and the intro guard
compares the current run id against the run whose intro was played/finished.
"""

from __future__ import annotations

import logging

from invisible_body.core.phase.announcer import Announcer
from invisible_body.core.types import Phase, SessionState

logger = logging.getLogger(__name__)

SEGMENT_DURATION_MS = 30000
NUM_ACTIONS = 4


class PhaseController:
    """Derives phase and action from elapsed time and triggers announcements."""

    def __init__(
        self,
        session_id: str,
        announcer: Announcer,
        segment_duration_ms: float = SEGMENT_DURATION_MS,
        num_actions: int = NUM_ACTIONS,
    ) -> None:
        self.session_id = session_id
        self.announcer = announcer
        self.segment_duration_ms = float(segment_duration_ms)
        self.num_actions = int(num_actions)

        self.phase = Phase.WAITING
        self.current_action = 0
        self.training_started_at = 0.0
        self.inference_started_at = 0.0
        self.last_announced = 0
        # Runs are numbered from 1; 0 means "never".
        self.run_id = 0
        self.intro_played_run = 0
        self.intro_finished_run = 0

    def start(self, now: float) -> SessionState:
        """Manual trigger: (re)start the performance from the training part."""

        self.run_id += 1
        self.phase = Phase.TRAINING
        self.current_action = 0
        self.training_started_at = float(now)
        self.last_announced = 0
        logger.info("Performance started (training part), run %s", self.run_id)
        return self.snapshot()

    def segment_index(self, started_at: float, now: float) -> int:
        elapsed = max(0.0, float(now) - started_at)
        return int(elapsed // self.segment_duration_ms)

    def update(self, now: float) -> SessionState:
        """Advance the state machine to `now` and return the observable state."""

        if self.phase is Phase.TRAINING:
            self._tick_training(now)
        if self.phase is Phase.TRANSITION:
            self._tick_transition(now)
        if self.phase is Phase.INFERENCE:
            self._tick_inference(now)
        if self.phase in (Phase.WAITING, Phase.DONE):
            self.current_action = 0
        return self.snapshot()

    def _tick_training(self, now: float) -> None:
        segment = self.segment_index(self.training_started_at, now)
        if segment >= self.num_actions:
            self.phase = Phase.TRANSITION
            self.current_action = 0
            logger.info("Training part finished, entering transition")
            return
        self._advance(segment + 1, self.announcer.announce_training)

    def _tick_transition(self, now: float) -> None:
        self.current_action = 0
        if self.intro_finished_run == self.run_id:
            self.phase = Phase.INFERENCE
            self.inference_started_at = float(now)
            self.last_announced = 0
            logger.info("Intro finished, entering inference part")
            return
        if self.intro_played_run != self.run_id:
            run = self.run_id
            self.intro_played_run = run
            self.announcer.play_intro(lambda: self.on_intro_finished(run))

    def _tick_inference(self, now: float) -> None:
        segment = self.segment_index(self.inference_started_at, now)
        if segment >= self.num_actions:
            self.phase = Phase.DONE
            self.current_action = 0
            logger.info("Performance finished")
            return
        self._advance(segment + 1, self.announcer.announce_inference)

    def _advance(self, action: int, announce) -> None:
        if action == self.current_action:
            return
        self.current_action = action
        if action > self.last_announced:
            self.last_announced = action
            announce(action)

    def on_intro_finished(self, run: int) -> None:
        """Speech completion for the intro of `run`; stale runs are ignored."""

        if run == self.run_id:
            self.intro_finished_run = run

    def seconds_remaining(self, now: float) -> float | None:
        """Seconds until the next action switch, or `None` outside timed parts."""

        if self.phase is Phase.TRAINING:
            started = self.training_started_at
        elif self.phase is Phase.INFERENCE:
            started = self.inference_started_at
        else:
            return None
        elapsed = max(0.0, float(now) - started)
        segment = self.segment_index(started, now)
        remaining = max(0.0, self.segment_duration_ms - (elapsed - segment * self.segment_duration_ms))
        return remaining / 1000.0

    def snapshot(self) -> SessionState:
        return SessionState(phase=self.phase, current_action=self.current_action, session_id=self.session_id)
