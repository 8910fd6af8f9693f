"""Dry-run a whole performance without camera, audio or viewers.

Drives the phase controller with a virtual clock against an in-memory store,
feeds scripted votes during the training part and writes the published-state
timeline plus every utterance as JSON.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from invisible_body.core.analytics.votes import VoteAggregator
from invisible_body.core.errors import VoteRejected
from invisible_body.core.phase.announcer import Announcer
from invisible_body.core.phase.controller import NUM_ACTIONS, SEGMENT_DURATION_MS, PhaseController
from invisible_body.core.store.base import MemoryStore
from invisible_body.core.sync.publisher import SessionStatePublisher, state_path
from invisible_body.core.types import Phase
from invisible_body.core.votes.intake import VoteIntake


class _TranscriptSpeaker:
    """Records utterances with the virtual time they were spoken; completes at once."""

    def __init__(self) -> None:
        self.now = 0.0
        self.utterances: list[dict[str, Any]] = []

    def speak(self, text, on_complete=None):
        self.utterances.append({"t": self.now, "text": text})
        if on_complete is not None:
            on_complete()


def _load_votes(path: str | None) -> dict[int, list[dict[str, Any]]]:
    if not path:
        return {}
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return {int(k): list(v) for k, v in raw.items()}


def run(args) -> dict[str, Any]:
    clock = {"now": 0.0}
    store = MemoryStore(clock=lambda: clock["now"] / 1000.0)
    speaker = _TranscriptSpeaker()
    aggregator = VoteAggregator()
    aggregator.attach(store, args.session)
    controller = PhaseController(
        args.session,
        Announcer(speaker, aggregator.stats_for),
        segment_duration_ms=args.segment_ms,
        num_actions=args.actions,
    )
    publisher = SessionStatePublisher(store, args.session)
    intake = VoteIntake(store, args.session, clock=lambda: clock["now"] / 1000.0)
    scripted = _load_votes(args.votes)

    timeline: list[dict[str, Any]] = []
    store.subscribe(state_path(args.session), lambda s: s and timeline.append(s))

    rejected = 0
    voted: set[int] = set()
    controller.start(0.0)
    while clock["now"] <= args.max_ms:
        speaker.now = clock["now"]
        state = controller.update(clock["now"])
        publisher.publish(state)
        if state.phase is Phase.TRAINING and state.current_action not in voted:
            voted.add(state.current_action)
            for i, vote in enumerate(scripted.get(state.current_action, [])):
                try:
                    intake.submit(f"sim-{i}", vote.get("label"), vote.get("confidence"), state=state)
                except VoteRejected:
                    rejected += 1
        if state.phase is Phase.DONE:
            break
        clock["now"] += args.step_ms

    return {
        "timeline": timeline,
        "utterances": speaker.utterances,
        "labels": {
            str(action): [{"label": s.label, "avg": s.avg, "count": s.count} for s in ranked]
            for action, ranked in sorted(aggregator.stats().items())
        },
        "rejected_votes": rejected,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate a full performance run")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--session", default="session-sim")
    parser.add_argument("--votes", default=None, help='JSON file: {"1": [{"label": ..., "confidence": ...}]}')
    parser.add_argument("--segment-ms", type=float, default=SEGMENT_DURATION_MS)
    parser.add_argument("--actions", type=int, default=NUM_ACTIONS)
    parser.add_argument("--step-ms", type=float, default=500.0, help="Virtual frame interval")
    parser.add_argument("--max-ms", type=float, default=600000.0, help="Stop after this much virtual time")
    cli_args = parser.parse_args()
    result = run(cli_args)
    out_path = Path(cli_args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2)
    print(f"Wrote {len(result['timeline'])} state changes to {out_path}")
