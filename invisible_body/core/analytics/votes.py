"""Audience label aggregation.

Viewers submit free-text labels with a 0–100 confidence for the action being
performed. Every change to the vote collection re-derives the ranking from
scratch: labels are grouped by exact trimmed text, averaged, and sorted by
average confidence.
"""

from __future__ import annotations

import logging
import math
import re
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from invisible_body.core.store.base import RealtimeStore, Unsubscribe
from invisible_body.core.types import ActionLabelStats, LabelStat

logger = logging.getLogger(__name__)

ACTION_KEY_RE = re.compile(r"^action_(\d+)$")


def parse_action_key(key: object) -> int | None:
    """Return N for an `action_<N>` key, or `None` when malformed."""

    match = ACTION_KEY_RE.match(str(key))
    if not match:
        return None
    return int(match.group(1))


def _confidence(value: Any) -> float:
    """Numeric confidence; anything unparseable counts as 0."""

    try:
        conf = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(conf):
        return 0.0
    return conf


def _records(votes: Any) -> Iterable[Any]:
    if isinstance(votes, Mapping):
        return votes.values()
    if isinstance(votes, (list, tuple)):
        return votes
    return ()


def rank_labels(votes: Any) -> list[LabelStat]:
    """Group one action's votes by label and rank them by average confidence."""

    sums: dict[str, list[float]] = {}
    for vote in _records(votes):
        if not isinstance(vote, Mapping):
            continue
        raw = vote.get("label")
        if not raw:
            continue
        label = str(raw).strip()
        if not label:
            continue
        acc = sums.setdefault(label, [0.0, 0])
        acc[0] += _confidence(vote.get("confidence"))
        acc[1] += 1

    stats = [LabelStat(label=label, avg=s / n, count=int(n)) for label, (s, n) in sums.items()]
    # sort() is stable: ties keep first-seen order.
    stats.sort(key=lambda st: st.avg, reverse=True)
    return stats


def aggregate_votes(votes_by_action: Any) -> ActionLabelStats:
    """Return ranked label stats per action for a `sessions/<id>/votes` snapshot.

    Malformed keys and records are skipped; actions without any valid label are
    left out of the result entirely.
    """

    result: ActionLabelStats = {}
    if not isinstance(votes_by_action, Mapping):
        return result
    for key, votes in votes_by_action.items():
        action = parse_action_key(key)
        if action is None:
            continue
        ranked = rank_labels(votes)
        if ranked:
            result[action] = ranked
    return result


class VoteAggregator:
    """Keeps the latest `ActionLabelStats` for one session's vote collection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: ActionLabelStats = {}
        self.revision = 0
        self._unsubscribe: Unsubscribe | None = None
        self.last_error: str | None = None

    def attach(self, store: RealtimeStore, session_id: str) -> None:
        """Subscribe to `sessions/<session_id>/votes` (replacing any prior subscription)."""

        self.detach()
        self._unsubscribe = store.subscribe(
            f"sessions/{session_id}/votes",
            self.on_votes,
            self.on_error,
        )

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_votes(self, snapshot: Any) -> None:
        stats = aggregate_votes(snapshot or {})
        with self._lock:
            self._stats = stats
            self.revision += 1
            self.last_error = None
        logger.debug("Updated label stats for actions %s", sorted(stats))

    def on_error(self, exc: Exception) -> None:
        with self._lock:
            self.last_error = "Error listening to votes"
        logger.error("Error listening to votes: %s", exc)

    def stats(self) -> ActionLabelStats:
        with self._lock:
            return dict(self._stats)

    def stats_for(self, action: int) -> list[LabelStat] | None:
        """Ranked labels for `action`, or `None` when there is no data."""

        with self._lock:
            ranked = self._stats.get(int(action))
        return list(ranked) if ranked else None

    def primary_labels(self) -> dict[int, str]:
        """Top-ranked label per action."""

        with self._lock:
            return {action: ranked[0].label for action, ranked in self._stats.items()}
