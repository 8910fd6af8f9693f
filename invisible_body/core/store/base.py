"""Realtime key-path store abstractions.

Performer engine and viewer endpoints only coordinate through a small
eventually-consistent store addressed by slash-separated paths
(`sessions/<id>/state`, `sessions/<id>/votes/action_<n>/<push id>`). The store
is consumed through `RealtimeStore` so the hosted backend can be swapped
without touching the controller, publisher or aggregator.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from invisible_body.core.errors import StoreError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class _ServerTimestamp:
    """Placeholder resolved to epoch milliseconds by the store on write."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def split_path(path: str) -> list[str]:
    """Return the non-empty segments of a slash-separated path."""

    return [p for p in str(path).split("/") if p]


def _related(a: list[str], b: list[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""

    n = min(len(a), len(b))
    return a[:n] == b[:n]


class RealtimeStore(ABC):
    """Base interface for the shared session store."""

    @abstractmethod
    def get(self, path: str) -> Any:
        """Return a deep copy of the value at `path`, or `None`."""

        raise NotImplementedError

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Overwrite the value at `path` (upsert)."""

        raise NotImplementedError

    @abstractmethod
    def push(self, path: str, value: Any) -> str:
        """Append `value` under `path` with a generated key and return the key."""

        raise NotImplementedError

    @abstractmethod
    def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Invoke `on_change(snapshot)` now and after every change at or below `path`."""

        raise NotImplementedError


class MemoryStore(RealtimeStore):
    """Thread-safe in-process store with push notifications.

    Subscribers are notified synchronously on the writer's thread. A failing
    subscriber is reported to its own `on_error` (or logged) and stays
    subscribed.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._root: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._subscribers: dict[int, tuple[list[str], ChangeCallback, ErrorCallback | None]] = {}
        self._sub_ids = itertools.count(1)
        self._clock = clock or time.time

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _resolve(self, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return self._now_ms()
        if isinstance(value, dict):
            return {str(k): self._resolve(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._resolve(v) for v in value]
        return value

    def _read(self, parts: list[str]) -> Any:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _write(self, parts: list[str], value: Any) -> None:
        if not parts:
            raise StoreError("Cannot write to the store root")
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value

    def get(self, path: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._read(split_path(path)))

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        with self._lock:
            self._write(parts, self._resolve(copy.deepcopy(value)))
        self._notify(parts)

    def push(self, path: str, value: Any) -> str:
        key = uuid.uuid4().hex
        self.set(f"{path.rstrip('/')}/{key}", value)
        return key

    def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        parts = split_path(path)
        with self._lock:
            sub_id = next(self._sub_ids)
            self._subscribers[sub_id] = (parts, on_change, on_error)
        self._deliver(parts, on_change, on_error)

        def _unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(sub_id, None)

        return _unsubscribe

    def _notify(self, changed: list[str]) -> None:
        with self._lock:
            targets = [s for s in self._subscribers.values() if _related(s[0], changed)]
        for parts, on_change, on_error in targets:
            self._deliver(parts, on_change, on_error)

    def _deliver(self, parts: list[str], on_change: ChangeCallback, on_error: ErrorCallback | None) -> None:
        snapshot = self.get("/".join(parts))
        try:
            on_change(snapshot)
        except Exception as exc:
            if on_error is not None:
                on_error(exc)
            else:
                logger.exception("Store subscriber failed for %s", "/".join(parts))
