"""In-process state for settings, the shared store and the performance engine.

FastAPI routes use this module to access (and hot-reload) the singleton
`PerformanceEngine`. The store outlives engine restarts so votes survive a
settings reload.
"""

from __future__ import annotations

from threading import RLock

from invisible_body.api.services.engine import PerformanceEngine
from invisible_body.core.config.settings import PerformanceSettings, load_settings, settings_to_dict
from invisible_body.core.store.base import MemoryStore, RealtimeStore

_settings: PerformanceSettings | None = None
_store: RealtimeStore | None = None
_engine: PerformanceEngine | None = None
_lock = RLock()


def get_settings() -> PerformanceSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def get_store() -> RealtimeStore:
    """Return the shared session store."""

    global _store
    with _lock:
        if _store is None:
            _store = MemoryStore()
    return _store


def reload_settings(data: dict | None = None) -> PerformanceSettings:
    """Reload settings and restart the engine if it is running.

    Args:
        data: Optional patch dict merged into the loaded settings.
    """

    global _settings, _engine
    with _lock:
        base = load_settings()
        if data:
            _settings = PerformanceSettings(**{**settings_to_dict(base), **data})
        else:
            _settings = base
        if _engine:
            _engine.stop()
            _engine = PerformanceEngine(_settings, store=get_store())
            _engine.start()
    return _settings


def get_engine() -> PerformanceEngine:
    """Return the singleton engine instance, creating and starting it if needed."""

    global _engine
    with _lock:
        if _engine is None:
            _engine = PerformanceEngine(get_settings(), store=get_store())
            _engine.start()
    return _engine


def stop_engine() -> None:
    """Stop and discard the singleton engine instance (if present)."""

    global _engine
    with _lock:
        if _engine is not None:
            _engine.stop()
            _engine = None
