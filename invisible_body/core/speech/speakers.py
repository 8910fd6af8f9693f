"""Speech output collaborators.

The phase controller only needs `speak(text, on_complete)`. Completion
callbacks must always fire, even without audio, so phase progression never
waits on a missing speech engine.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import threading
from collections.abc import Callable
from queue import Empty, Queue
from typing import Protocol

logger = logging.getLogger(__name__)

Completion = Callable[[], None]


class Speaker(Protocol):
    """Minimal speech interface expected by the announcer."""

    def speak(self, text: str, on_complete: Completion | None = None) -> None:
        """Say `text`; call `on_complete` once finished."""


class SilentSpeaker:
    """No speech capability: logs the text and completes synchronously."""

    available = False

    def speak(self, text: str, on_complete: Completion | None = None) -> None:
        logger.info("speech unavailable, skipping: %s", text)
        if on_complete is not None:
            on_complete()


class CommandSpeaker:
    """Speaks through an external TTS command (e.g. `espeak`).

    Utterances play one at a time on a worker thread, in submission order. If
    the command is not installed the speaker degrades to `SilentSpeaker`
    behaviour.
    """

    def __init__(self, command: str = "espeak", voice: str | None = "en-gb", timeout: float = 60.0) -> None:
        self.args = shlex.split(command)
        self.voice = voice
        self.timeout = timeout
        self.available = bool(self.args) and shutil.which(self.args[0]) is not None
        self._queue: Queue[tuple[str, Completion | None]] = Queue()
        self._thread: threading.Thread | None = None
        self._running = False
        if not self.available:
            logger.warning("Speech command %r not found; speech disabled", command)

    def _command_for(self, text: str) -> list[str]:
        args = list(self.args)
        if self.voice and self.args[0].endswith("espeak"):
            args += ["-v", self.voice]
        return args + [text]

    def speak(self, text: str, on_complete: Completion | None = None) -> None:
        if not self.available:
            SilentSpeaker().speak(text, on_complete)
            return
        self._ensure_worker()
        self._queue.put((text, on_complete))

    def _ensure_worker(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._running = True
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def _worker(self) -> None:
        logger.debug("Speech worker started")
        while self._running:
            try:
                text, on_complete = self._queue.get(timeout=0.5)
            except Empty:
                continue
            try:
                subprocess.run(self._command_for(text), check=False, capture_output=True, timeout=self.timeout)
            except Exception:
                logger.exception("Speech command failed")
            if on_complete is not None:
                try:
                    on_complete()
                except Exception:
                    logger.exception("Speech completion callback failed")

    def close(self) -> None:
        self._running = False
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2)


def make_speaker(backend: str, command: str = "espeak", voice: str | None = None) -> Speaker:
    """Return the speaker for a `speech_backend` setting (`auto|command|none`)."""

    if backend == "none":
        return SilentSpeaker()
    speaker = CommandSpeaker(command, voice=voice)
    if backend == "auto" and not speaker.available:
        return SilentSpeaker()
    return speaker
