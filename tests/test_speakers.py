from __future__ import annotations

import threading

import pytest

import invisible_body.core.speech.speakers as speakers


def test_silent_speaker_completes_synchronously():
    done = []
    speakers.SilentSpeaker().speak("hello", lambda: done.append(1))
    assert done == [1]
    speakers.SilentSpeaker().speak("no callback")


def test_make_speaker_none():
    assert isinstance(speakers.make_speaker("none"), speakers.SilentSpeaker)


def test_auto_falls_back_when_command_missing():
    assert isinstance(speakers.make_speaker("auto", "definitely-not-a-tts-binary"), speakers.SilentSpeaker)


def test_command_backend_without_binary_still_completes():
    speaker = speakers.make_speaker("command", "definitely-not-a-tts-binary")
    assert isinstance(speaker, speakers.CommandSpeaker)
    assert speaker.available is False
    done = []
    speaker.speak("Action 1", lambda: done.append(1))
    assert done == [1]


def test_command_speaker_runs_command_and_completes(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(speakers.shutil, "which", lambda name: f"/usr/bin/{name}")
    calls = []
    monkeypatch.setattr(speakers.subprocess, "run", lambda args, **kwargs: calls.append(args))

    speaker = speakers.CommandSpeaker("espeak", voice="en-gb")
    finished = threading.Event()
    try:
        speaker.speak("Action 2", finished.set)
        assert finished.wait(timeout=5)
    finally:
        speaker.close()
    assert calls == [["espeak", "-v", "en-gb", "Action 2"]]


def test_command_failure_still_completes(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(speakers.shutil, "which", lambda name: f"/usr/bin/{name}")

    def _boom(args, **kwargs):
        raise OSError("audio device busy")

    monkeypatch.setattr(speakers.subprocess, "run", _boom)
    speaker = speakers.CommandSpeaker("say")
    finished = threading.Event()
    try:
        speaker.speak("Action 3", finished.set)
        assert finished.wait(timeout=5)
    finally:
        speaker.close()
