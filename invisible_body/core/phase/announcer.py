"""Spoken announcements for action changes and the second-part intro."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable

from invisible_body.core.speech.speakers import Completion, Speaker
from invisible_body.core.types import LabelStat

logger = logging.getLogger(__name__)

SECOND_PART_INTRO = (
    "Now we enter the second part. You are free to turn around and watch the real body, "
    "or stay with the projected system that you have helped to train."
)

_QUOTES_RE = re.compile(r"[\"“”']")

StatsLookup = Callable[[int], "list[LabelStat] | None"]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def spoken_label(label: str) -> str:
    """Replace quote characters so the TTS engine does not read them out."""

    return _QUOTES_RE.sub(" ", label)


def action_text(action: int) -> str:
    return f"Action {action}"


def top_label_text(stat: LabelStat) -> str:
    return f"Top label: {spoken_label(stat.label)}. Confidence {round_half_up(stat.avg or 0)} percent."


class Announcer:
    """Turns controller events into utterances on a `Speaker`."""

    def __init__(self, speaker: Speaker, stats_for: StatsLookup | None = None) -> None:
        self.speaker = speaker
        self.stats_for: StatsLookup = stats_for or (lambda _action: None)

    def announce_training(self, action: int) -> None:
        self.speaker.speak(action_text(action))

    def announce_inference(self, action: int) -> None:
        """Say the action, then (once that finishes) its top audience label if any."""

        def _then_label() -> None:
            stats = self.stats_for(action)
            if not stats:
                logger.info("No audience labels for action %s", action)
                return
            self.speaker.speak(top_label_text(stats[0]))

        self.speaker.speak(action_text(action), _then_label)

    def play_intro(self, on_complete: Completion) -> None:
        self.speaker.speak(SECOND_PART_INTRO, on_complete)
