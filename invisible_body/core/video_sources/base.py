"""Camera/file frame sources for the pose estimator.

The engine consumes frames through `VideoSource` so the capture backend can be
swapped (or disabled) without touching the performance loop.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import cv2
import numpy as np

logger = logging.getLogger(__name__)

Frame = np.ndarray


class VideoSource(ABC):
    """Base interface for anything that can produce video frames."""

    @abstractmethod
    def read(self) -> Frame | None:
        """Return the next frame, or `None` when unavailable."""

        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release any underlying resources."""

        raise NotImplementedError


class OpenCVSource(VideoSource):
    """A `VideoSource` backed by `cv2.VideoCapture`."""

    def __init__(self, source: str | int) -> None:
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video source: {source}")

    def read(self) -> Frame | None:
        ok, frame = self.cap.read()
        if not ok:
            return None
        return frame

    def close(self) -> None:
        self.cap.release()


class WebcamSource(OpenCVSource):
    """Performer camera with minimal driver buffering."""

    def __init__(self, index: int = 0, width: int = 1280, height: int = 720) -> None:
        super().__init__(index)
        try:
            # Keep only the newest frame; ignored by some backends.
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        except Exception:
            pass
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info("Opened camera index=%s", index)


class FileSource(OpenCVSource):
    """Recorded rehearsal footage; rewinds at EOF."""

    def __init__(self, path: str) -> None:
        self._path = path
        super().__init__(path)

    def read(self) -> Frame | None:
        ok, frame = self.cap.read()
        if ok:
            return frame
        if not self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0):
            return None
        ok, frame = self.cap.read()
        return frame if ok else None
