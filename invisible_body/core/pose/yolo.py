"""Ultralytics YOLO pose estimator integration."""

from __future__ import annotations

import importlib
from contextlib import nullcontext
from typing import Any

import numpy as np
from ultralytics import YOLO

from invisible_body.core.pose.keypoints import poses_from_arrays
from invisible_body.core.types import Pose


def _to_numpy(value: Any) -> np.ndarray:
    if hasattr(value, "cpu"):
        value = value.cpu()
    return value.numpy() if hasattr(value, "numpy") else np.asarray(value)


class YoloPoseEstimator:
    """Pose estimator wrapper around an Ultralytics `*-pose` model (CPU)."""

    def __init__(self, model_name: str = "yolo11n-pose.pt", conf: float = 0.3) -> None:
        self.model_name = model_name
        self.conf = conf
        self._torch_inference_mode: Any | None = None
        if not model_name.lower().endswith(".onnx"):
            try:
                torch = importlib.import_module("torch")
                self._torch_inference_mode = torch.inference_mode
            except Exception:
                self._torch_inference_mode = None
        self.model = YOLO(model_name, task="pose")
        self._predict_kwargs = {"conf": conf, "verbose": False, "classes": [0], "device": "cpu"}

    def estimate(self, frame: np.ndarray, scale: tuple[float, float] = (1.0, 1.0)) -> list[Pose]:
        """Return detected poses for `frame`, highest confidence first."""

        infer_ctx = self._torch_inference_mode() if self._torch_inference_mode is not None else nullcontext()
        with infer_ctx:
            results = self.model.predict(frame, **self._predict_kwargs)
        if not results:
            return []

        result = results[0]
        boxes = getattr(result, "boxes", None)
        kpts = getattr(result, "keypoints", None)
        if boxes is None or len(boxes) == 0 or kpts is None or getattr(kpts, "data", None) is None:
            return []
        return poses_from_arrays(_to_numpy(kpts.data), _to_numpy(boxes.conf), scale)
