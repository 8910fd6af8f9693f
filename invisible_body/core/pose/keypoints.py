"""Conversion from raw keypoint arrays to `Pose` objects."""

from __future__ import annotations

import numpy as np

from invisible_body.core.types import PART_NAMES, Keypoint, Pose


def pose_from_array(kpts: np.ndarray, score: float = 0.0, scale: tuple[float, float] = (1.0, 1.0)) -> Pose:
    """Build a `Pose` from an (N, 3) array of x, y, confidence rows.

    Rows map onto `PART_NAMES` in order (COCO and PoseNet share the same
    17-landmark ordering); positions are multiplied by `scale`.
    """

    sx, sy = scale
    arr = np.asarray(kpts, dtype=np.float64)
    keypoints: list[Keypoint] = []
    if arr.ndim == 2 and arr.shape[1] >= 2:
        for i, row in enumerate(arr[: len(PART_NAMES)]):
            conf = float(row[2]) if arr.shape[1] >= 3 else 1.0
            keypoints.append(
                Keypoint(
                    part=PART_NAMES[i],
                    position=(float(row[0]) * sx, float(row[1]) * sy),
                    score=conf,
                )
            )
    return Pose(keypoints=keypoints, score=float(score))


def poses_from_arrays(
    kpts: np.ndarray,
    scores: np.ndarray,
    scale: tuple[float, float] = (1.0, 1.0),
) -> list[Pose]:
    """Build poses for a batch of detections, highest detection score first."""

    kpts_np = np.asarray(kpts)
    scores_np = np.asarray(scores, dtype=np.float64).reshape(-1)
    if kpts_np.ndim != 3 or kpts_np.shape[0] == 0:
        return []
    n = min(int(kpts_np.shape[0]), int(scores_np.shape[0]))
    order = np.argsort(-scores_np[:n], kind="stable")
    return [pose_from_array(kpts_np[i], float(scores_np[i]), scale) for i in order]
