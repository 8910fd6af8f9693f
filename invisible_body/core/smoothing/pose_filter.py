"""Frame-to-frame pose smoothing.

Raw keypoints from the pose estimator jitter between frames. The filter keeps
the previous smoothed pose and moves each confident keypoint a fixed fraction
of the way towards the new estimate. Low-confidence keypoints keep their last
smoothed position.
"""

from __future__ import annotations

import copy

from invisible_body.core.types import Pose


def lerp(start: float, stop: float, amount: float) -> float:
    """Linear interpolation from `start` towards `stop`."""

    return start + (stop - start) * amount


class PoseSmoother:
    """Exponential smoothing of per-joint positions.

    The retained pose is mutated in place on every `update()`; callers must not
    rely on a previously returned pose staying unchanged.
    """

    def __init__(self, threshold: float = 0.2, blend: float = 0.4) -> None:
        self.threshold = float(threshold)
        self.blend = float(blend)
        self.pose: Pose | None = None

    def update(self, raw: Pose) -> Pose:
        """Fold `raw` into the retained pose and return it."""

        if self.pose is None:
            self.pose = copy.deepcopy(raw)
            return self.pose

        # zip() stops at the shorter side: unmatched keypoints are skipped.
        for sk, rk in zip(self.pose.keypoints, raw.keypoints):
            if rk.score > self.threshold:
                x, y = sk.position
                rx, ry = rk.position
                sk.position = (lerp(x, rx, self.blend), lerp(y, ry, self.blend))
                sk.score = rk.score
                sk.part = rk.part
        return self.pose
