"""Ankle selection, confidence gating and smoothing"""

from typing import Optional

from .config import Keypoint, Pose, TrackedPoint

LEFT_ANKLE = "left_ankle"
RIGHT_ANKLE = "right_ankle"


def select_ankle(pose: Pose) -> Optional[Keypoint]:
    """Pick the more confident ankle; a missing keypoint scores 0"""
    left = pose.get(LEFT_ANKLE)
    right = pose.get(RIGHT_ANKLE)
    left_score = left.score if left else 0.0
    right_score = right.score if right else 0.0
    return left if left_score > right_score else right


def normalize(point: TrackedPoint, width: int, height: int) -> tuple:
    """Pixel position -> (x, y) in [0, 1]"""
    x = min(1.0, max(0.0, point.x / width))
    y = min(1.0, max(0.0, point.y / height))
    return x, y


class SmoothingFilter:
    """Confidence-gated exponential smoother over the tracked ankle.

    The first accepted observation seeds the filter. Each later one is blended
    as ``alpha * previous + (1 - alpha) * observation`` on each axis.
    Observations at or below ``min_score`` leave the state untouched.
    """

    def __init__(self, smoothing_factor: float = 0.4, min_score: float = 0.6):
        self.smoothing_factor = smoothing_factor
        self.min_score = min_score
        self.smooth_buffer = {}
        self.point: Optional[TrackedPoint] = None

    def _smooth(self, key: str, value: float) -> float:
        if key not in self.smooth_buffer:
            self.smooth_buffer[key] = value
        else:
            self.smooth_buffer[key] = (self.smoothing_factor * self.smooth_buffer[key] +
                                       (1 - self.smoothing_factor) * value)
        return self.smooth_buffer[key]

    def accepts(self, keypoint: Optional[Keypoint]) -> bool:
        return keypoint is not None and keypoint.score > self.min_score

    def update(self, pose: Pose) -> Optional[TrackedPoint]:
        """Feed one detection; returns the new point or None if it was rejected"""
        foot = select_ankle(pose)
        if not self.accepts(foot):
            return None

        self.point = TrackedPoint(
            x=self._smooth('x', foot.x),
            y=self._smooth('y', foot.y),
            score=foot.score,
        )
        return self.point
