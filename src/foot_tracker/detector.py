"""Pose detection backends and the lifecycle-managed detector"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import List

import cv2
import numpy as np

from .config import Keypoint, Pose, TrackingConfig

logger = logging.getLogger(__name__)


COCO17_NAMES = [
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
]


class PoseBackend(ABC):
    """Single-subject pose model adapter.

    ``infer`` takes a BGR frame (H, W, 3 uint8) and returns zero or one poses
    with keypoints in pixel space.
    """

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def load(self) -> None: ...

    @abstractmethod
    def infer(self, frame: np.ndarray) -> List[Pose]: ...

    def close(self) -> None:
        pass


class MediaPipePoseBackend(PoseBackend):
    """MediaPipe Pose mapped onto COCO-17 keypoint names"""

    def __init__(self, model_complexity: int = 0, min_detection_confidence: float = 0.5,
                 min_tracking_confidence: float = 0.5):
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self._mp = None
        self._pose = None

    @classmethod
    def from_config(cls, config: TrackingConfig) -> 'MediaPipePoseBackend':
        return cls(
            model_complexity=config.model_complexity,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    def name(self) -> str:
        return f"mediapipe_pose_{self.model_complexity}"

    def load(self):
        import mediapipe as mp

        self._mp = mp
        self._pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=int(self.model_complexity),
            enable_segmentation=False,
            smooth_landmarks=True,
            min_detection_confidence=float(self.min_detection_confidence),
            min_tracking_confidence=float(self.min_tracking_confidence),
        )

    def infer(self, frame: np.ndarray) -> List[Pose]:
        if self._pose is None:
            raise RuntimeError("MediaPipe pose model is not loaded")
        h, w = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self._pose.process(rgb)
        if not results.pose_landmarks:
            return []

        lm = results.pose_landmarks.landmark
        PL = self._mp.solutions.pose.PoseLandmark
        pose = {}
        for name in COCO17_NAMES:
            p = lm[int(PL[name.upper()])]
            pose[name] = Keypoint(name=name, x=p.x * w, y=p.y * h, score=float(p.visibility or 0.0))
        return [pose]

    def close(self):
        if self._pose is not None:
            self._pose.close()
            self._pose = None


class Detector:
    """Loads a backend once and runs inference off the event loop"""

    def __init__(self, backend: PoseBackend):
        self.backend = backend
        self._ready = False
        self._init_lock = asyncio.Lock()
        # a cancelled estimate keeps running in its thread
        self._infer_lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    async def initialize(self) -> bool:
        async with self._init_lock:
            if self._ready:
                return True
            try:
                await asyncio.to_thread(self.backend.load)
            except Exception as e:
                logger.error(f"Error loading pose detector: {e}")
                return False
            self._ready = True
        logger.info(f"{self.backend.name()} detector loaded")
        return True

    def _infer(self, frame: np.ndarray) -> List[Pose]:
        with self._infer_lock:
            return self.backend.infer(frame)

    async def estimate(self, frame: np.ndarray) -> List[Pose]:
        return await asyncio.to_thread(self._infer, frame)

    def close(self):
        with self._infer_lock:
            self.backend.close()
        self._ready = False
