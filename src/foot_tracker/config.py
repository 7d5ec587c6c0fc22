"""Configuration and data classes for Foot Tracker"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional
import json


@dataclass
class TrackingConfig:
    """Centralized tracking settings"""
    # Confidence gate
    min_score: float = 0.6

    # Temporal
    smoothing_factor: float = 0.4

    # Scheduling
    refresh_rate: float = 60.0  # Hz, display refresh cadence
    sync_to_video: bool = True

    # Frames
    jpeg_quality: int = 92
    max_devices: int = 8

    # Model
    model_complexity: int = 0
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'TrackingConfig':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def save(self, path: str = "tracking.json"):
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str = "tracking.json") -> Optional['TrackingConfig']:
        try:
            with open(path, 'r') as f:
                return cls.from_dict(json.load(f))
        except FileNotFoundError:
            return None


@dataclass(frozen=True)
class CaptureDevice:
    """A selectable video input"""
    device_id: str
    label: str = ""

    @property
    def display_label(self) -> str:
        return self.label or f"Camera {self.device_id[:4]}"


@dataclass(frozen=True)
class Keypoint:
    """Single 2D keypoint in pixel space"""
    name: str
    x: float
    y: float
    score: float  # [0..1]


# keypoint name -> Keypoint, one detected subject
Pose = Dict[str, Keypoint]


@dataclass
class TrackedPoint:
    """Smoothed ankle position"""
    x: float
    y: float
    score: float = 0.0
