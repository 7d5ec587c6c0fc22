"""Foot Tracker - Real-time ankle tracking streamed to a host application"""

from .config import TrackingConfig, CaptureDevice, Keypoint, Pose, TrackedPoint
from .camera import FrameSource, Snapshot, enumerate_devices, camera_list_payload
from .detector import Detector, PoseBackend, MediaPipePoseBackend
from .smoothing import SmoothingFilter, select_ankle, normalize
from .loops import RepeatingTask, FrameLoop, FrameLoopState, PoseLoop
from .session import SessionController
from .host import HostBridge, JsonlHost, encode_frame
from .app import FootTracker

__version__ = "1.0.0"
__all__ = [
    'TrackingConfig', 'CaptureDevice', 'Keypoint', 'Pose', 'TrackedPoint',
    'FrameSource', 'Snapshot', 'enumerate_devices', 'camera_list_payload',
    'Detector', 'PoseBackend', 'MediaPipePoseBackend',
    'SmoothingFilter', 'select_ankle', 'normalize',
    'RepeatingTask', 'FrameLoop', 'FrameLoopState', 'PoseLoop',
    'SessionController',
    'HostBridge', 'JsonlHost', 'encode_frame',
    'FootTracker',
]
