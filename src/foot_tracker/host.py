"""Message boundary to the host application"""

import base64
import json
import logging
from typing import Optional, Protocol, TextIO

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Targets
CAMERA_MANAGER = "CameraManager"
FOOT_CUBE = "FootCube"

# Messages
ON_RECEIVE_CAMERA_LIST = "OnReceiveCameraList"
ON_RECEIVE_VIDEO_FRAME = "OnReceiveVideoFrame"
ON_CAMERA_READY = "OnCameraReady"
AI_LOADED = "AILoaded"
ON_RECEIVE_FOOT_POSITION = "OnReceiveFootPosition"


class Host(Protocol):
    def send_message(self, target: str, message: str, payload: Optional[str] = None) -> None: ...


class HostBridge:
    """Fire-and-forget dispatch to whichever host is registered"""

    def __init__(self, host: Optional[Host] = None):
        self.host = host

    def register(self, host: Host):
        self.host = host

    @property
    def registered(self) -> bool:
        return self.host is not None

    def send(self, target: str, message: str, payload: Optional[str] = None):
        if self.host is None:
            logger.debug(f"No host registered, dropped {target}.{message}")
            return
        if payload is None:
            self.host.send_message(target, message)
        else:
            self.host.send_message(target, message, payload)


class JsonlHost:
    """Writes each host message as a JSON line"""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.count = 0

    def send_message(self, target: str, message: str, payload: Optional[str] = None):
        entry = {'target': target, 'message': message, 'payload': payload}
        self.stream.write(json.dumps(entry) + '\n')
        self.stream.flush()
        self.count += 1


def encode_frame(frame: np.ndarray, quality: int = 92) -> str:
    """BGR frame -> JPEG data URL"""
    ok, buf = cv2.imencode('.jpg', frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return "data:image/jpeg;base64," + base64.b64encode(buf.tobytes()).decode('ascii')
