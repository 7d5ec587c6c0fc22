"""Camera enumeration and frame capture using OpenCV"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

import cv2
import numpy as np

from .config import CaptureDevice

logger = logging.getLogger(__name__)

CaptureFactory = Callable[[Any], Any]


def _read_sysfs_name(index: int) -> Optional[str]:
    sys_name = Path(f"/sys/class/video4linux/video{index}/name")
    try:
        if sys_name.exists():
            return sys_name.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None
    return None


def _capture_source(device_id: str):
    """Numeric ids are OpenCV indices, anything else is a path or URL"""
    return int(device_id) if device_id.isdigit() else device_id


def _probe_devices(max_devices: int, capture_factory: CaptureFactory,
                   name_reader: Callable[[int], Optional[str]],
                   active: Optional[str] = None) -> List[CaptureDevice]:
    devices = []
    for index in range(max_devices):
        # the streaming device is listed without opening it a second time
        if str(index) != active:
            cap = capture_factory(index)
            try:
                if not cap.isOpened():
                    continue
            finally:
                cap.release()
        devices.append(CaptureDevice(device_id=str(index), label=name_reader(index) or ""))
    return devices


async def enumerate_devices(max_devices: int = 8,
                            capture_factory: CaptureFactory = cv2.VideoCapture,
                            name_reader: Optional[Callable[[int], Optional[str]]] = None,
                            active: Optional[str] = None) -> List[CaptureDevice]:
    """Probe camera indices and return the ones that open.

    ``active`` is the id of the device currently streaming; it is reported
    as available without being probed.
    """
    name_reader = name_reader or _read_sysfs_name
    try:
        devices = await asyncio.to_thread(_probe_devices, max_devices, capture_factory,
                                          name_reader, active)
    except Exception as e:
        logger.error(f"Error accessing camera list: {e}")
        return []
    logger.info(f"Available cameras: {[d.display_label for d in devices]}")
    return devices


def camera_list_payload(devices: List[CaptureDevice]) -> str:
    return json.dumps([{'label': d.display_label, 'deviceId': d.device_id} for d in devices])


class Snapshot:
    """Reusable pixel buffer holding the latest frame"""

    def __init__(self, frame: np.ndarray):
        self.pixels = frame.copy()

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def update(self, frame: np.ndarray):
        if frame.shape != self.pixels.shape or frame.dtype != self.pixels.dtype:
            logger.info(f"Snapshot resized {self.width}x{self.height} -> {frame.shape[1]}x{frame.shape[0]}")
            self.pixels = frame.copy()
        else:
            np.copyto(self.pixels, frame)


@dataclass
class Session:
    device_id: str
    capture: Any
    snapshot: Snapshot
    fps: float = 0.0
    opened: bool = True


class FrameSource:
    """Owns the active capture device and the snapshot surface.

    Every call on the capture handle happens in a worker thread holding
    ``_capture_lock``. The event loop only sees the values cached on the
    session, so a cancelled read can never overlap a release.
    """

    def __init__(self, capture_factory: CaptureFactory = cv2.VideoCapture):
        self.capture_factory = capture_factory
        self.session: Optional[Session] = None
        self._capture_lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self.session is not None and self.session.opened

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self.session.snapshot if self.session else None

    @property
    def device_id(self) -> Optional[str]:
        return self.session.device_id if self.session else None

    def _open(self, device_id: str):
        with self._capture_lock:
            cap = self.capture_factory(_capture_source(device_id))
            if not cap.isOpened():
                cap.release()
                raise RuntimeError(f"Could not open camera {device_id}")
            ok, frame = cap.read()
            if not ok or frame is None:
                cap.release()
                raise RuntimeError(f"Camera {device_id} produced no frame")
            fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        return cap, frame, fps

    def _read(self, session: Session):
        with self._capture_lock:
            if not session.opened:
                return False, None
            ok, frame = session.capture.read()
            session.opened = bool(session.capture.isOpened())
        return ok, frame

    def _release(self, session: Session):
        with self._capture_lock:
            session.opened = False
            session.capture.release()

    async def release(self):
        session, self.session = self.session, None
        if session is not None:
            await asyncio.to_thread(self._release, session)
            logger.info(f"Released camera {session.device_id}")

    async def configure(self, device_id: str) -> bool:
        """Replace the current session with one on ``device_id``"""
        await self.release()
        try:
            cap, frame, fps = await asyncio.to_thread(self._open, device_id)
        except Exception as e:
            logger.error(f"Error setting up camera: {e}")
            return False
        self.session = Session(device_id=device_id, capture=cap, snapshot=Snapshot(frame), fps=fps)
        logger.info(f"Camera {device_id} streaming at {self.snapshot.width}x{self.snapshot.height}")
        return True

    async def capture_snapshot(self) -> bool:
        """Read the next frame into the snapshot; False if none was available"""
        session = self.session
        if session is None or not session.opened:
            return False
        ok, frame = await asyncio.to_thread(self._read, session)
        if session is not self.session or not ok or frame is None:
            return False
        session.snapshot.update(frame)
        return True

    def frame_interval(self) -> Optional[float]:
        """Seconds per frame of the active stream, if it reports a rate"""
        if self.session is None or self.session.fps <= 0:
            return None
        return 1.0 / self.session.fps
