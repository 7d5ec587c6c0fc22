"""Frame and pose loops running on the asyncio event loop"""

import asyncio
import json
import logging
from enum import Enum, auto
from typing import Awaitable, Callable, Optional

from .camera import FrameSource
from .config import TrackingConfig
from .detector import Detector
from .host import (HostBridge, CAMERA_MANAGER, FOOT_CUBE, ON_RECEIVE_VIDEO_FRAME,
                   ON_CAMERA_READY, AI_LOADED, ON_RECEIVE_FOOT_POSITION, encode_frame)
from .smoothing import SmoothingFilter, normalize

logger = logging.getLogger(__name__)


class RepeatingTask:
    """Cancellable task that awaits ``tick`` then sleeps ``interval()`` seconds, forever"""

    def __init__(self, name: str, tick: Callable[[], Awaitable[None]],
                 interval: Callable[[], float]):
        self.name = name
        self._tick = tick
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)

    async def _run(self):
        while True:
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{self.name} tick failed: {e}")
            await asyncio.sleep(self._interval())

    async def cancel(self) -> bool:
        """Stop the task and wait for it to unwind; False if it was not running"""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return True


class FrameLoopState(Enum):
    WAITING = auto()
    STREAMING = auto()


def next_state(ready: bool) -> FrameLoopState:
    return FrameLoopState.STREAMING if ready else FrameLoopState.WAITING


class FrameLoop:
    """Sends every captured frame to the host at display-refresh cadence"""

    def __init__(self, source: FrameSource, bridge: HostBridge, config: TrackingConfig,
                 ready: Optional[Callable[[], bool]] = None):
        self.source = source
        self.bridge = bridge
        self.config = config
        self.ready = ready or (lambda: source.ready)
        self.state = FrameLoopState.WAITING
        self.camera_ready_sent = False
        self.frames_sent = 0
        self.task = RepeatingTask("frame-loop", self.tick, lambda: 1.0 / config.refresh_rate)

    async def tick(self):
        self.state = next_state(self.ready())
        if self.state is FrameLoopState.WAITING:
            return
        if not await self.source.capture_snapshot():
            return

        payload = encode_frame(self.source.snapshot.pixels, self.config.jpeg_quality)
        self.bridge.send(CAMERA_MANAGER, ON_RECEIVE_VIDEO_FRAME, payload)
        self.frames_sent += 1
        if not self.camera_ready_sent and self.bridge.registered:
            self.bridge.send(CAMERA_MANAGER, ON_CAMERA_READY)
            self.camera_ready_sent = True
            logger.info("Camera ready")


class PoseLoop:
    """Runs pose detection on the latest snapshot and sends the smoothed ankle position"""

    def __init__(self, source: FrameSource, detector: Detector, smoother: SmoothingFilter,
                 bridge: HostBridge, config: TrackingConfig):
        self.source = source
        self.detector = detector
        self.smoother = smoother
        self.bridge = bridge
        self.config = config
        self.task = RepeatingTask("pose-loop", self.tick, self.interval)

    def interval(self) -> float:
        if self.config.sync_to_video:
            frame_interval = self.source.frame_interval()
            if frame_interval:
                return frame_interval
        return 1.0 / self.config.refresh_rate

    async def tick(self):
        if not self.detector.ready or not self.source.ready:
            return
        self.bridge.send(CAMERA_MANAGER, AI_LOADED)

        # frames are pulled by the frame loop only; reading here would steal them
        frame = self.source.snapshot.pixels.copy()
        height, width = frame.shape[:2]

        try:
            poses = await self.detector.estimate(frame)
        except Exception as e:
            logger.error(f"Pose detection error: {e}")
            return
        if not poses:
            return

        point = self.smoother.update(poses[0])
        if point is None:
            return
        x, y = normalize(point, width, height)
        self.bridge.send(FOOT_CUBE, ON_RECEIVE_FOOT_POSITION, json.dumps({'x': x, 'y': y}))
