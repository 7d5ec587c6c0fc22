"""Device switching: tears down and restarts both loops"""

import logging
from typing import Optional

from .camera import FrameSource
from .config import TrackingConfig
from .detector import Detector
from .host import HostBridge
from .loops import FrameLoop, PoseLoop
from .smoothing import SmoothingFilter

logger = logging.getLogger(__name__)


class SessionController:
    """Owns the frame source, the detector and the two loop handles.

    ``switch_device`` is not reentrant. Callers must wait for one switch to
    finish before issuing the next one.

    The smoothing filter is shared by every pose loop this controller starts,
    so the tracked point carries over from one device to the next.
    """

    def __init__(self, source: FrameSource, detector: Detector, bridge: HostBridge,
                 config: Optional[TrackingConfig] = None):
        self.config = config or TrackingConfig()
        self.source = source
        self.detector = detector
        self.bridge = bridge
        self.smoother = SmoothingFilter(self.config.smoothing_factor, self.config.min_score)
        self.frame_loop: Optional[FrameLoop] = None
        self.pose_loop: Optional[PoseLoop] = None

    async def cancel_loops(self):
        if self.frame_loop is not None:
            await self.frame_loop.task.cancel()
        if self.pose_loop is not None:
            await self.pose_loop.task.cancel()
        self.frame_loop = None
        self.pose_loop = None

    async def switch_device(self, device_id: str) -> bool:
        logger.info(f"Switching to device: {device_id}")
        await self.cancel_loops()
        configured = await self.source.configure(device_id)

        self.frame_loop = FrameLoop(self.source, self.bridge, self.config)
        self.frame_loop.task.start()

        if not self.detector.ready:
            await self.detector.initialize()

        self.pose_loop = PoseLoop(self.source, self.detector, self.smoother, self.bridge, self.config)
        self.pose_loop.task.start()
        return configured

    async def close(self):
        await self.cancel_loops()
        await self.source.release()
