"""Host entry points and command-line runner"""

import argparse
import asyncio
import contextlib
import logging
import sys
import threading
from typing import List, Optional, TextIO

from .camera import FrameSource, camera_list_payload, enumerate_devices
from .config import CaptureDevice, TrackingConfig
from .detector import Detector, MediaPipePoseBackend, PoseBackend
from .host import Host, HostBridge, JsonlHost, CAMERA_MANAGER, ON_RECEIVE_CAMERA_LIST
from .session import SessionController

logger = logging.getLogger(__name__)


class FootTracker:
    """Inbound calls from the host: registration and device selection"""

    def __init__(self, config: TrackingConfig = None, source: FrameSource = None,
                 backend: PoseBackend = None):
        self.config = config or TrackingConfig()
        self.bridge = HostBridge()
        self.source = source or FrameSource()
        self.detector = Detector(backend or MediaPipePoseBackend.from_config(self.config))
        self.controller = SessionController(self.source, self.detector, self.bridge, self.config)
        self.devices: List[CaptureDevice] = []

    async def list_cameras(self) -> List[CaptureDevice]:
        self.devices = await enumerate_devices(self.config.max_devices, self.source.capture_factory,
                                               active=self.source.device_id)
        self.bridge.send(CAMERA_MANAGER, ON_RECEIVE_CAMERA_LIST, camera_list_payload(self.devices))
        return self.devices

    async def register_host(self, host: Host):
        self.bridge.register(host)
        await self.list_cameras()

    async def start_pose_tracking(self, device_id: str) -> bool:
        return await self.controller.switch_device(device_id)

    async def shutdown(self):
        await self.controller.close()
        self.detector.close()


def _stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue, stream: TextIO):
    for line in stream:
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(queue.put_nowait, line)
    with contextlib.suppress(RuntimeError):
        loop.call_soon_threadsafe(queue.put_nowait, None)


def start_command_reader(stream: TextIO) -> tuple:
    """Read command lines on a daemon thread so a pending readline never blocks exit"""
    queue = asyncio.Queue()
    thread = threading.Thread(target=_stdin_reader, args=(asyncio.get_running_loop(), queue, stream),
                              name="stdin-commands", daemon=True)
    thread.start()
    return queue, thread


async def _read_commands(tracker: FootTracker, config_path: Optional[str], stream: TextIO = None):
    queue, _ = start_command_reader(stream or sys.stdin)
    while True:
        line = await queue.get()
        if line is None:
            break
        parts = line.split()
        if not parts:
            continue
        cmd = parts[0].lower()
        if cmd == 'quit':
            break
        elif cmd == 'start' and len(parts) > 1:
            await tracker.start_pose_tracking(parts[1])
        elif cmd == 'list':
            await tracker.list_cameras()
        elif cmd == 'save' and config_path:
            tracker.config.save(config_path)
            logger.info(f"Saved config to {config_path}")
        else:
            _print_help()


def _print_help():
    print("\nCommands:", file=sys.stderr)
    print("  start <id> - Track with camera <id>", file=sys.stderr)
    print("  list       - Resend the camera list", file=sys.stderr)
    print("  save       - Save config", file=sys.stderr)
    print("  quit       - Quit", file=sys.stderr)


async def _run(args):
    config = (TrackingConfig.load(args.config) if args.config else None) or TrackingConfig()
    tracker = FootTracker(config)

    out = open(args.output, 'w') if args.output else sys.stdout
    try:
        await tracker.register_host(JsonlHost(out))
        if args.device is not None:
            await tracker.start_pose_tracking(args.device)
        await _read_commands(tracker, args.config)
    finally:
        await tracker.shutdown()
        if out is not sys.stdout:
            out.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Stream camera frames and the tracked foot position as JSON lines")
    parser.add_argument("--config", help="tracking config JSON")
    parser.add_argument("--device", help="camera id to start tracking with")
    parser.add_argument("--output", help="write host messages here instead of stdout")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
