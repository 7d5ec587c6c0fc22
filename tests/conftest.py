"""Shared fakes for the Foot Tracker test suite."""

import asyncio
import base64
import time

import cv2
import numpy as np
import pytest

from foot_tracker.config import Keypoint, TrackingConfig
from foot_tracker.detector import PoseBackend


class RecordingHost:
    """Host that keeps every message it receives."""

    def __init__(self):
        self.messages = []

    def send_message(self, target, message, payload=None):
        self.messages.append((target, message, payload))

    def named(self, message):
        return [m for m in self.messages if m[1] == message]


class FakeCapture:
    """Stand-in for cv2.VideoCapture producing solid-colour frames."""

    def __init__(self, source, fill, shape=(48, 64, 3), fps=0.0, events=None,
                 read_delay=0.0, counting=False):
        self.source = source
        self.fill = fill
        self.shape = shape
        self.fps = fps
        self.read_delay = read_delay
        self.counting = counting
        self.released = False
        self.reading = False
        self.reads = 0
        self.events = events if events is not None else []
        self.events.append(('open', source))

    def isOpened(self):
        return self.fill is not None and not self.released

    def read(self):
        if not self.isOpened():
            return False, None
        self.reading = True
        try:
            time.sleep(self.read_delay)
        finally:
            self.reading = False
        self.reads += 1
        value = (self.fill + 10 * self.reads) % 250 if self.counting else self.fill
        return True, np.full(self.shape, value, dtype=np.uint8)

    def get(self, prop):
        if prop == cv2.CAP_PROP_FPS:
            return self.fps
        return 0.0

    def release(self):
        if not self.released:
            self.events.append(('release', self.source))
            if self.reading:
                self.events.append(('release_during_read', self.source))
        self.released = True


class FakeCameras:
    """Capture factory; ``fills`` maps source -> pixel value of its frames."""

    def __init__(self, fills=None, shape=(48, 64, 3), fps=0.0, read_delay=0.0, counting=False):
        self.fills = fills if fills is not None else {0: 40, 1: 200}
        self.shape = shape
        self.fps = fps
        self.read_delay = read_delay
        self.counting = counting
        self.events = []
        self.captures = []

    def __call__(self, source):
        cap = FakeCapture(source, self.fills.get(source), self.shape, self.fps, self.events,
                          self.read_delay, self.counting)
        self.captures.append(cap)
        return cap


class ScriptedBackend(PoseBackend):
    """Pose backend returning whatever the test puts in ``poses``."""

    def __init__(self, poses=None, fail_loads=0):
        self.poses = poses if poses is not None else []
        self.error = None
        self.fail_loads = fail_loads
        self.loads = 0
        self.calls = 0
        self.closed = False

    def name(self):
        return "scripted"

    def load(self):
        self.loads += 1
        if self.loads <= self.fail_loads:
            raise RuntimeError("weights missing")

    def infer(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.poses

    def close(self):
        self.closed = True


def make_pose(left=None, right=None):
    """Pose with ankles given as (x, y, score) tuples."""
    pose = {}
    if left is not None:
        pose['left_ankle'] = Keypoint('left_ankle', *left)
    if right is not None:
        pose['right_ankle'] = Keypoint('right_ankle', *right)
    return pose


def frame_value(payload):
    """Mean pixel value of a JPEG data URL."""
    data = base64.b64decode(payload.split(',', 1)[1])
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    return float(image.mean())


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def config():
    return TrackingConfig(refresh_rate=500.0, min_score=0.2, smoothing_factor=0.5)


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture
def cameras():
    return FakeCameras()


@pytest.fixture
def backend():
    return ScriptedBackend()
