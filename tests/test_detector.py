"""Tests for the detector lifecycle."""

import asyncio

import numpy as np
import pytest

from foot_tracker.config import TrackingConfig
from foot_tracker.detector import COCO17_NAMES, Detector, MediaPipePoseBackend

from conftest import ScriptedBackend, make_pose


@pytest.mark.asyncio
async def test_initialize_loads_backend_once(backend):
    detector = Detector(backend)

    assert await detector.initialize()
    assert await detector.initialize()

    assert detector.ready
    assert backend.loads == 1


@pytest.mark.asyncio
async def test_concurrent_initialize_loads_once(backend):
    detector = Detector(backend)
    results = await asyncio.gather(detector.initialize(), detector.initialize())
    assert results == [True, True]
    assert backend.loads == 1


@pytest.mark.asyncio
async def test_failed_load_is_retried():
    backend = ScriptedBackend(fail_loads=1)
    detector = Detector(backend)

    assert not await detector.initialize()
    assert not detector.ready

    assert await detector.initialize()
    assert detector.ready
    assert backend.loads == 2


@pytest.mark.asyncio
async def test_estimate_returns_backend_poses(backend):
    backend.poses = [make_pose(left=(1, 2, 0.9))]
    detector = Detector(backend)
    await detector.initialize()

    poses = await detector.estimate(np.zeros((4, 4, 3), dtype=np.uint8))

    assert poses == backend.poses


@pytest.mark.asyncio
async def test_estimate_propagates_backend_errors(backend):
    backend.error = ValueError("bad tensor")
    detector = Detector(backend)
    await detector.initialize()

    with pytest.raises(ValueError):
        await detector.estimate(np.zeros((4, 4, 3), dtype=np.uint8))


def test_close_releases_backend(backend):
    detector = Detector(backend)
    detector.close()
    assert backend.closed
    assert not detector.ready


def test_mediapipe_backend_from_config():
    backend = MediaPipePoseBackend.from_config(TrackingConfig(model_complexity=1, min_detection_confidence=0.7))
    assert backend.name() == "mediapipe_pose_1"
    assert backend.min_detection_confidence == 0.7


def test_mediapipe_backend_requires_load():
    with pytest.raises(RuntimeError):
        MediaPipePoseBackend().infer(np.zeros((4, 4, 3), dtype=np.uint8))


def test_coco_names_include_ankles():
    assert COCO17_NAMES[15:] == ["left_ankle", "right_ankle"]
