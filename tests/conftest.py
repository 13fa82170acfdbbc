"""Shared fakes for camera and feature extraction."""
import time

import numpy as np
import pytest
import torch

from knn_camera.acquisition import Frame


def flatten_extractor(pixels: np.ndarray) -> torch.Tensor:
    """Raw pixels as the embedding; no weights needed."""
    return torch.from_numpy(pixels).float().flatten()


def make_dummy_frame(frame_id: int = 0, h: int = 8, w: int = 8) -> Frame:
    pixels = np.random.randint(0, 256, (h, w, 3), dtype=np.uint8)
    return Frame(frame_id, pixels, time.time())


class FakeCapture:
    """Stands in for cv2.VideoCapture."""

    def __init__(self, opened: bool = True, has_frames: bool = True, h: int = 24, w: int = 32):
        self.opened = opened
        self.has_frames = has_frames
        self.h = h
        self.w = w
        self.props = {}
        self.reads = 0
        self.released = False

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        time.sleep(0.001)
        if not self.has_frames:
            return False, None
        self.reads += 1
        # Pure blue in BGR order
        frame = np.zeros((self.h, self.w, 3), dtype=np.uint8)
        frame[..., 0] = 255
        return True, frame

    def release(self):
        self.released = True


class FakeCamera:
    """Hands out random frames and remembers them for release checks."""

    def __init__(self):
        self.frames: list[Frame] = []

    def capture(self) -> Frame:
        frame = make_dummy_frame(len(self.frames))
        self.frames.append(frame)
        return frame


@pytest.fixture
def fake_camera():
    return FakeCamera()
