"""
Webcam acquisition.

Opens an OpenCV capture device and keeps the most recently decoded
frame in a single-slot buffer refreshed by a background grabber
thread. The render loop takes synchronous snapshots of that buffer
as `Frame` objects, which must be released once the tick is done
with them.
"""
import asyncio
import threading
import time
from typing import Callable, Optional

import cv2
import numpy as np

from knn_camera.utils import setup_logging, is_mobile, VIDEO_WIDTH, VIDEO_HEIGHT

logger = setup_logging(__name__)


class UnsupportedEnvironmentError(RuntimeError):
    """The host has no usable video capture device."""


class Frame:
    """
    A single RGB snapshot (H, W, 3) uint8 owned by one render tick.

    Release exactly once, either explicitly or by leaving a
    `with frame:` block. Pixels are unavailable after release.
    """

    def __init__(self, frame_id: int, pixels: np.ndarray, timestamp: float):
        self.frame_id = frame_id
        self.timestamp = timestamp
        self._pixels: Optional[np.ndarray] = pixels

    @property
    def pixels(self) -> np.ndarray:
        if self._pixels is None:
            raise RuntimeError(f"Frame {self.frame_id} has already been released")
        return self._pixels

    @property
    def released(self) -> bool:
        return self._pixels is None

    def release(self) -> None:
        if self._pixels is None:
            raise RuntimeError(f"Frame {self.frame_id} released twice")
        self._pixels = None

    def __enter__(self) -> "Frame":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "x".join(map(str, self._pixels.shape[:2]))
        return f"Frame(id={self.frame_id}, {state})"


class CameraSource:
    """
    Live camera stream with a latest-frame buffer.

    Usage:
        camera = await CameraSource(device_index=0).acquire()
        with camera.capture() as frame:
            ...
        camera.close()
    """

    def __init__(
        self,
        device_index: int = 0,
        width: int = VIDEO_WIDTH,
        height: int = VIDEO_HEIGHT,
        capture_factory: Callable = cv2.VideoCapture,
    ):
        """
        Args:
            device_index: OpenCV camera index.
            width: Requested frame width (ignored on mobile).
            height: Requested frame height (ignored on mobile).
            capture_factory: Callable returning a cv2.VideoCapture-like object.
        """
        self.device_index = device_index
        self.width = width
        self.height = height
        self.capture_factory = capture_factory

        self.frame_size: Optional[tuple[int, int]] = None
        self.frame_count = 0

        self._cap = None
        self._latest: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        self._running = False
        self._grabber: Optional[threading.Thread] = None

    async def acquire(self) -> "CameraSource":
        """
        Open the device and wait for its first decoded frame.

        Raises:
            UnsupportedEnvironmentError: no camera could be opened, or it
                produced no frame.
        """
        await asyncio.to_thread(self._open)

        self._running = True
        self._grabber = threading.Thread(
            target=self._grab_loop, args=(self._cap,), daemon=True
        )
        self._grabber.start()

        logger.info(
            "Camera acquired | device=%d | frame_size=%dx%d",
            self.device_index,
            self.frame_size[0],
            self.frame_size[1],
        )
        return self

    def _open(self) -> None:
        cap = self.capture_factory(self.device_index)
        if cap is None or not cap.isOpened():
            if cap is not None:
                cap.release()
            raise UnsupportedEnvironmentError(
                f"Unable to open camera at index {self.device_index}"
            )

        # Mobile cameras frequently reject fixed resolutions
        if not is_mobile():
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        ret, first = cap.read()
        if not ret or first is None:
            cap.release()
            raise UnsupportedEnvironmentError(
                f"Camera at index {self.device_index} delivered no frames"
            )

        self._cap = cap
        self._store(first)
        h, w = first.shape[:2]
        self.frame_size = (w, h)

    def _store(self, bgr: np.ndarray) -> None:
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        with self._lock:
            self._latest = rgb

    def _grab_loop(self, cap) -> None:
        # The grabber owns the device once started and releases it on exit
        try:
            while self._running:
                ret, frame = cap.read()
                if not ret:
                    time.sleep(0.005)
                    continue
                self._store(frame)
        finally:
            cap.release()
            logger.debug("Grabber stopped | device=%d", self.device_index)

    def capture(self) -> Frame:
        """Snapshot the latest decoded frame."""
        with self._lock:
            latest = self._latest
        if latest is None:
            raise RuntimeError("capture() called before acquire()")

        frame = Frame(self.frame_count, latest.copy(), time.time())
        self.frame_count += 1
        return frame

    def close(self, timeout: float = 1.0) -> None:
        """
        Stop the grabber and release the device.

        The device is released by the grabber thread after its current
        read returns, never while a read is in flight. If that takes
        longer than `timeout`, close() returns and the release follows.
        """
        if self._cap is None:
            return

        self._running = False
        if self._grabber is not None:
            self._grabber.join(timeout=timeout)
            if self._grabber.is_alive():
                logger.warning(
                    "Grabber still reading after %.1fs | device=%d | release deferred",
                    timeout,
                    self.device_index,
                )
            self._grabber = None
        else:
            self._cap.release()

        self._cap = None
        logger.info(
            "Camera closed | device=%d | frames_captured=%d",
            self.device_index,
            self.frame_count,
        )
