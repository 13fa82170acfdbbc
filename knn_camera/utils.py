"""
Shared utilities: logging configuration, paths, and demo settings.
"""
import logging
import sys
import time
from collections import deque
from pathlib import Path

# ── Project Paths ──────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOGS_DIR = PROJECT_ROOT / "logs"

# ── Demo Settings ──────────────────────────────────────────────
NUM_CLASSES = 3     # Number of classes to classify
TOPK = 10           # K value for KNN

VIDEO_WIDTH = 300
VIDEO_HEIGHT = 250
TARGET_FPS = 60

# ── Model Settings ─────────────────────────────────────────────
IMAGE_SIZE = (224, 224)
BACKBONE = "mobilenet_v3_small"

# ── Device Selection ───────────────────────────────────────────
import torch

def get_device() -> str:
    """Select the best available compute device."""
    if torch.cuda.is_available():
        return "cuda"
    elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return "mps"
    return "cpu"

DEVICE = get_device()


def is_mobile() -> bool:
    """True on Android / iOS builds of CPython, which reject fixed capture sizes."""
    return sys.platform in ("android", "ios") or hasattr(sys, "getandroidapilevel")


# ── Logging ────────────────────────────────────────────────────
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str = "knn_camera",
    level: int = logging.INFO,
    log_file: str = "app.log",
) -> logging.Logger:
    """
    Configure project-wide logging to console and file.

    Args:
        name: Logger name (use __name__ from calling module).
        level: Logging level.
        log_file: Filename inside the logs/ directory.

    Returns:
        Configured logger instance.
    """
    LOGS_DIR.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    file_handler = logging.FileHandler(LOGS_DIR / log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


# ── FPS Meter ──────────────────────────────────────────────────
class FpsMeter:
    """
    Rolling frames-per-second counter.

    Wrap each render tick with begin()/end(); fps is averaged over
    the last `window` ticks.
    """

    def __init__(self, window: int = 30):
        self._history: deque = deque(maxlen=window)
        self._start: float | None = None
        self.fps = 0.0
        self.tick_ms = 0.0

    def begin(self) -> None:
        now = time.perf_counter()
        if self._start is not None:
            self._history.append(now - self._start)
            avg = sum(self._history) / len(self._history)
            self.fps = 1.0 / avg if avg > 0 else 0.0
        self._start = now

    def end(self) -> None:
        """Record the elapsed time of the current tick in tick_ms."""
        if self._start is not None:
            self.tick_ms = (time.perf_counter() - self._start) * 1000
