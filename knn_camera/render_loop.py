"""
Per-frame render loop.

Each tick snapshots the camera, adds the frame as a training example
while a class control is held, and, once any example exists, runs a
prediction and refreshes the class labels. Ticks are serialized: the
next one starts only after the current prediction has finished.
"""
import asyncio
from typing import Callable, Optional

from knn_camera.acquisition import CameraSource
from knn_camera.controller import LabelController
from knn_camera.inference import KNNImageClassifier, PredictionResult
from knn_camera.utils import setup_logging, FpsMeter, TARGET_FPS

logger = setup_logging(__name__)


class RenderLoop:
    """
    Drives capture → train → predict → display once per display frame.

    Usage:
        loop = RenderLoop(camera, classifier, controller, num_classes=3)
        task = asyncio.create_task(loop.run())
        ...
        loop.stop()
    """

    def __init__(
        self,
        camera: CameraSource,
        classifier: KNNImageClassifier,
        controller: LabelController,
        num_classes: int,
        frame_interval: float = 1.0 / TARGET_FPS,
        refresh: Optional[Callable[[], None]] = None,
        meter: Optional[FpsMeter] = None,
    ):
        """
        Args:
            camera: Acquired camera source.
            classifier: KNN classifier to train and query.
            controller: Label controller owning the training state.
            num_classes: Number of class rows to update.
            frame_interval: Seconds between ticks.
            refresh: Called after every tick to let the UI repaint.
            meter: Optional FPS meter wrapped around each tick.
        """
        self.camera = camera
        self.classifier = classifier
        self.controller = controller
        self.num_classes = num_classes
        self.frame_interval = frame_interval
        self.refresh = refresh
        self.meter = meter

        self.tick_count = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def tick(self) -> Optional[PredictionResult]:
        """Run one frame; returns the prediction, or None if nothing was predicted."""
        if self.meter is not None:
            self.meter.begin()

        result = None
        with self.camera.capture() as frame:
            armed = self.controller.armed
            if armed is not None:
                self.classifier.train(frame, armed)

            counts = self.classifier.example_counts()
            if max(counts) > 0:
                result = await self.classifier.predict(frame)
                for i in range(self.num_classes):
                    self.controller.update(
                        i,
                        counts[i],
                        result.class_index == i,
                        result.confidences[i],
                    )

        self.tick_count += 1
        if self.meter is not None:
            self.meter.end()
        return result

    async def run(self) -> None:
        """Tick until stop() is called or the task is cancelled."""
        self._running = True
        logger.info(
            "Render loop started | classes=%d | interval=%.1fms",
            self.num_classes,
            self.frame_interval * 1000,
        )
        try:
            while self._running:
                await self.tick()
                if self.refresh is not None:
                    self.refresh()
                await asyncio.sleep(self.frame_interval)
        finally:
            self._running = False
            logger.info("Render loop stopped | ticks=%d", self.tick_count)

    def stop(self) -> None:
        self._running = False
