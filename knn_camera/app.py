"""
KNN Camera Classifier: Tkinter application.

Live webcam demo for the nearest-neighbor classifier. Hold a
"Train" button to add the current camera frames as examples of that
class; as soon as any class has examples, every frame is classified
and the predicted class is shown in bold with per-class confidences.

Lifecycle:
    1. Load the classifier (loading label shown)
    2. Show the main panel, build class rows and FPS readout
    3. Acquire the camera (info label shown on failure)
    4. Run the render loop until the window is closed

Run with:
    python -m knn_camera.app
    python -m knn_camera.app --num-classes 4 --topk 5 --camera 1
"""
import argparse
import asyncio
import sys
import tkinter as tk
from typing import Awaitable, Optional

import cv2
from PIL import Image, ImageTk

from knn_camera.acquisition import CameraSource, UnsupportedEnvironmentError
from knn_camera.controller import LabelController
from knn_camera.inference import KNNImageClassifier, load
from knn_camera.render_loop import RenderLoop
from knn_camera.utils import (
    setup_logging,
    FpsMeter,
    NUM_CLASSES,
    TOPK,
    VIDEO_WIDTH,
    VIDEO_HEIGHT,
    TARGET_FPS,
)

logger = setup_logging("knn_camera.app")

CAMERA_FALLBACK_TEXT = (
    "This system does not support video capture, "
    "or this device does not have a camera"
)


class CameraDemoApp:
    """
    Main application window.

    Layout:
    ┌───────────────────────────────┐
    │  FPS                          │
    │  Live Video Feed              │
    │  [Train 0]  status text       │
    │  [Train 1]  status text       │
    │  ...                          │
    └───────────────────────────────┘
    """

    # Colors
    BG_DARK = "#0F1B2D"
    BG_PANEL = "#162640"
    ACCENT = "#E8792B"
    TEXT_LIGHT = "#E8ECF1"
    TEXT_MUTED = "#6B7B8D"
    RED = "#DC3545"

    def __init__(
        self,
        root: tk.Tk,
        num_classes: int = NUM_CLASSES,
        topk: int = TOPK,
        camera_index: int = 0,
        width: int = VIDEO_WIDTH,
        height: int = VIDEO_HEIGHT,
        fps: int = TARGET_FPS,
    ):
        self.root = root
        self.root.title("KNN Camera Classifier")
        self.root.configure(bg=self.BG_DARK)

        self.num_classes = num_classes
        self.topk = topk
        self.camera_index = camera_index
        self.video_size = (width, height)
        self.frame_interval = 1.0 / fps

        self.controller = LabelController()
        self.meter = FpsMeter()
        self.classifier: Optional[KNNImageClassifier] = None
        self.camera: Optional[CameraSource] = None
        self.render_loop: Optional[RenderLoop] = None
        self.status_labels: list[tk.Label] = []
        self._closed = False

        self.root.protocol("WM_DELETE_WINDOW", self._on_close)
        self._build_ui()

    def _build_ui(self):
        header = tk.Frame(self.root, bg=self.ACCENT, height=4)
        header.pack(fill="x")

        self.loading_label = tk.Label(
            self.root, text="Loading the model...",
            font=("Calibri", 14), fg=self.TEXT_MUTED, bg=self.BG_DARK,
        )
        self.loading_label.pack(padx=20, pady=20)

        # Hidden until the model is loaded
        self.main_frame = tk.Frame(self.root, bg=self.BG_DARK, padx=10, pady=10)

        # Hidden unless the camera fails
        self.info_label = tk.Label(
            self.root, text="", wraplength=360,
            font=("Calibri", 11), fg=self.RED, bg=self.BG_DARK,
        )

        self.fps_label = tk.Label(
            self.main_frame, text="FPS: 0.0", anchor="w",
            font=("Consolas", 10), fg=self.ACCENT, bg=self.BG_DARK,
        )
        self.fps_label.pack(fill="x")

        self.video_label = tk.Label(
            self.main_frame, bg=self.BG_PANEL, text="Waiting for camera...",
            font=("Calibri", 11), fg=self.TEXT_MUTED,
        )
        self.video_label.pack(pady=(5, 10))

    def _setup_gui(self):
        """Add a train button, clear button and status text per class."""
        views = self.controller.setup(self.num_classes)

        for i, view in enumerate(views):
            row = tk.Frame(self.main_frame, bg=self.BG_DARK)
            row.pack(fill="x", pady=(0, 10))

            button = tk.Button(
                row, text=f"Train {i}", font=("Trebuchet MS", 11, "bold"),
                relief="flat", padx=10,
            )
            button.pack(side="left")

            # Hold to train
            button.bind("<ButtonPress-1>", lambda _e, i=i: self.controller.press(i))
            button.bind("<ButtonRelease-1>", lambda _e, i=i: self.controller.release(i))

            tk.Button(
                row, text="Clear", font=("Calibri", 9), relief="flat",
                command=lambda i=i: self._clear_class(i),
            ).pack(side="left", padx=(5, 0))

            label = tk.Label(
                row, text=f" {view.text}", anchor="w",
                font=("Calibri", 11), fg=self.TEXT_LIGHT, bg=self.BG_DARK,
            )
            label.pack(side="left", fill="x")
            self.status_labels.append(label)

        tk.Button(
            self.main_frame, text="Clear all", font=("Calibri", 9), relief="flat",
            command=self._clear_all_classes,
        ).pack(anchor="w")

    def _clear_class(self, class_index: int):
        self.classifier.clear_class(class_index)
        self.controller.update(class_index, 0, False, 0.0)
        self._render_labels()

    def _clear_all_classes(self):
        self.classifier.clear_all_classes()
        for i in range(self.num_classes):
            self.controller.update(i, 0, False, 0.0)
        self._render_labels()

    # ── Lifecycle ──

    async def bind_page(self):
        """Load the model, build the GUI, acquire the camera and run the loop."""
        self.root.update()
        self.classifier = await self._pump_until(
            asyncio.to_thread(load, self.num_classes, self.topk)
        )

        self.loading_label.pack_forget()
        self.main_frame.pack(fill="both", expand=True)

        self._setup_gui()
        self.root.update()

        try:
            camera = CameraSource(
                device_index=self.camera_index,
                width=self.video_size[0],
                height=self.video_size[1],
            )
            self.camera = await self._pump_until(camera.acquire())
        except UnsupportedEnvironmentError as e:
            self.info_label.configure(text=CAMERA_FALLBACK_TEXT)
            self.info_label.pack(padx=10, pady=(0, 10))
            self.root.update()
            logger.error("Camera unavailable | %s", e)
            raise

        self.render_loop = RenderLoop(
            self.camera,
            self.classifier,
            self.controller,
            num_classes=self.num_classes,
            frame_interval=self.frame_interval,
            refresh=self._refresh,
            meter=self.meter,
        )
        if self._closed:
            self.destroy()
            return

        try:
            await self.render_loop.run()
        finally:
            self.destroy()

    async def _pump_until(self, awaitable: Awaitable):
        """Await `awaitable` while keeping the window responsive."""
        task = asyncio.ensure_future(awaitable)
        while not task.done():
            if not self._closed:
                self.root.update()
            await asyncio.sleep(0.05)
        return task.result()

    # ── Display ──

    def _render_labels(self):
        for label, view in zip(self.status_labels, self.controller.views):
            weight = "bold" if view.bold else "normal"
            label.configure(text=f" {view.text}", font=("Calibri", 11, weight))

    def _render_video(self):
        with self.camera.capture() as frame:
            # Front camera view, mirrored
            img = cv2.flip(frame.pixels, 1)
            img = cv2.resize(img, self.video_size)

        photo = ImageTk.PhotoImage(Image.fromarray(img))
        self.video_label.configure(image=photo, text="")
        self.video_label._photo = photo

    def _refresh(self):
        """Called after every render tick to repaint the window."""
        if self._closed:
            return
        self._render_video()
        self._render_labels()
        self.fps_label.configure(
            text=f"FPS: {self.meter.fps:.1f} | tick: {self.meter.tick_ms:.0f} ms"
        )
        self.root.update()

    def _on_close(self):
        self._closed = True
        if self.render_loop is not None:
            self.render_loop.stop()

    def destroy(self):
        if self.camera is not None:
            self.camera.close()
            self.camera = None
        try:
            self.root.destroy()
        except tk.TclError:
            pass


# ══════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════

def main():
    parser = argparse.ArgumentParser(description="Live webcam KNN classifier demo")
    parser.add_argument(
        "--num-classes", type=int, default=NUM_CLASSES,
        help=f"Number of classes to train (default: {NUM_CLASSES})",
    )
    parser.add_argument(
        "--topk", type=int, default=TOPK,
        help=f"K value for KNN (default: {TOPK})",
    )
    parser.add_argument("--camera", type=int, default=0, help="OpenCV camera index")
    parser.add_argument("--width", type=int, default=VIDEO_WIDTH, help="Video width")
    parser.add_argument("--height", type=int, default=VIDEO_HEIGHT, help="Video height")
    parser.add_argument("--fps", type=int, default=TARGET_FPS, help="Target render rate")
    args = parser.parse_args()

    root = tk.Tk()
    app = CameraDemoApp(
        root,
        num_classes=args.num_classes,
        topk=args.topk,
        camera_index=args.camera,
        width=args.width,
        height=args.height,
        fps=args.fps,
    )

    try:
        asyncio.run(app.bind_page())
    except UnsupportedEnvironmentError:
        # Keep the fallback message on screen until the window is closed
        root.protocol("WM_DELETE_WINDOW", root.destroy)
        root.mainloop()
        sys.exit(1)
    except KeyboardInterrupt:
        app.destroy()


if __name__ == "__main__":
    main()
