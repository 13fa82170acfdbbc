"""Tests for the Tkinter application lifecycle."""
import asyncio
import tkinter as tk

import pytest

from knn_camera import app as app_module
from knn_camera.acquisition import CameraSource, UnsupportedEnvironmentError
from knn_camera.app import CAMERA_FALLBACK_TEXT, CameraDemoApp
from knn_camera.controller import NO_EXAMPLES_TEXT
from knn_camera.inference import KNNImageClassifier

from conftest import FakeCapture, flatten_extractor, make_dummy_frame


@pytest.fixture
def root():
    try:
        root = tk.Tk()
    except tk.TclError as e:
        pytest.skip(f"No display available: {e}")
    root.withdraw()
    yield root
    try:
        root.destroy()
    except tk.TclError:
        pass


@pytest.fixture
def fake_load(monkeypatch):
    monkeypatch.setattr(
        app_module, "load",
        lambda num_classes, k: KNNImageClassifier(num_classes, k, flatten_extractor),
    )


class TestCameraDemoApp:
    def test_missing_camera_shows_fallback(self, root, fake_load, monkeypatch):
        monkeypatch.setattr(
            app_module, "CameraSource",
            lambda **kwargs: CameraSource(
                capture_factory=lambda _idx: FakeCapture(opened=False), **kwargs
            ),
        )
        demo = CameraDemoApp(root, num_classes=3, topk=10)

        with pytest.raises(UnsupportedEnvironmentError):
            asyncio.run(demo.bind_page())

        assert demo.info_label["text"] == CAMERA_FALLBACK_TEXT
        assert demo.info_label.winfo_manager() == "pack"
        assert demo.main_frame.winfo_manager() == "pack"
        assert demo.loading_label.winfo_manager() == ""
        assert len(demo.status_labels) == 3

    def test_info_label_hidden_before_failure(self, root):
        demo = CameraDemoApp(root, num_classes=2)
        assert demo.info_label.winfo_manager() == ""
        assert demo.loading_label.winfo_manager() == "pack"
        assert demo.main_frame.winfo_manager() == ""

    def test_clear_all_resets_rows(self, root):
        demo = CameraDemoApp(root, num_classes=3, topk=10)
        demo.classifier = KNNImageClassifier(3, 10, flatten_extractor)
        demo._setup_gui()

        for class_index in (0, 2):
            with make_dummy_frame(class_index) as frame:
                demo.classifier.train(frame, class_index)
        demo.controller.update(0, 1, True, 0.5)
        demo.controller.update(2, 1, False, 0.5)

        demo._clear_all_classes()

        assert demo.classifier.example_counts() == [0, 0, 0]
        assert all(view.text == NO_EXAMPLES_TEXT for view in demo.controller.views)
        assert all(label["text"] == f" {NO_EXAMPLES_TEXT}" for label in demo.status_labels)
