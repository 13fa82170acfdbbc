"""Tests for the preprocessing module."""
import numpy as np
import torch
from torch import nn

from knn_camera.preprocessing import (
    FeatureExtractor,
    preprocess_frame,
    get_inference_transform,
    IMAGE_SIZE,
)


def _make_dummy_frame(h: int = 300, w: int = 300) -> np.ndarray:
    """Create a random RGB uint8 image."""
    return np.random.randint(0, 256, (h, w, 3), dtype=np.uint8)


def _pooling_model() -> nn.Module:
    return nn.Sequential(nn.AdaptiveAvgPool2d(1), nn.Flatten())


class TestPreprocessFrame:
    def test_output_shape(self):
        frame = _make_dummy_frame()
        tensor = preprocess_frame(frame)
        assert tensor.shape == (1, 3, IMAGE_SIZE[0], IMAGE_SIZE[1])

    def test_output_dtype(self):
        frame = _make_dummy_frame()
        tensor = preprocess_frame(frame)
        assert tensor.dtype == torch.float32

    def test_different_input_sizes(self):
        for h, w in [(100, 100), (250, 300), (480, 640)]:
            frame = _make_dummy_frame(h, w)
            tensor = preprocess_frame(frame)
            assert tensor.shape == (1, 3, IMAGE_SIZE[0], IMAGE_SIZE[1])

    def test_custom_transform(self):
        frame = _make_dummy_frame()
        tensor = preprocess_frame(frame, get_inference_transform())
        assert tensor.dim() == 4


class TestFeatureExtractor:
    def test_embedding_is_flat(self):
        extractor = FeatureExtractor(model=_pooling_model(), device="cpu")
        vector = extractor(_make_dummy_frame(250, 300))
        assert vector.shape == (3,)

    def test_same_frame_same_embedding(self):
        extractor = FeatureExtractor(model=_pooling_model(), device="cpu")
        frame = _make_dummy_frame()
        torch.testing.assert_close(extractor(frame), extractor(frame))

    def test_model_in_eval_mode(self):
        extractor = FeatureExtractor(model=_pooling_model(), device="cpu")
        assert not extractor.model.training
