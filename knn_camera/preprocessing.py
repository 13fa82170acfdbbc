"""
Image preprocessing and feature extraction.

Turns raw camera frames into embedding vectors for the KNN
classifier: resize + ImageNet normalization, then a pretrained
torchvision backbone with its classification head removed.
"""
import time

import numpy as np
import torch
from torch import nn
from torchvision import models, transforms

from knn_camera.utils import setup_logging, IMAGE_SIZE, BACKBONE, DEVICE

logger = setup_logging(__name__)

# ImageNet normalization (the backbone is ImageNet-pretrained)
IMAGENET_MEAN = [0.485, 0.456, 0.406]
IMAGENET_STD = [0.229, 0.224, 0.225]


def get_inference_transform() -> transforms.Compose:
    """
    Build the standard transform pipeline for inference.

    Returns:
        torchvision Compose transform.
    """
    return transforms.Compose([
        transforms.ToPILImage(),
        transforms.Resize(IMAGE_SIZE),
        transforms.ToTensor(),
        transforms.Normalize(mean=IMAGENET_MEAN, std=IMAGENET_STD),
    ])


def preprocess_frame(
    frame: np.ndarray,
    transform: transforms.Compose | None = None,
) -> torch.Tensor:
    """
    Preprocess a raw camera frame for model inference.

    Args:
        frame: RGB numpy array (H, W, 3), uint8.
        transform: Optional custom transform. Uses default if None.

    Returns:
        Preprocessed tensor of shape (1, 3, H, W).
    """
    start = time.perf_counter()

    if transform is None:
        transform = get_inference_transform()

    # Apply transforms
    tensor = transform(frame)

    # Add batch dimension
    tensor = tensor.unsqueeze(0)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(
        "Preprocessing complete | input=%s | output=%s | time=%.1fms",
        frame.shape,
        tuple(tensor.shape),
        elapsed_ms,
    )

    return tensor


def build_backbone(name: str = BACKBONE) -> nn.Module:
    """Load a pretrained torchvision classifier and strip its head."""
    weights = models.get_model_weights(name).DEFAULT
    model = models.get_model(name, weights=weights)
    model.classifier = nn.Identity()
    return model


class FeatureExtractor:
    """
    Embeds RGB frames into 1-D feature vectors.

    Usage:
        extractor = FeatureExtractor()
        vector = extractor(frame)   # torch.Tensor of shape (D,)
    """

    def __init__(
        self,
        model: nn.Module | None = None,
        device: str | None = None,
    ):
        """
        Args:
            model: Module mapping (1, 3, H, W) to (1, D). Defaults to the
                   pretrained BACKBONE.
            device: Torch device string. Defaults to the detected DEVICE.
        """
        self.device = device or DEVICE
        self.transform = get_inference_transform()
        self.model = (model if model is not None else build_backbone()).to(self.device)
        self.model.eval()

        logger.info(
            "FeatureExtractor initialized | model=%s | device=%s",
            type(self.model).__name__,
            self.device,
        )

    def __call__(self, frame: np.ndarray) -> torch.Tensor:
        tensor = preprocess_frame(frame, self.transform).to(self.device)
        with torch.no_grad():
            features = self.model(tensor)
        return features.flatten().cpu()
