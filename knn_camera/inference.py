"""
K-nearest-neighbor image classifier.

Stores one embedding per training example and classifies new frames
by cosine similarity against everything stored: the top-k most
similar examples vote, and each class's share of the votes is its
confidence.

Usage:
    classifier = load(num_classes=3, k=10)
    classifier.train(frame, 0)
    result = await classifier.predict(frame)
    print(result.class_index, result.confidences)
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
import torch
import torch.nn.functional as F

from knn_camera.acquisition import Frame
from knn_camera.preprocessing import FeatureExtractor
from knn_camera.utils import setup_logging, NUM_CLASSES, TOPK

logger = setup_logging(__name__)


class EmptyClassifierError(ValueError):
    """predict() was called before any example was added."""


@dataclass
class PredictionResult:
    class_index: int
    confidences: list[float] = field(default_factory=list)


class KNNImageClassifier:
    """
    Nearest-neighbor classifier over frame embeddings.

    Frames are never retained: train() keeps a detached copy of the
    embedding only, so the caller may release the frame right after.
    """

    def __init__(
        self,
        num_classes: int,
        k: int,
        extractor: Callable[[np.ndarray], torch.Tensor],
    ):
        if num_classes < 1:
            raise ValueError(f"num_classes must be positive, got {num_classes}")
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")

        self.num_classes = num_classes
        self.k = k
        self.extractor = extractor
        self._examples: list[list[torch.Tensor]] = [[] for _ in range(num_classes)]
        self._inference_count = 0

    def _embed(self, frame: Frame) -> torch.Tensor:
        vector = self.extractor(frame.pixels).detach().float().flatten()
        return F.normalize(vector, dim=0)

    def _check_class(self, class_index: int) -> None:
        if not 0 <= class_index < self.num_classes:
            raise ValueError(
                f"class_index {class_index} out of range [0, {self.num_classes})"
            )

    def train(self, frame: Frame, class_index: int) -> None:
        """Add the frame as one example of `class_index`."""
        self._check_class(class_index)
        self._examples[class_index].append(self._embed(frame).clone())

        logger.debug(
            "Example added | frame=%d | class=%d | count=%d",
            frame.frame_id,
            class_index,
            len(self._examples[class_index]),
        )

    def example_counts(self) -> list[int]:
        return [len(examples) for examples in self._examples]

    def clear_class(self, class_index: int) -> None:
        self._check_class(class_index)
        self._examples[class_index] = []
        logger.info("Class cleared | class=%d", class_index)

    def clear_all_classes(self) -> None:
        self._examples = [[] for _ in range(self.num_classes)]
        logger.info("All classes cleared")

    async def predict(self, frame: Frame) -> PredictionResult:
        """
        Classify a frame against every stored example.

        The similarity search runs in a worker thread; the frame must
        stay unreleased until this coroutine returns.

        Raises:
            EmptyClassifierError: no examples have been added yet.
        """
        if sum(self.example_counts()) == 0:
            raise EmptyClassifierError(
                "Cannot predict without examples. Add examples with train() first."
            )
        return await asyncio.to_thread(self._predict_sync, frame)

    def _predict_sync(self, frame: Frame) -> PredictionResult:
        start = time.perf_counter()

        query = self._embed(frame)

        vectors = []
        labels = []
        for class_index, examples in enumerate(self._examples):
            vectors.extend(examples)
            labels.extend([class_index] * len(examples))
        bank = torch.stack(vectors)
        label_tensor = torch.tensor(labels, dtype=torch.long)

        similarities = bank @ query
        k = min(self.k, len(vectors))
        top = torch.topk(similarities, k).indices

        votes = torch.bincount(label_tensor[top], minlength=self.num_classes)
        confidences = (votes.float() / k).tolist()
        # argmax returns the first maximal index on ties
        class_index = int(torch.argmax(votes).item())

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._inference_count += 1

        logger.debug(
            "Inference #%d | frame=%d | class=%d | confidence=%.2f | k=%d | time=%.1fms",
            self._inference_count,
            frame.frame_id,
            class_index,
            confidences[class_index],
            k,
            elapsed_ms,
        )

        return PredictionResult(
            class_index=class_index,
            confidences=confidences,
        )


def load(
    num_classes: int = NUM_CLASSES,
    k: int = TOPK,
    extractor: Optional[Callable[[np.ndarray], torch.Tensor]] = None,
    device: Optional[str] = None,
) -> KNNImageClassifier:
    """
    Build a classifier, loading the pretrained feature extractor.

    Args:
        num_classes: Number of classes to distinguish.
        k: Number of nearest neighbors that vote.
        extractor: Frame -> embedding callable. Defaults to FeatureExtractor.
        device: Torch device for the default extractor.
    """
    start = time.perf_counter()

    if extractor is None:
        extractor = FeatureExtractor(device=device)
    classifier = KNNImageClassifier(num_classes, k, extractor)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "KNN classifier loaded | classes=%d | k=%d | time=%.0fms",
        num_classes,
        k,
        elapsed_ms,
    )
    return classifier
