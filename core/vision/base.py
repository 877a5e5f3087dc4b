# Path: core/vision/base.py
# Purpose: Define the VisionModel interface for pose, face, and embedding inference.
# Layer: core/vision.
# Details: Provides abstract methods so the feature extractor can run against stubs or real models.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np
from PIL import Image

from core.models.domain import FaceFeatures, PoseFeatures


class VisionModel(ABC):
    """Abstract base class for vision capabilities injected into the feature extractor.

    Every method receives the decoded image and the raw bytes it came from;
    implementations may use either. Identical inputs must produce identical outputs.
    """

    name: str
    dim: int

    @abstractmethod
    def detect_pose(self, image: Image.Image, content: bytes) -> PoseFeatures:
        """Return pose detection results for an image."""

    @abstractmethod
    def detect_faces(self, image: Image.Image, content: bytes) -> List[FaceFeatures]:
        """Return detected faces, empty when none are found."""

    @abstractmethod
    def embed(self, image: Image.Image, content: bytes) -> np.ndarray:
        """Return an L2-normalized image embedding of length ``dim``."""

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """Return an L2-normalized text embedding comparable to image embeddings."""

    @staticmethod
    def classify_pose_type(confidence: float) -> str:
        """Map pose confidence to a coarse pose label."""

        if confidence > 0.7:
            return "standing"
        if confidence > 0.5:
            return "sitting"
        return "unknown"

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)
