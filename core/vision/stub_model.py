# Path: core/vision/stub_model.py
# Purpose: Provide a deterministic stand-in vision model.
# Layer: core/vision.
# Details: Derives pose, face, and embedding outputs from a seeded generator so identical bytes give identical features.

from __future__ import annotations

import hashlib
from typing import List

import numpy as np
from PIL import Image

from core.features.fingerprint import DEFAULT_PREFIX_BYTES, rolling_hash, seeded_generator
from core.models.domain import FaceFeatures, PoseFeatures

from .base import VisionModel


class StubVisionModel(VisionModel):
    """Placeholder that mimics pose/face/embedding models without any inference."""

    def __init__(self, dim: int = 512, prefix_bytes: int = DEFAULT_PREFIX_BYTES) -> None:
        self.name = "stub"
        self.dim = dim
        self.prefix_bytes = prefix_bytes

    def detect_pose(self, image: Image.Image, content: bytes) -> PoseFeatures:
        """Simulate pose detection; roughly 70% of images report a pose."""

        rng = seeded_generator(self._seed(content, salt=1))
        detected = rng() > 0.3
        confidence = 0.4 + rng() * 0.4 if detected else 0.2
        return PoseFeatures(
            detected=detected,
            confidence=confidence,
            pose_type=self.classify_pose_type(confidence),
            stability=confidence * 0.8,
        )

    def detect_faces(self, image: Image.Image, content: bytes) -> List[FaceFeatures]:
        """Simulate face detection with at most one face centred in the upper half."""

        rng = seeded_generator(self._seed(content, salt=2))
        if rng() <= 0.4:
            return []
        width, height = image.size
        box = (width // 4, height // 8, width // 2, height // 2)
        return [FaceFeatures(bounding_box=box, confidence=0.5 + rng() * 0.4)]

    def embed(self, image: Image.Image, content: bytes) -> np.ndarray:
        """Draw ``dim`` values in [-1, 1] from a generator seeded by the content hash."""

        rng = seeded_generator(rolling_hash(content, self.prefix_bytes))
        vector = np.array([(rng() - 0.5) * 2 for _ in range(self.dim)], dtype=np.float64)
        return self._normalize(vector)

    def embed_text(self, text: str) -> np.ndarray:
        """Generate a deterministic text embedding based on hashing."""

        digest = hashlib.sha256(text.strip().lower().encode("utf-8")).digest()
        rng = seeded_generator(int.from_bytes(digest[:8], "big"))
        vector = np.array([(rng() - 0.5) * 2 for _ in range(self.dim)], dtype=np.float64)
        return self._normalize(vector)

    def _seed(self, content: bytes, salt: int) -> int:
        return rolling_hash(content, self.prefix_bytes) + salt * 7919
