# Path: core/features/extractor.py
# Purpose: Turn photo inputs into immutable PhotoFeatureSets.
# Layer: core/features.
# Details: Decodes with Pillow, runs the color pass, and delegates pose/face/embedding work to a VisionModel.

from __future__ import annotations

from io import BytesIO
from typing import Sequence

import imagehash
import numpy as np
from PIL import Image

from config.log import get_logger
from config.settings import ExtractorSettings
from core.errors import DecodeError
from core.models.domain import PhotoFeatureSet, PhotoInput
from core.vision.base import VisionModel

from .color import analyze_colors, to_eight_bit
from .fingerprint import location_fingerprint, photo_fingerprint
from .loader import load_photo_bytes

logger = get_logger("features")

EMBEDDING_CONFIDENCE = 0.7
FALLBACK_DIMENSIONS = (1024, 1024)
FALLBACK_QUALITY = 0.4
FALLBACK_CONFIDENCE = 0.3


def image_quality(width: int, height: int) -> float:
    """Score resolution and aspect ratio; extreme aspect ratios lose 0.2."""

    resolution_bonus = min(0.3, (width * height) / (2048 * 2048))
    aspect_ratio = width / height if height else 0.0
    penalty = 0.2 if aspect_ratio < 0.5 or aspect_ratio > 2.0 else 0.0
    return max(0.0, min(1.0, 0.8 + resolution_bonus - penalty))


def overall_confidence(scores: Sequence[float]) -> float:
    """Average the component scores, discounted when they disagree."""

    if not scores:
        return 0.0
    values = np.asarray(scores, dtype=np.float64)
    average = float(values.mean())
    variance = float(((values - average) ** 2).mean())
    reliability = max(0.7, 1 - variance / 2)
    return max(0.0, min(1.0, average * reliability))


class FeatureExtractor:
    """Compute photo features; decode failures degrade to a fallback feature set."""

    def __init__(self, vision_model: VisionModel, settings: ExtractorSettings | None = None) -> None:
        self.vision_model = vision_model
        self.settings = settings or ExtractorSettings()

    def fingerprint(self, photo: PhotoInput) -> str:
        """Return the cache key for a photo input."""

        if photo.data is None and not photo.url:
            return location_fingerprint(f"photo:{photo.id}")
        return photo_fingerprint(photo, self.settings.fingerprint_prefix_bytes)

    def analyze(self, photo: PhotoInput) -> PhotoFeatureSet:
        """
        Analyze one photo.

        External calls:
        - core/features/loader.py::load_photo_bytes - resolves bytes from data, path, or URL.
        - core/vision/base.py::VisionModel - pose, face, and embedding inference.
        """

        key = self.fingerprint(photo)
        try:
            content = load_photo_bytes(photo, self.settings.max_image_bytes, self.settings.fetch_timeout)
            image = self._decode(content)
        except DecodeError as exc:
            logger.warning("Image analysis failed for %s (%s): %s", photo.id, key, exc)
            return self.fallback(key, photo)
        return self._compute(key, content, image)

    def fallback(self, key: str, photo: PhotoInput) -> PhotoFeatureSet:
        """Return the fixed feature set used when a photo cannot be decoded."""

        embedding = np.zeros(self.vision_model.dim, dtype=np.float32)
        embedding.setflags(write=False)
        width, height = FALLBACK_DIMENSIONS
        return PhotoFeatureSet(
            id=key,
            width=width,
            height=height,
            size_bytes=len(photo.data) if photo.data is not None else 0,
            format="unknown",
            quality=FALLBACK_QUALITY,
            palette=(),
            saturation=0.5,
            brightness=0.5,
            contrast=0.5,
            color_quality=0.5,
            color_harmony=0.5,
            mood="neutral",
            embedding=embedding,
            confidence=FALLBACK_CONFIDENCE,
            is_fallback=True,
        )

    @staticmethod
    def _decode(content: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(content))
            image.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Failed to load image: {exc}") from exc
        if image.width == 0 or image.height == 0:
            raise DecodeError("Image has no pixels.")
        return image

    def _compute(self, key: str, content: bytes, image: Image.Image) -> PhotoFeatureSet:
        cfg = self.settings
        width, height = image.size
        image_format = (image.format or "unknown").lower()
        image = to_eight_bit(image)

        colors = analyze_colors(
            image,
            max_side=cfg.palette_max_side,
            sample_target=cfg.palette_sample_target,
            alpha_threshold=cfg.alpha_threshold,
            step=cfg.quantization_step,
        )

        rgb = image.convert("RGB")
        pose = self.vision_model.detect_pose(rgb, content)
        faces = tuple(self.vision_model.detect_faces(rgb, content))
        embedding = np.asarray(self.vision_model.embed(rgb, content), dtype=np.float32)
        embedding.setflags(write=False)

        confidence = overall_confidence([
            pose.confidence,
            0.6 if faces else 0.3,
            colors.quality,
            EMBEDDING_CONFIDENCE,
        ])

        logger.debug("Analyzed %s: %dx%d %s mood=%s confidence=%.3f", key, width, height, image_format, colors.mood, confidence)
        return PhotoFeatureSet(
            id=key,
            width=width,
            height=height,
            size_bytes=len(content),
            format=image_format,
            quality=image_quality(width, height),
            palette=colors.palette,
            saturation=colors.saturation,
            brightness=colors.brightness,
            contrast=colors.contrast,
            color_quality=colors.quality,
            color_harmony=colors.harmony,
            mood=colors.mood,
            embedding=embedding,
            confidence=confidence,
            pose=pose,
            faces=faces,
            perceptual_hash=str(imagehash.phash(rgb)),
        )
