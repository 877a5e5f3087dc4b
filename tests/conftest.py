"""Shared test fixtures."""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from config.settings import AppSettings
from core.features.cache import CachedFeatureExtractor, FeatureCache
from core.features.extractor import FeatureExtractor
from core.models.domain import Color, PhotoFeatureSet, PhotoInput, TrackDescriptor
from core.vision.stub_model import StubVisionModel


def make_image_bytes(color=(255, 0, 0), size=(64, 64), mode="RGB", fmt="PNG") -> bytes:
    """Encode a solid-color image."""
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_split_image_bytes(left, right, size=(64, 64), mode="RGB") -> bytes:
    """Encode an image whose left half is ``left`` and right half is ``right``."""
    width, height = size
    image = Image.new(mode, size, left)
    image.paste(Image.new(mode, (width - width // 2, height), right), (width // 2, 0))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def make_photo(photo_id: str, color=(255, 0, 0), size=(64, 64)) -> PhotoInput:
    return PhotoInput(id=photo_id, data=make_image_bytes(color, size))


def make_track(track_id: str = "track-1", mood="Happy", energy=0.8, **kwargs) -> TrackDescriptor:
    return TrackDescriptor(id=track_id, title=f"Title {track_id}", artist="Artist", mood=mood, energy=energy, **kwargs)


def make_color(rgb=(255, 0, 0), percentage=100.0) -> Color:
    return Color(hex="#%02x%02x%02x" % rgb, rgb=rgb, hsl=(0.0, 100.0, 50.0), percentage=percentage)


def make_features(
    photo_id: str = "photo",
    mood: str = "neutral",
    brightness: float = 0.5,
    saturation: float = 0.5,
    palette=(),
    width: int = 1024,
    height: int = 1024,
    quality: float = 0.8,
    harmony: float = 0.5,
    embedding=None,
    perceptual_hash=None,
    dim: int = 512,
) -> PhotoFeatureSet:
    """Build a feature set directly, bypassing image decoding."""
    return PhotoFeatureSet(
        id=photo_id,
        width=width,
        height=height,
        size_bytes=1000,
        format="png",
        quality=quality,
        palette=tuple(palette),
        saturation=saturation,
        brightness=brightness,
        contrast=0.6,
        color_quality=0.5,
        color_harmony=harmony,
        mood=mood,
        embedding=np.zeros(dim, dtype=np.float32) if embedding is None else embedding,
        confidence=0.6,
        perceptual_hash=perceptual_hash,
    )


@pytest.fixture
def vision_model() -> StubVisionModel:
    return StubVisionModel()


@pytest.fixture
def extractor(vision_model) -> FeatureExtractor:
    return FeatureExtractor(vision_model)


@pytest.fixture
def cached_extractor(extractor) -> CachedFeatureExtractor:
    return CachedFeatureExtractor(extractor, FeatureCache(capacity=100))


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture
def red_png() -> bytes:
    return make_image_bytes((255, 0, 0))
