# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for feature extraction, caching, match scoring, batching, and vision models.

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ExtractorSettings(BaseModel):
    """Settings controlling how photo bytes are decoded and sampled."""

    palette_max_side: int = Field(default=512, ge=1, description="Longest side used for the palette/statistics pass.")
    palette_sample_target: int = Field(default=8000, ge=1, description="Approximate number of palette samples per image.")
    alpha_threshold: int = Field(default=128, ge=0, le=255, description="Minimum alpha for a pixel to count as opaque.")
    quantization_step: int = Field(default=32, ge=1, description="RGB quantization step for palette buckets.")
    fingerprint_prefix_bytes: int = Field(default=50_000, ge=1, description="Bytes hashed for fingerprints and seeds.")
    max_image_bytes: int = Field(default=10 * 1024 * 1024, ge=1, description="Largest accepted photo payload.")
    fetch_timeout: float = Field(default=30.0, gt=0, description="Timeout in seconds when fetching photo URLs.")


class CacheSettings(BaseModel):
    """Settings for the in-process feature cache."""

    capacity: int = Field(default=100, ge=1, description="Maximum number of cached feature sets (FIFO eviction).")


class MatchWeights(BaseModel):
    """Relative weights of the four match dimensions."""

    emotional_resonance: float = Field(default=0.40, ge=0.0)
    color_harmony: float = Field(default=0.25, ge=0.0)
    visual_theme: float = Field(default=0.20, ge=0.0)
    composition: float = Field(default=0.15, ge=0.0)

    @model_validator(mode="after")
    def _check_total(self) -> "MatchWeights":
        if self.total() <= 0:
            raise ValueError("Match weights must not sum to zero.")
        return self

    def total(self) -> float:
        return self.emotional_resonance + self.color_harmony + self.visual_theme + self.composition


class MatchSettings(BaseModel):
    """Settings for track-photo match scoring."""

    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0, description="Minimum score for a primary match.")
    prefer_alternatives: bool = Field(default=True, description="Expose a close runner-up as an alternative.")
    alternative_margin: float = Field(default=0.1, ge=0.0, le=1.0, description="Score gap allowed for alternatives.")
    max_variants: int = Field(default=3, ge=1, description="Upper bound for recommended cover variants.")
    duplicate_hash_distance: int = Field(default=8, ge=0, description="Perceptual hash distance treated as duplicate.")
    result_cache_capacity: int = Field(default=0, ge=0, description="Memoized match results per scorer; 0 disables the memo.")
    weights: MatchWeights = Field(default_factory=MatchWeights)


class BatchSettings(BaseModel):
    """Settings for bulk matching across many tracks."""

    concurrency: int = Field(default=2, ge=1, description="Number of tracks processed simultaneously.")


class VisionSettings(BaseModel):
    """Settings describing which vision model implementation to use and how to load it."""

    name: str = Field(default="stub", description="Identifier of the vision model implementation (stub or clip).")
    model_name: str = Field(default="openai/clip-vit-base-patch32", description="Checkpoint used by the clip model.")
    device: str = Field(default="cpu", description="Target device for model execution.")
    dim: int = Field(default=512, ge=1, description="Embedding dimensionality.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and scripts."""

    extractor: ExtractorSettings = Field(default_factory=ExtractorSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    matching: MatchSettings = Field(default_factory=MatchSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    vision: VisionSettings = Field(default_factory=VisionSettings)
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Instantiate settings, applying COVERMATCH_* environment overrides when present."""

        settings = cls()
        env = os.environ
        if "COVERMATCH_LOG_LEVEL" in env:
            settings.log_level = env["COVERMATCH_LOG_LEVEL"].upper()
        if "COVERMATCH_CONCURRENCY" in env:
            settings.batch = BatchSettings(concurrency=int(env["COVERMATCH_CONCURRENCY"]))
        if "COVERMATCH_CACHE_CAPACITY" in env:
            settings.cache = CacheSettings(capacity=int(env["COVERMATCH_CACHE_CAPACITY"]))
        if "COVERMATCH_MIN_CONFIDENCE" in env:
            payload = settings.matching.model_dump()
            payload["min_confidence"] = float(env["COVERMATCH_MIN_CONFIDENCE"])
            settings.matching = MatchSettings.model_validate(payload)
        if "COVERMATCH_VISION_MODEL" in env:
            settings.vision = settings.vision.model_copy(update={"name": env["COVERMATCH_VISION_MODEL"]})
        return settings

    @classmethod
    def from_file(cls, path: Path | str) -> "AppSettings":
        """Load settings from a JSON file; missing keys keep their defaults."""

        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(payload)


__all__ = [
    "AppSettings",
    "BatchSettings",
    "CacheSettings",
    "ExtractorSettings",
    "MatchSettings",
    "MatchWeights",
    "VisionSettings",
]
