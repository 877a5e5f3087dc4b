# Path: core/models/domain.py
# Purpose: Define domain models shared across extraction, scoring, and batch workflows.
# Layer: core/models.
# Details: Lightweight dataclasses simplify serialization between scripts, callers, and core services.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Color:
    """One palette entry with its share of the sampled pixels."""

    hex: str
    rgb: Tuple[int, int, int]
    hsl: Tuple[float, float, float]
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"hex": self.hex, "rgb": list(self.rgb), "hsl": list(self.hsl), "percentage": self.percentage}


@dataclass(frozen=True)
class PoseFeatures:
    """Result of a pose detection pass."""

    detected: bool
    confidence: float
    pose_type: str = "unknown"
    stability: float = 0.0


@dataclass(frozen=True)
class FaceFeatures:
    """A single detected face; bounding box is (x, y, width, height) in pixels."""

    bounding_box: Tuple[int, int, int, int]
    confidence: float


@dataclass(frozen=True)
class PhotoInput:
    """A candidate photo supplied by the caller, as raw bytes or a location."""

    id: str
    data: Optional[bytes] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class PhotoFeatureSet:
    """Immutable features computed for one photo, identified by its content fingerprint."""

    id: str
    width: int
    height: int
    size_bytes: int
    format: str
    quality: float
    palette: Tuple[Color, ...]
    saturation: float
    brightness: float
    contrast: float
    color_quality: float
    color_harmony: float
    mood: str
    embedding: np.ndarray = field(compare=False, repr=False)
    confidence: float
    pose: PoseFeatures = field(default_factory=lambda: PoseFeatures(detected=False, confidence=0.0))
    faces: Tuple[FaceFeatures, ...] = ()
    perceptual_hash: Optional[str] = None
    is_fallback: bool = False

    @property
    def dominant_colors(self) -> Tuple[Color, ...]:
        return self.palette[:5]

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 1.0

    @property
    def is_large(self) -> bool:
        return self.width >= 1024 and self.height >= 1024

    @property
    def is_square(self) -> bool:
        return abs(self.width - self.height) < 50

    @property
    def is_high_quality(self) -> bool:
        return self.quality > 0.7


@dataclass
class TrackDescriptor:
    """Track metadata and mood hints supplied by the music-metadata service."""

    id: str
    title: str = ""
    artist: str = ""
    mood: Optional[str] = None
    tempo: Optional[float] = None
    energy: Optional[float] = None
    color_palette: List[str] = field(default_factory=list)
    visual_themes: List[str] = field(default_factory=list)
    valence: Optional[float] = None
    danceability: Optional[float] = None
    acousticness: Optional[float] = None
    mode: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "TrackDescriptor":
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title", "")),
            artist=str(payload.get("artist", "")),
            mood=payload.get("mood"),
            tempo=payload.get("tempo"),
            energy=payload.get("energy"),
            color_palette=list(payload.get("color_palette") or payload.get("colorPalette") or []),
            visual_themes=list(payload.get("visual_themes") or payload.get("visualThemes") or []),
            valence=payload.get("valence"),
            danceability=payload.get("danceability"),
            acousticness=payload.get("acousticness"),
            mode=payload.get("mode"),
        )


@dataclass(frozen=True)
class CandidateScore:
    """Scoring breakdown for one candidate photo against one track."""

    photo_id: str
    emotional_resonance: float
    color_harmony: float
    visual_theme_match: float
    composition_suitability: float
    total: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "photo_id": self.photo_id,
            "emotional_resonance": round(self.emotional_resonance, 4),
            "color_harmony": round(self.color_harmony, 4),
            "visual_theme_match": round(self.visual_theme_match, 4),
            "composition_suitability": round(self.composition_suitability, 4),
            "total": round(self.total, 4),
        }


@dataclass
class MatchResult:
    """Outcome of matching one track against a photo pool."""

    track_id: str
    matched_photo_id: Optional[str]
    confidence: float
    justification: str
    breakdown: List[CandidateScore] = field(default_factory=list)
    alternative_photo_id: Optional[str] = None
    recommended_variant_count: int = 1
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track_id": self.track_id,
            "matched_photo_id": self.matched_photo_id,
            "confidence": round(self.confidence, 4),
            "justification": self.justification,
            "breakdown": [score.to_dict() for score in self.breakdown],
            "alternative_photo_id": self.alternative_photo_id,
            "recommended_variant_count": self.recommended_variant_count,
            "error": self.error,
        }


@dataclass
class Recommendation:
    """Primary photo plus ranked fallbacks for a single track."""

    primary_photo_id: Optional[str]
    alternative_photo_ids: List[str]
    confidence: float


@dataclass
class ProcessingStats:
    """Aggregated statistics for one batch call."""

    total_tracks: int
    successful_matches: int = 0
    failed_matches: int = 0
    cancelled: int = 0
    average_confidence: float = 0.0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tracks": self.total_tracks,
            "successful_matches": self.successful_matches,
            "failed_matches": self.failed_matches,
            "cancelled": self.cancelled,
            "average_confidence": round(self.average_confidence, 4),
            "processing_time_ms": round(self.processing_time_ms, 2),
        }


@dataclass
class BatchResult:
    """Ordered match results for a batch plus its statistics."""

    results: List[MatchResult]
    stats: ProcessingStats

    @property
    def overall_confidence(self) -> float:
        if not self.results:
            return 0.0
        return sum(result.confidence for result in self.results) / len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "stats": self.stats.to_dict(),
            "overall_confidence": round(self.overall_confidence, 4),
        }


class ItemState(str, Enum):
    """Lifecycle of a single track inside a batch."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
