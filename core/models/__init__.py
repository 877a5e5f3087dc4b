# Path: core/models/__init__.py
# Purpose: Package initializer for domain models.
# Layer: core/models.
# Details: Re-exports dataclasses shared by extraction, scoring, and batch layers.

from .domain import (
    BatchResult,
    CandidateScore,
    Color,
    FaceFeatures,
    ItemState,
    MatchResult,
    PhotoFeatureSet,
    PhotoInput,
    PoseFeatures,
    ProcessingStats,
    Recommendation,
    TrackDescriptor,
)

__all__ = [
    "BatchResult",
    "CandidateScore",
    "Color",
    "FaceFeatures",
    "ItemState",
    "MatchResult",
    "PhotoFeatureSet",
    "PhotoInput",
    "PoseFeatures",
    "ProcessingStats",
    "Recommendation",
    "TrackDescriptor",
]
