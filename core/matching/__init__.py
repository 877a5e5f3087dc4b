# Path: core/matching/__init__.py
# Purpose: Package initializer for track-photo matching.
# Layer: core/matching.
# Details: Exposes the scorer and track profile helpers.

from .profile import MOOD_CATEGORIES, MOOD_PALETTES, TrackProfile, build_profile, classify_track_mood, normalize_mood
from .scorer import NO_MATCH_PREFIX, NO_PHOTOS_JUSTIFICATION, MatchScorer

__all__ = [
    "MOOD_CATEGORIES",
    "MOOD_PALETTES",
    "MatchScorer",
    "NO_MATCH_PREFIX",
    "NO_PHOTOS_JUSTIFICATION",
    "TrackProfile",
    "build_profile",
    "classify_track_mood",
    "normalize_mood",
]
