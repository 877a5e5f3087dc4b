# Path: core/features/__init__.py
# Purpose: Package initializer for photo feature extraction.
# Layer: core/features.
# Details: Exposes the extractor, its cache, and fingerprint helpers.

from .cache import CachedFeatureExtractor, CacheStats, FeatureCache
from .extractor import FeatureExtractor, image_quality, overall_confidence
from .fingerprint import content_fingerprint, location_fingerprint, photo_fingerprint, rolling_hash
from .loader import SUPPORTED_EXTENSIONS, load_photo_bytes, scan_photo_folder

__all__ = [
    "CacheStats",
    "CachedFeatureExtractor",
    "FeatureCache",
    "FeatureExtractor",
    "SUPPORTED_EXTENSIONS",
    "content_fingerprint",
    "image_quality",
    "load_photo_bytes",
    "location_fingerprint",
    "overall_confidence",
    "photo_fingerprint",
    "rolling_hash",
    "scan_photo_folder",
]
