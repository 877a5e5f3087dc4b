# Path: config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models and logging setup for application-wide configuration.

from .log import get_logger, setup_logging
from .settings import (
    AppSettings,
    BatchSettings,
    CacheSettings,
    ExtractorSettings,
    MatchSettings,
    MatchWeights,
    VisionSettings,
)

__all__ = [
    "AppSettings",
    "BatchSettings",
    "CacheSettings",
    "ExtractorSettings",
    "MatchSettings",
    "MatchWeights",
    "VisionSettings",
    "get_logger",
    "setup_logging",
]
