# Path: core/errors.py
# Purpose: Define the error taxonomy shared by extraction, caching, scoring, and batching.
# Layer: core.
# Details: Only ValidationError is expected to reach callers of the batch orchestrator.

from __future__ import annotations


class CoverMatchError(Exception):
    """Base class for all errors raised by the matching core."""


class DecodeError(CoverMatchError):
    """Photo bytes could not be loaded or decoded into pixels."""


class ValidationError(CoverMatchError, ValueError):
    """Batch input is malformed; raised before any work starts."""


class PerItemError(CoverMatchError):
    """Failure scoped to a single track of a batch."""

    def __init__(self, track_id: str, cause: BaseException) -> None:
        super().__init__(f"Matching failed for track {track_id}: {cause}")
        self.track_id = track_id
        self.cause = cause


class CacheError(CoverMatchError):
    """Internal cache invariant was violated."""


__all__ = ["CacheError", "CoverMatchError", "DecodeError", "PerItemError", "ValidationError"]
