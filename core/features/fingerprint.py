# Path: core/features/fingerprint.py
# Purpose: Derive deterministic content fingerprints and seeds from photo bytes.
# Layer: core/features.
# Details: A 32-bit rolling hash over a byte prefix keys the feature cache and seeds the stub vision model.

from __future__ import annotations

import hashlib
from typing import Callable

from core.models.domain import PhotoInput

DEFAULT_PREFIX_BYTES = 50_000

_LCG_MULTIPLIER = 9301
_LCG_INCREMENT = 49297
_LCG_MODULUS = 233280


def rolling_hash(data: bytes, prefix_bytes: int = DEFAULT_PREFIX_BYTES) -> int:
    """Return the non-negative ``h = h * 31 + byte`` hash of the first ``prefix_bytes`` bytes.

    The accumulator wraps to a signed 32-bit integer after every byte, so the
    result fits in 31 bits once the sign is dropped.
    """

    value = 0
    for byte in data[:prefix_bytes]:
        value = ((value << 5) - value + byte) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def content_fingerprint(data: bytes, prefix_bytes: int = DEFAULT_PREFIX_BYTES) -> str:
    """Return the cache key for raw photo bytes."""

    return f"img_{rolling_hash(data, prefix_bytes):08x}_{len(data)}"


def location_fingerprint(location: str) -> str:
    """Return the cache key for a photo known only by URL or path."""

    digest = hashlib.sha1(location.encode("utf-8")).hexdigest()
    return f"url_{digest}"


def photo_fingerprint(photo: PhotoInput, prefix_bytes: int = DEFAULT_PREFIX_BYTES) -> str:
    """Fingerprint a photo input, preferring its bytes over its location."""

    if photo.data is not None:
        return content_fingerprint(photo.data, prefix_bytes)
    if photo.url:
        return location_fingerprint(photo.url)
    raise ValueError(f"Photo {photo.id} has neither bytes nor a location.")


def seeded_generator(seed: int) -> Callable[[], float]:
    """Return a linear congruential generator yielding floats in [0, 1)."""

    state = seed % _LCG_MODULUS

    def _next() -> float:
        nonlocal state
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return state / _LCG_MODULUS

    return _next
