# Path: core/vision/__init__.py
# Purpose: Package initializer for vision model implementations and interfaces.
# Layer: core/vision.
# Details: Exposes the base interface, the deterministic stub, and a settings-driven factory.

from __future__ import annotations

from config.settings import VisionSettings

from .base import VisionModel
from .stub_model import StubVisionModel


def create_vision_model(settings: VisionSettings | None = None) -> VisionModel:
    """Instantiate the vision model named in the settings."""

    settings = settings or VisionSettings()
    if settings.name == "stub":
        return StubVisionModel(dim=settings.dim)
    if settings.name == "clip":
        from .clip_model import ClipVisionModel

        return ClipVisionModel(model_name=settings.model_name, device=settings.device)
    raise ValueError(f"Unknown vision model: {settings.name}")


__all__ = ["StubVisionModel", "VisionModel", "create_vision_model"]
