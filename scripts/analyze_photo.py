# Path: scripts/analyze_photo.py
# Purpose: CLI tool to print the extracted features of individual photos.
# Layer: scripts.
# Details: Useful for inspecting palettes, moods, and confidence values outside a batch run.

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, setup_logging
from core.features.extractor import FeatureExtractor
from core.models.domain import PhotoFeatureSet, PhotoInput
from core.vision import create_vision_model


def describe(features: PhotoFeatureSet) -> dict:
    return {
        "id": features.id,
        "size": [features.width, features.height],
        "format": features.format,
        "quality": round(features.quality, 4),
        "mood": features.mood,
        "saturation": round(features.saturation, 4),
        "brightness": round(features.brightness, 4),
        "contrast": features.contrast,
        "color_harmony": round(features.color_harmony, 4),
        "dominant_colors": [color.to_dict() for color in features.dominant_colors],
        "pose": {"detected": features.pose.detected, "type": features.pose.pose_type},
        "faces": len(features.faces),
        "perceptual_hash": features.perceptual_hash,
        "confidence": round(features.confidence, 4),
        "fallback": features.is_fallback,
    }


def main() -> None:
    """Analyze photos given as paths or URLs."""

    parser = argparse.ArgumentParser(description="Extract cover-matching features from photos")
    parser.add_argument("sources", nargs="+", help="Photo paths or http(s) URLs")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    setup_logging(settings.log_level)
    extractor = FeatureExtractor(create_vision_model(settings.vision), settings.extractor)

    report = [describe(extractor.analyze(PhotoInput(id=source, url=source))) for source in args.sources]
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
