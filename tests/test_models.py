"""Tests for domain models."""

from conftest import make_features
from core.models.domain import BatchResult, MatchResult, ProcessingStats, TrackDescriptor


def test_track_descriptor_accepts_camel_case():
    track = TrackDescriptor.from_dict(
        {"id": 7, "title": "Song", "mood": "Happy", "colorPalette": ["#fff"], "visualThemes": ["city"]}
    )
    assert track.id == "7"
    assert track.color_palette == ["#fff"]
    assert track.visual_themes == ["city"]
    assert track.energy is None


def test_feature_set_properties():
    features = make_features(width=2000, height=1000, quality=0.9)
    assert features.aspect_ratio == 2.0
    assert features.is_large is False
    assert features.is_square is False
    assert features.is_high_quality is True


def test_batch_result_overall_confidence():
    results = [
        MatchResult(track_id="a", matched_photo_id="p", confidence=0.8, justification="ok"),
        MatchResult(track_id="b", matched_photo_id=None, confidence=0.2, justification="none"),
    ]
    batch = BatchResult(results=results, stats=ProcessingStats(total_tracks=2))
    assert batch.overall_confidence == 0.5
    assert batch.to_dict()["overall_confidence"] == 0.5
