# Path: core/matching/scorer.py
# Purpose: Score candidate photos against a track's target profile and pick the best match.
# Layer: core/matching.
# Details: Blends mood, color, visual-theme, and composition agreement using configurable weights.

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Tuple

import imagehash
import numpy as np

from config.log import get_logger
from config.settings import MatchSettings
from core.features.cache import CacheStats, FeatureCache
from core.models.domain import CandidateScore, MatchResult, PhotoFeatureSet, Recommendation, TrackDescriptor
from core.vision.base import VisionModel

from .profile import TrackProfile, build_profile

logger = get_logger("matching")

MAX_RGB_DISTANCE = math.sqrt(3) * 255
NO_PHOTOS_JUSTIFICATION = "no photos supplied"
NO_MATCH_PREFIX = "AI could not determine a matching photo"

FACTOR_LABELS = {
    "emotional_resonance": "mood match",
    "color_harmony": "color harmony",
    "visual_theme_match": "visual theme match",
    "composition_suitability": "composition",
}


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class MatchScorer:
    """Rank candidate photos for a track and build MatchResults.

    Candidates are passed as a mapping of photo id to features; iteration order
    is the pool order and breaks score ties.
    """

    def __init__(
        self,
        settings: Optional[MatchSettings] = None,
        theme_encoder: Optional[VisionModel] = None,
        result_cache: Optional[FeatureCache[MatchResult]] = None,
    ) -> None:
        self.settings = settings or MatchSettings()
        self.theme_encoder = theme_encoder
        if result_cache is None and self.settings.result_cache_capacity > 0:
            result_cache = FeatureCache(self.settings.result_cache_capacity)
        self.result_cache = result_cache

    def rank(self, track: TrackDescriptor, candidates: Mapping[str, PhotoFeatureSet]) -> List[CandidateScore]:
        """Return one CandidateScore per candidate, best first."""

        return self._rank_profile(build_profile(track), candidates)

    def _rank_profile(self, profile: TrackProfile, candidates: Mapping[str, PhotoFeatureSet]) -> List[CandidateScore]:
        theme_vector = self._theme_vector(profile)
        scores = [
            self.score_candidate(profile, photo_id, features, theme_vector)
            for photo_id, features in candidates.items()
        ]
        return sorted(scores, key=lambda score: -score.total)

    def score_candidate(
        self,
        profile: TrackProfile,
        photo_id: str,
        features: PhotoFeatureSet,
        theme_vector: Optional[np.ndarray] = None,
    ) -> CandidateScore:
        """Score a single photo on each dimension and combine them with the configured weights."""

        emotional = self._emotional_resonance(profile, features)
        color = self._color_harmony(profile, features)
        theme = self._visual_theme_match(features, theme_vector)
        composition = self._composition_suitability(features)

        weights = self.settings.weights
        total = (
            weights.emotional_resonance * emotional
            + weights.color_harmony * color
            + weights.visual_theme * theme
            + weights.composition * composition
        ) / weights.total()

        return CandidateScore(
            photo_id=photo_id,
            emotional_resonance=emotional,
            color_harmony=color,
            visual_theme_match=theme,
            composition_suitability=composition,
            total=_clamp(total),
        )

    def match(
        self,
        track: TrackDescriptor,
        candidates: Mapping[str, PhotoFeatureSet],
        min_confidence: Optional[float] = None,
        prefer_alternatives: Optional[bool] = None,
    ) -> MatchResult:
        """Pick the primary photo (and optionally an alternative) for a track."""

        min_confidence = self.settings.min_confidence if min_confidence is None else min_confidence
        prefer_alternatives = self.settings.prefer_alternatives if prefer_alternatives is None else prefer_alternatives

        if not candidates:
            return MatchResult(track_id=track.id, matched_photo_id=None, confidence=0.0, justification=NO_PHOTOS_JUSTIFICATION)

        if self.result_cache is None:
            return self._select(track, candidates, min_confidence, prefer_alternatives)

        # Only confident matches are remembered; shortfalls are recomputed each time.
        return self.result_cache.get_or_compute(
            self._result_key(track, candidates, min_confidence, prefer_alternatives),
            lambda: self._select(track, candidates, min_confidence, prefer_alternatives),
            keep=lambda result: result.matched_photo_id is not None,
        )

    def clear_cache(self) -> None:
        """Forget memoized match results."""

        if self.result_cache is not None:
            self.result_cache.clear()

    def cache_stats(self) -> Optional[CacheStats]:
        return self.result_cache.stats() if self.result_cache is not None else None

    def _select(
        self,
        track: TrackDescriptor,
        candidates: Mapping[str, PhotoFeatureSet],
        min_confidence: float,
        prefer_alternatives: bool,
    ) -> MatchResult:
        profile = build_profile(track)
        ranked = self._rank_profile(profile, candidates)
        best = ranked[0]

        if best.total < min_confidence:
            logger.info("Low confidence match (%.3f) for track %s", best.total, track.id)
            return MatchResult(
                track_id=track.id,
                matched_photo_id=None,
                confidence=best.total,
                justification=(
                    f"{NO_MATCH_PREFIX}: best candidate {best.photo_id} scored {best.total:.2f}, "
                    f"below the minimum confidence {min_confidence:.2f}."
                ),
                breakdown=ranked,
            )

        margin = self.settings.alternative_margin
        comparable = [
            score for score in ranked[1:] if best.total - score.total <= margin and score.total >= min_confidence
        ]
        alternative = comparable[0].photo_id if prefer_alternatives and comparable else None

        primary_features = candidates[best.photo_id]
        distinct = [score for score in comparable if not self._near_duplicates(primary_features, candidates[score.photo_id])]
        variants = min(self.settings.max_variants, 1 + len(distinct))

        return MatchResult(
            track_id=track.id,
            matched_photo_id=best.photo_id,
            confidence=best.total,
            justification=self._justify(best, profile, alternative),
            breakdown=ranked,
            alternative_photo_id=alternative,
            recommended_variant_count=variants,
        )

    def recommend(
        self,
        track: TrackDescriptor,
        candidates: Mapping[str, PhotoFeatureSet],
        min_score: float = 0.6,
        limit: int = 2,
        min_confidence: Optional[float] = None,
    ) -> Recommendation:
        """Return the primary photo plus up to ``limit`` alternatives, the comparable runner-up first."""

        result = self.match(track, candidates, min_confidence=min_confidence, prefer_alternatives=True)
        alternatives: List[str] = [result.alternative_photo_id] if result.alternative_photo_id else []

        taken = {result.matched_photo_id, result.alternative_photo_id}
        alternatives.extend(
            score.photo_id for score in result.breakdown if score.photo_id not in taken and score.total >= min_score
        )
        alternatives = alternatives[:limit]

        return Recommendation(
            primary_photo_id=result.matched_photo_id,
            alternative_photo_ids=alternatives,
            confidence=result.confidence,
        )

    # Dimension scores
    @staticmethod
    def _emotional_resonance(profile: TrackProfile, features: PhotoFeatureSet) -> float:
        affinity = profile.affinity.get(features.mood, 0.5)
        if profile.energy is None:
            return _clamp(affinity)
        visual_energy = (features.brightness + features.saturation) / 2
        alignment = 1 - abs(_clamp(profile.energy) - visual_energy)
        return _clamp(0.6 * affinity + 0.4 * alignment)

    @staticmethod
    def _color_harmony(profile: TrackProfile, features: PhotoFeatureSet) -> float:
        dominant = features.dominant_colors
        if not dominant or not profile.palette:
            return _clamp(0.5 * features.color_harmony)

        targets = np.asarray(profile.palette, dtype=np.float64)
        total_weight = 0.0
        similarity = 0.0
        for color in dominant:
            distances = np.linalg.norm(targets - np.asarray(color.rgb, dtype=np.float64), axis=1)
            closest = 1 - float(distances.min()) / MAX_RGB_DISTANCE
            similarity += color.percentage * closest**2
            total_weight += color.percentage
        palette_similarity = similarity / total_weight if total_weight else 0.0
        return _clamp(0.5 * palette_similarity + 0.5 * features.color_harmony)

    @staticmethod
    def _visual_theme_match(features: PhotoFeatureSet, theme_vector: Optional[np.ndarray]) -> float:
        if theme_vector is None or features.is_fallback or features.embedding.shape != theme_vector.shape:
            return 0.5
        cosine = float(np.dot(features.embedding, theme_vector))
        return _clamp((cosine + 1) / 2)

    @staticmethod
    def _composition_suitability(features: PhotoFeatureSet) -> float:
        longest = max(features.width, features.height)
        squareness = min(features.width, features.height) / longest if longest else 0.0
        return _clamp(0.6 * features.quality + 0.4 * squareness)

    # Helpers
    @staticmethod
    def _result_key(
        track: TrackDescriptor,
        candidates: Mapping[str, PhotoFeatureSet],
        min_confidence: float,
        prefer_alternatives: bool,
    ) -> str:
        """Key a match by track, mood hints, options, and the sorted (photo id, fingerprint) pairs."""

        photos: List[Tuple[str, str]] = sorted((photo_id, features.id) for photo_id, features in candidates.items())
        photo_key = ",".join(f"{photo_id}:{fingerprint}" for photo_id, fingerprint in photos)
        return (
            f"{track.id}|{track.mood}|{track.energy}|{sorted(track.color_palette)}|{sorted(track.visual_themes)}"
            f"|{min_confidence}|{prefer_alternatives}|{photo_key}"
        )

    def _theme_vector(self, profile: TrackProfile) -> Optional[np.ndarray]:
        text = profile.theme_text
        if self.theme_encoder is None or not text:
            return None
        return np.asarray(self.theme_encoder.embed_text(text), dtype=np.float32)

    def _near_duplicates(self, first: PhotoFeatureSet, second: PhotoFeatureSet) -> bool:
        if first.perceptual_hash is None or second.perceptual_hash is None:
            return False
        distance = imagehash.hex_to_hash(first.perceptual_hash) - imagehash.hex_to_hash(second.perceptual_hash)
        return distance <= self.settings.duplicate_hash_distance

    def _justify(self, best: CandidateScore, profile: TrackProfile, alternative: Optional[str]) -> str:
        weights = self.settings.weights
        contributions: Dict[str, float] = {
            "emotional_resonance": weights.emotional_resonance * best.emotional_resonance,
            "color_harmony": weights.color_harmony * best.color_harmony,
            "visual_theme_match": weights.visual_theme * best.visual_theme_match,
            "composition_suitability": weights.composition * best.composition_suitability,
        }
        strongest = max(contributions, key=lambda name: contributions[name])
        text = (
            f"Selected photo {best.photo_id} for a {profile.mood.lower()} track with confidence {best.total:.2f}; "
            f"strongest factor: {FACTOR_LABELS[strongest]} ({getattr(best, strongest):.2f})."
        )
        if alternative:
            text += f" Photo {alternative} scored comparably and is offered as an alternative."
        return text
