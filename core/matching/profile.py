# Path: core/matching/profile.py
# Purpose: Derive a track's target visual profile from its mood and audio features.
# Layer: core/matching.
# Details: Maps track mood categories to photo mood affinities and reference palettes.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config.log import get_logger
from core.features.color import hex_to_rgb
from core.models.domain import TrackDescriptor

logger = get_logger("matching")

MOOD_CATEGORIES = (
    "Happy",
    "Sad",
    "Energetic",
    "Chill",
    "Calm",
    "Confident",
    "Romantic",
    "Aggressive",
    "Mysterious",
    "Nostalgic",
)

MOOD_PALETTES: Dict[str, List[str]] = {
    "Happy": ["#FFD700", "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4"],
    "Sad": ["#6C7B7F", "#A8B2B8", "#5D737E", "#708090", "#2F4F4F"],
    "Energetic": ["#FF4757", "#FF6348", "#FF9FF3", "#54A0FF", "#5F27CD"],
    "Chill": ["#00D2D3", "#FF9F19", "#FF6B6B", "#C7ECEE", "#A8E6CF"],
    "Calm": ["#E8F8F5", "#D5DBDB", "#AED6F1", "#D2B4DE", "#F8C471"],
    "Confident": ["#2C3E50", "#E74C3C", "#F39C12", "#8E44AD", "#C0392B"],
    "Romantic": ["#FF69B4", "#FFB6C1", "#FFC0CB", "#F08080", "#CD5C5C"],
    "Aggressive": ["#8B0000", "#FF4500", "#DC143C", "#B22222", "#800000"],
    "Mysterious": ["#2F1B69", "#44318D", "#6C5CE7", "#A55EEA", "#4834D4"],
    "Nostalgic": ["#D4AC0D", "#F4D03F", "#F8C471", "#E6B800", "#B7950B"],
}

# How well each photo mood label (energetic/happy/neutral/melancholic) suits a track mood.
MOOD_AFFINITY: Dict[str, Dict[str, float]] = {
    "Happy": {"happy": 1.0, "energetic": 0.8, "neutral": 0.5, "melancholic": 0.1},
    "Energetic": {"energetic": 1.0, "happy": 0.8, "neutral": 0.4, "melancholic": 0.1},
    "Aggressive": {"energetic": 1.0, "happy": 0.5, "neutral": 0.4, "melancholic": 0.3},
    "Confident": {"energetic": 0.8, "happy": 0.8, "neutral": 0.6, "melancholic": 0.3},
    "Romantic": {"happy": 0.8, "neutral": 0.7, "energetic": 0.5, "melancholic": 0.5},
    "Chill": {"neutral": 1.0, "happy": 0.7, "melancholic": 0.5, "energetic": 0.3},
    "Calm": {"neutral": 1.0, "happy": 0.6, "melancholic": 0.6, "energetic": 0.2},
    "Sad": {"melancholic": 1.0, "neutral": 0.6, "happy": 0.2, "energetic": 0.1},
    "Mysterious": {"melancholic": 0.9, "neutral": 0.8, "energetic": 0.3, "happy": 0.2},
    "Nostalgic": {"neutral": 0.9, "melancholic": 0.8, "happy": 0.5, "energetic": 0.2},
}

MOOD_SYNONYMS = {
    "melancholic": "Sad",
    "melancholy": "Sad",
    "neutral": "Chill",
    "relaxed": "Chill",
    "peaceful": "Calm",
    "angry": "Aggressive",
    "dark": "Mysterious",
    "upbeat": "Happy",
}


@dataclass
class TrackProfile:
    """Target visual profile a photo is scored against."""

    mood: str
    affinity: Dict[str, float]
    palette: List[Tuple[int, int, int]]
    energy: Optional[float] = None
    themes: List[str] = field(default_factory=list)

    @property
    def theme_text(self) -> Optional[str]:
        return ", ".join(self.themes) if self.themes else None


def normalize_mood(mood: Optional[str]) -> Optional[str]:
    """Map a free-form mood label onto a known mood category, or None."""

    if not mood:
        return None
    key = mood.strip().lower()
    for category in MOOD_CATEGORIES:
        if category.lower() == key:
            return category
    return MOOD_SYNONYMS.get(key)


def classify_track_mood(
    valence: Optional[float] = None,
    energy: Optional[float] = None,
    tempo: Optional[float] = None,
    danceability: Optional[float] = None,
    acousticness: Optional[float] = None,
    mode: Optional[int] = None,
) -> str:
    """Classify a mood category from audio features; missing features take neutral defaults."""

    valence = 0.5 if valence is None else valence
    energy = 0.5 if energy is None else energy
    tempo = 120 if tempo is None else tempo
    danceability = 0.5 if danceability is None else danceability
    acousticness = 0.5 if acousticness is None else acousticness
    mode = 1 if mode is None else mode

    if valence > 0.7 and energy > 0.7:
        return "Happy"
    if valence > 0.6 and energy > 0.6 and danceability > 0.6:
        return "Energetic"
    if valence < 0.4 and energy < 0.5:
        return "Sad"
    if energy < 0.4 and tempo < 100:
        return "Calm"
    if 0.4 < valence < 0.7 and energy < 0.6:
        return "Chill"
    if energy > 0.8 and tempo > 140:
        return "Aggressive"
    if 0.3 < valence < 0.8 and acousticness > 0.6:
        return "Romantic"
    if valence < 0.6 and mode == 0:
        return "Mysterious"
    if tempo < 90 and valence < 0.7:
        return "Nostalgic"
    return "Confident"


def _parse_palette(values: List[str], track_id: str) -> List[Tuple[int, int, int]]:
    palette: List[Tuple[int, int, int]] = []
    for value in values:
        try:
            palette.append(hex_to_rgb(value))
        except ValueError:
            logger.warning("Ignoring invalid palette color %r for track %s", value, track_id)
    return palette


def build_profile(track: TrackDescriptor) -> TrackProfile:
    """Resolve the mood category, affinity table, and target palette for a track."""

    mood = normalize_mood(track.mood)
    if mood is None:
        mood = classify_track_mood(
            valence=track.valence,
            energy=track.energy,
            tempo=track.tempo,
            danceability=track.danceability,
            acousticness=track.acousticness,
            mode=track.mode,
        )
        logger.debug("Track %s mood %r classified as %s from audio features", track.id, track.mood, mood)

    palette = _parse_palette(track.color_palette, track.id) or _parse_palette(MOOD_PALETTES[mood], track.id)
    return TrackProfile(
        mood=mood,
        affinity=MOOD_AFFINITY[mood],
        palette=palette,
        energy=track.energy,
        themes=list(track.visual_themes),
    )
