# Path: core/features/color.py
# Purpose: Compute palette and aggregate color statistics from RGBA pixel buffers.
# Layer: core/features.
# Details: Palette uses a strided, quantized sample; saturation/brightness/contrast use every opaque pixel.

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image

from core.models.domain import Color

# Luma weights (ITU-R BT.601).
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
WIDE_INTEGER_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


@dataclass(frozen=True)
class ColorAnalysis:
    """Color statistics for one image."""

    palette: Tuple[Color, ...]
    saturation: float
    brightness: float
    contrast: float
    quality: float
    harmony: float
    mood: str

    @property
    def dominant_colors(self) -> Tuple[Color, ...]:
        return self.palette[:5]


def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """Convert 0-255 RGB to HSL with hue in [0, 360) and saturation/lightness in [0, 100]."""

    r, g, b = r / 255.0, g / 255.0, b / 255.0
    high = max(r, g, b)
    low = min(r, g, b)
    lightness = (high + low) / 2

    if high == low:
        return 0.0, 0.0, lightness * 100

    delta = high - low
    saturation = delta / (2 - high - low) if lightness > 0.5 else delta / (high + low)
    if high == r:
        hue = (g - b) / delta + (6 if g < b else 0)
    elif high == g:
        hue = (b - r) / delta + 2
    else:
        hue = (r - g) / delta + 4
    hue = (hue / 6 * 360) % 360
    return hue, saturation * 100, lightness * 100


def to_hex(rgb: Sequence[int]) -> str:
    return "#" + "".join(f"{int(channel):02x}" for channel in rgb)


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Parse ``#rrggbb`` or ``#rgb`` into an RGB tuple."""

    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


def to_eight_bit(image: Image.Image) -> Image.Image:
    """Scale wide integer grayscale images (16-bit PNGs load as ``I;16`` or ``I``) down to ``L``.

    ``convert`` clips such values at 255 instead of scaling them.
    """

    if image.mode not in WIDE_INTEGER_MODES:
        return image
    values = np.asarray(image, dtype=np.float64)
    if image.mode.startswith("I;16") or values.max(initial=0) > 255:
        values = values / 257.0
    return Image.fromarray(np.clip(np.rint(values), 0, 255).astype(np.uint8))


def down_sample(image: Image.Image, max_side: int) -> np.ndarray:
    """Return an RGBA pixel array with each side capped at ``max_side``."""

    rgba = to_eight_bit(image).convert("RGBA")
    width, height = rgba.size
    target = (min(width, max_side), min(height, max_side))
    if target != (width, height):
        rgba = rgba.resize(target, Image.Resampling.BILINEAR)
    return np.asarray(rgba, dtype=np.uint8).reshape(-1, 4)


def sampling_stride(pixel_count: int, sample_target: int) -> int:
    return max(1, pixel_count // sample_target)


def extract_palette(
    pixels: np.ndarray,
    sample_target: int = 8000,
    alpha_threshold: int = 128,
    step: int = 32,
) -> List[Color]:
    """Quantize a strided sample of opaque pixels and return colors sorted by share."""

    if pixels.size == 0:
        return []

    sampled = pixels[:: sampling_stride(len(pixels), sample_target)]
    opaque = sampled[sampled[:, 3] >= alpha_threshold, :3].astype(np.float64)
    if opaque.size == 0:
        return []

    quantized = np.clip(np.floor(opaque / step + 0.5) * step, 0, 255).astype(np.int64)
    keys = (quantized[:, 0] << 16) | (quantized[:, 1] << 8) | quantized[:, 2]
    unique_keys, counts = np.unique(keys, return_counts=True)

    total = len(sampled)
    colors: List[Color] = []
    for key, count in zip(unique_keys.tolist(), counts.tolist()):
        rgb = ((key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF)
        colors.append(Color(hex=to_hex(rgb), rgb=rgb, hsl=rgb_to_hsl(*rgb), percentage=count / total * 100))

    colors.sort(key=lambda color: (-color.percentage, color.hex))
    return colors


def _opaque_rgb(pixels: np.ndarray, alpha_threshold: int) -> np.ndarray:
    return pixels[pixels[:, 3] >= alpha_threshold, :3].astype(np.float64)


def average_saturation(pixels: np.ndarray, alpha_threshold: int = 128) -> float:
    """Mean HSL saturation in [0, 1] over every opaque pixel; 0.5 when none are opaque."""

    rgb = _opaque_rgb(pixels, alpha_threshold) / 255.0
    if rgb.size == 0:
        return 0.5

    high = rgb.max(axis=1)
    low = rgb.min(axis=1)
    delta = high - low
    lightness = (high + low) / 2
    with np.errstate(divide="ignore", invalid="ignore"):
        saturation = np.where(lightness > 0.5, delta / (2 - high - low), delta / (high + low))
    saturation = np.where(delta == 0, 0.0, saturation)
    return float(saturation.mean())


def luma(pixels: np.ndarray, alpha_threshold: int = 128) -> np.ndarray:
    return _opaque_rgb(pixels, alpha_threshold) @ LUMA_WEIGHTS


def average_brightness(pixels: np.ndarray, alpha_threshold: int = 128) -> float:
    """Mean luma normalized to [0, 1]; 0.5 when no pixel is opaque."""

    values = luma(pixels, alpha_threshold)
    if values.size == 0:
        return 0.5
    return float(values.mean() / 255.0)


def contrast(pixels: np.ndarray, alpha_threshold: int = 128) -> float:
    """0.8 for a luma range above half scale, 0.6 otherwise, 0.5 without opaque pixels."""

    values = luma(pixels, alpha_threshold)
    if values.size == 0:
        return 0.5
    return 0.8 if float(values.max() - values.min()) > 127.5 else 0.6


def color_quality(saturation: float, brightness: float, contrast_value: float) -> float:
    return saturation * 0.3 + brightness * 0.3 + contrast_value * 0.4


def color_harmony(palette: Sequence[Color]) -> float:
    """Mean hue proximity over all unordered palette pairs; 0.5 below two colors."""

    if len(palette) < 2:
        return 0.5

    hues = np.array([color.hsl[0] for color in palette], dtype=np.float64)
    diffs = np.abs(hues[:, None] - hues[None, :])
    upper = diffs[np.triu_indices(len(hues), k=1)]
    return float(np.maximum(0.0, 1 - upper / 180).mean())


def infer_mood(brightness: float, saturation: float) -> str:
    if brightness > 0.6 and saturation > 0.6:
        return "energetic"
    if brightness > 0.6:
        return "happy"
    if brightness < 0.3:
        return "melancholic"
    return "neutral"


def analyze_colors(
    image: Image.Image,
    max_side: int = 512,
    sample_target: int = 8000,
    alpha_threshold: int = 128,
    step: int = 32,
) -> ColorAnalysis:
    """Run the full color pass over an image."""

    pixels = down_sample(image, max_side)
    palette = extract_palette(pixels, sample_target, alpha_threshold, step)
    saturation = average_saturation(pixels, alpha_threshold)
    brightness = average_brightness(pixels, alpha_threshold)
    contrast_value = contrast(pixels, alpha_threshold)

    return ColorAnalysis(
        palette=tuple(palette),
        saturation=saturation,
        brightness=brightness,
        contrast=contrast_value,
        quality=color_quality(saturation, brightness, contrast_value),
        harmony=color_harmony(palette),
        mood=infer_mood(brightness, saturation),
    )
