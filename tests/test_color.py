"""Tests for the color pass."""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from conftest import make_image_bytes, make_split_image_bytes
from core.features.color import (
    analyze_colors,
    average_brightness,
    average_saturation,
    color_harmony,
    contrast,
    down_sample,
    extract_palette,
    hex_to_rgb,
    infer_mood,
    rgb_to_hsl,
    sampling_stride,
    to_eight_bit,
    to_hex,
)
from core.models.domain import Color


def _pixels(data: bytes, max_side: int = 512) -> np.ndarray:
    return down_sample(Image.open(BytesIO(data)), max_side)


def test_rgb_to_hsl_primary_red():
    assert rgb_to_hsl(255, 0, 0) == (0.0, 100.0, 50.0)


def test_rgb_to_hsl_gray_has_no_saturation():
    hue, saturation, lightness = rgb_to_hsl(128, 128, 128)
    assert hue == 0.0
    assert saturation == 0.0
    assert lightness == pytest.approx(50.196, abs=1e-3)


def test_hex_round_trip_helpers():
    assert to_hex((255, 0, 16)) == "#ff0010"
    assert hex_to_rgb("#F00") == (255, 0, 0)
    assert hex_to_rgb("00ff00") == (0, 255, 0)


def test_hex_to_rgb_rejects_bad_length():
    with pytest.raises(ValueError):
        hex_to_rgb("#12345")


def test_sampling_stride():
    assert sampling_stride(100, 8000) == 1
    assert sampling_stride(1_000_000, 8000) == 125


def test_down_sample_caps_each_side():
    image = Image.new("RGB", (1000, 200), (10, 20, 30))
    pixels = down_sample(image, 512)
    assert pixels.shape == (512 * 200, 4)
    assert pixels.dtype == np.uint8


def test_solid_palette_quantizes_and_clamps():
    palette = extract_palette(_pixels(make_image_bytes((255, 0, 0))))
    assert len(palette) == 1
    assert palette[0].rgb == (255, 0, 0)
    assert palette[0].percentage == pytest.approx(100.0)


def test_palette_sorted_by_share_then_hex():
    palette = extract_palette(_pixels(make_split_image_bytes((255, 0, 0), (0, 0, 255))))
    assert [color.hex for color in palette] == ["#0000ff", "#ff0000"]
    assert sum(color.percentage for color in palette) == pytest.approx(100.0)


def test_transparent_pixels_are_excluded():
    data = make_split_image_bytes((255, 0, 0, 255), (0, 0, 0, 0), mode="RGBA")
    pixels = _pixels(data)
    palette = extract_palette(pixels)
    assert [color.hex for color in palette] == ["#ff0000"]
    assert palette[0].percentage == pytest.approx(50.0)
    assert average_brightness(pixels) == pytest.approx(0.299, abs=1e-3)


def test_fully_transparent_image_uses_neutral_defaults():
    pixels = _pixels(make_image_bytes((0, 0, 0, 0), mode="RGBA"))
    assert extract_palette(pixels) == []
    assert average_saturation(pixels) == 0.5
    assert average_brightness(pixels) == 0.5
    assert contrast(pixels) == 0.5


def test_brightness_extremes():
    assert average_brightness(_pixels(make_image_bytes((255, 255, 255)))) == pytest.approx(1.0)
    assert average_brightness(_pixels(make_image_bytes((0, 0, 0)))) == pytest.approx(0.0)


def test_saturation_of_pure_and_gray_colors():
    assert average_saturation(_pixels(make_image_bytes((0, 255, 0)))) == pytest.approx(1.0)
    assert average_saturation(_pixels(make_image_bytes((90, 90, 90)))) == pytest.approx(0.0)


def test_contrast_levels():
    assert contrast(_pixels(make_split_image_bytes((0, 0, 0), (255, 255, 255)))) == 0.8
    assert contrast(_pixels(make_image_bytes((120, 120, 120)))) == 0.6


def test_color_harmony():
    red = Color(hex="#ff0000", rgb=(255, 0, 0), hsl=rgb_to_hsl(255, 0, 0), percentage=50.0)
    cyan = Color(hex="#00ffff", rgb=(0, 255, 255), hsl=rgb_to_hsl(0, 255, 255), percentage=50.0)
    assert color_harmony([red]) == 0.5
    assert color_harmony([red, red]) == pytest.approx(1.0)
    assert color_harmony([red, cyan]) == pytest.approx(0.0)


@pytest.mark.parametrize(
    ("brightness", "saturation", "expected"),
    [
        (0.7, 0.7, "energetic"),
        (0.7, 0.2, "happy"),
        (0.2, 0.9, "melancholic"),
        (0.5, 0.5, "neutral"),
    ],
)
def test_infer_mood(brightness, saturation, expected):
    assert infer_mood(brightness, saturation) == expected


def test_analyze_colors_ranges():
    image = Image.open(BytesIO(make_split_image_bytes((250, 200, 40), (30, 60, 200), size=(800, 600))))
    analysis = analyze_colors(image)
    assert 0.0 <= analysis.saturation <= 1.0
    assert 0.0 <= analysis.brightness <= 1.0
    assert 0.0 <= analysis.harmony <= 1.0
    assert analysis.contrast in (0.5, 0.6, 0.8)
    assert sum(color.percentage for color in analysis.palette) <= 100.0 + 1e-9
    assert len(analysis.dominant_colors) <= 5


def _sixteen_bit_gradient() -> Image.Image:
    row = np.linspace(0, 65535, 64).astype(np.uint16)
    return Image.fromarray(np.tile(row, (64, 1)))


def test_sixteen_bit_grayscale_is_scaled_not_clipped():
    image = _sixteen_bit_gradient()
    assert image.mode.startswith("I")

    pixels = down_sample(image, 512)
    palette = extract_palette(pixels)
    assert palette[0].percentage < 20.0
    assert average_brightness(pixels) == pytest.approx(0.5, abs=0.02)
    assert pixels[:, 0].max() == 255
    assert pixels[:, 0].min() == 0


def test_to_eight_bit_leaves_ordinary_modes_alone():
    image = Image.new("RGB", (4, 4), (1, 2, 3))
    assert to_eight_bit(image) is image
    assert to_eight_bit(_sixteen_bit_gradient()).mode == "L"
