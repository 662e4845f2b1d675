"""
Tests for palettes and scalar-to-RGBA mapping.

Validates:
- Piecewise-linear interpolation with round-half-up channels
- Endpoint colours and clamping
- Transparent output for masked pixels
- Degenerate (constant) value ranges
- Unknown palette fallback
"""

import pytest
import warnings
import numpy as np

from meshslice.slicing.colormap import (
    Palette,
    PALETTES,
    ColorMapper,
    DEFAULT_PALETTE_ID,
    TRANSPARENT,
    get_palette,
    normalise,
    rgb_to_hex,
    hex_to_rgb,
    palette_hex_colors,
    round_half_up,
)


@pytest.fixture
def byr():
    return PALETTES["blue-yellow-red"]


class TestPalette:
    """Ramp lookup."""

    def test_quarter_point_rounds_half_up(self, byr):
        assert byr.color_at(0.25) == (128, 128, 128)

    def test_stops_are_exact(self, byr):
        assert byr.color_at(0.0) == (0, 0, 255)
        assert byr.color_at(0.5) == (255, 255, 0)
        assert byr.color_at(1.0) == (255, 0, 0)

    def test_clamps_outside_unit_interval(self, byr):
        assert byr.color_at(-3.0) == (0, 0, 255)
        assert byr.color_at(7.0) == (255, 0, 0)

    def test_vectorised_lookup_shape(self, byr):
        rgb = byr.colors_at(np.array([[0.0, 0.25], [0.5, 1.0]]))
        assert rgb.shape == (2, 2, 3)
        assert rgb.dtype == np.uint8
        assert rgb[0, 1].tolist() == [128, 128, 128]

    def test_uneven_stops(self):
        rainbow = PALETTES["rainbow"]
        assert rainbow.color_at(0.9) == (64, 0, 255)
        assert rainbow.color_at(0.05) == (255, 64, 0)

    def test_all_builtin_palettes_valid(self):
        assert len(PALETTES) == 8
        for palette_id, palette in PALETTES.items():
            assert palette.palette_id == palette_id
            assert palette.description
            assert palette.positions[0] == 0.0
            assert palette.positions[-1] == 1.0

    def test_validation(self):
        with pytest.raises(ValueError, match="at least two stops"):
            Palette("one", ((0.0, 0, 0, 0),))
        with pytest.raises(ValueError, match="start at t=0"):
            Palette("gap", ((0.1, 0, 0, 0), (1.0, 1, 1, 1)))
        with pytest.raises(ValueError, match="strictly increasing"):
            Palette("order", ((0.0, 0, 0, 0), (0.6, 1, 1, 1), (0.4, 2, 2, 2), (1.0, 3, 3, 3)))
        with pytest.raises(ValueError, match="invalid stop"):
            Palette("range", ((0.0, 0, 0, 0), (1.0, 256, 0, 0)))

    def test_round_half_up(self):
        assert round_half_up([0.5, 1.5, 2.5, 2.4999]).tolist() == [1.0, 2.0, 3.0, 2.0]


class TestGetPalette:
    """Palette lookup."""

    def test_known_palette(self):
        assert get_palette("viridis") is PALETTES["viridis"]

    def test_unknown_palette_falls_back_with_warning(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            palette = get_palette("no-such-palette")

        assert palette.palette_id == DEFAULT_PALETTE_ID
        assert len(w) == 1
        assert "no-such-palette" in str(w[0].message)


class TestColorMapper:
    """Scalar to RGBA."""

    def test_endpoints(self, byr):
        mapper = ColorMapper()
        assert mapper.to_rgba(10.0, 10.0, 20.0, byr) == (0, 0, 255, 255)
        assert mapper.to_rgba(20.0, 10.0, 20.0, byr) == (255, 0, 0, 255)
        assert mapper.to_rgba(12.5, 10.0, 20.0, byr) == (128, 128, 128, 255)

    def test_masked_out_is_transparent(self, byr):
        mapper = ColorMapper()
        assert mapper.to_rgba_masked(15.0, 10.0, 20.0, False, byr) == TRANSPARENT
        assert mapper.to_rgba_masked(15.0, 10.0, 20.0, True, byr)[3] == 255

    def test_degenerate_range_maps_to_first_stop(self, byr):
        assert ColorMapper().to_rgba(5.0, 5.0, 5.0, byr) == (0, 0, 255, 255)

    def test_custom_alpha(self, byr):
        assert ColorMapper(alpha=128).to_rgba(0.0, 0.0, 1.0, byr)[3] == 128
        with pytest.raises(ValueError):
            ColorMapper(alpha=300)

    def test_map_raster(self, byr):
        values = np.array([[0.0, 5.0], [10.0, 99.0]])
        mask = np.array([[True, True], [True, False]])

        pixels = ColorMapper().map_raster(values, mask, 0.0, 10.0, byr)

        assert pixels.shape == (2, 2, 4)
        assert pixels.dtype == np.uint8
        assert pixels[0, 0].tolist() == [0, 0, 255, 255]
        assert pixels[0, 1].tolist() == [255, 255, 0, 255]
        assert pixels[1, 0].tolist() == [255, 0, 0, 255]
        assert pixels[1, 1].tolist() == [0, 0, 0, 0]

    def test_map_raster_without_range_is_transparent(self, byr):
        pixels = ColorMapper().map_raster(np.ones((3, 3)), np.ones((3, 3), bool), None, None, byr)
        assert not np.any(pixels)

    def test_normalise(self):
        np.testing.assert_allclose(normalise([0.0, 5.0, 10.0, 20.0], 0.0, 10.0), [0.0, 0.5, 1.0, 1.0])
        np.testing.assert_allclose(normalise([3.0], 3.0, 3.0), [0.0])


class TestHexHelpers:
    """Hex colour conversion."""

    def test_rgb_to_hex(self):
        assert rgb_to_hex(255, 0, 0) == "#ff0000"
        assert rgb_to_hex(0, 128, 15) == "#00800f"

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#FF8000") == (255, 128, 0)
        assert hex_to_rgb("00ff00") == (0, 255, 0)

    @pytest.mark.parametrize("text", ["", "#fff", "zzzzzz", "+12345", "#1234567"])
    def test_hex_to_rgb_rejects_invalid(self, text):
        assert hex_to_rgb(text) is None

    def test_palette_from_hex(self):
        palette = Palette.from_hex("sunset", ((0.0, "#ff8000"), (1.0, "2040ff")), "Orange to blue")
        assert palette.stops == ((0.0, 255, 128, 0), (1.0, 32, 64, 255))
        assert palette.description == "Orange to blue"
        assert PALETTES["grayscale"].color_at(0.5) == (128, 128, 128)

    def test_palette_from_hex_rejects_invalid(self):
        with pytest.raises(ValueError, match="invalid hex colour"):
            Palette.from_hex("broken", ((0.0, "#000000"), (1.0, "#ggg000")))

    def test_palette_hex_colors(self, byr):
        assert palette_hex_colors(byr) == ["#0000ff", "#ffff00", "#ff0000"]
