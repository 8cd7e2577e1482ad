"""Tests for palette construction and rendering."""
import numpy as np
import pytest

from colorblobs.palette import (
    kmeans_palette,
    mean_color_palette,
    rainbow_palette,
    render_labels,
    reorder_palette,
    validate_palette,
)
from colorblobs.types import BACKGROUND_COLOR, PaletteError


class TestRainbowPalette:
    """Test the rainbow ordered palette."""

    def test_five_colors(self):
        palette = rainbow_palette(5)

        assert palette.shape == (6, 3)
        np.testing.assert_array_equal(palette[0], [0, 0, 0])
        np.testing.assert_array_equal(palette[1], [255, 0, 0])
        np.testing.assert_array_equal(palette[3], [0, 255, 0])
        np.testing.assert_array_equal(palette[5], [0, 0, 255])

    def test_remainder_goes_to_last_ramp(self):
        palette = rainbow_palette(7)

        assert palette.shape == (8, 3)
        # Last ramp: blue to magenta
        np.testing.assert_array_equal(palette[5], [0, 0, 255])
        np.testing.assert_array_equal(palette[7], [170, 0, 255])

    def test_fewer_than_five(self):
        palette = rainbow_palette(3)

        assert palette.shape == (4, 3)
        np.testing.assert_array_equal(palette[1:, 2], 255)

    def test_empty(self):
        assert rainbow_palette(0).shape == (1, 3)

    def test_negative(self):
        with pytest.raises(ValueError):
            rainbow_palette(-1)


class TestKMeansPalette:
    """Test palettes from dominant image colors."""

    def test_two_colors(self):
        image = np.zeros((10, 10, 3), dtype=np.uint8)
        image[:, :5] = [255, 0, 0]
        image[:, 5:] = [0, 0, 255]

        palette = kmeans_palette(image, 2)

        assert palette.shape == (3, 3)
        np.testing.assert_array_equal(palette[0], BACKGROUND_COLOR)
        assert {tuple(c) for c in palette[1:]} == {(255, 0, 0), (0, 0, 255)}

    def test_fewer_distinct_colors(self):
        image = np.full((4, 4, 3), 30, dtype=np.uint8)

        palette = kmeans_palette(image, 5)

        assert palette.shape == (2, 3)
        np.testing.assert_array_equal(palette[1], [30, 30, 30])

    def test_invalid_count(self):
        with pytest.raises(ValueError):
            kmeans_palette(np.zeros((2, 2, 3), dtype=np.uint8), 0)


class TestRegionPalettes:
    """Test palettes derived from segmentations."""

    def test_mean_color_palette(self, half_segmentation):
        palette = mean_color_palette(half_segmentation)

        np.testing.assert_array_equal(palette, [BACKGROUND_COLOR, [255, 0, 0]])

    def test_reorder(self):
        palette = np.array([[0, 0, 0], [10, 10, 10], [20, 20, 20], [30, 30, 30]])

        out = reorder_palette(palette, [3, 1, 2])

        np.testing.assert_array_equal(out[:, 0], [0, 20, 30, 10])

    def test_reorder_out_of_range(self):
        with pytest.raises(PaletteError):
            reorder_palette(np.zeros((3, 3)), [1, 5])

    def test_render_labels(self, half_segmentation):
        rgb = render_labels(half_segmentation.labels, mean_color_palette(half_segmentation))

        assert rgb.shape == (4, 4, 3)
        np.testing.assert_array_equal(rgb[0, 0], [255, 0, 0])
        np.testing.assert_array_equal(rgb[0, 3], BACKGROUND_COLOR)

    def test_render_index_out_of_range(self):
        with pytest.raises(PaletteError):
            render_labels(np.array([[0, 2]]), np.zeros((2, 3)))

    def test_validate_range(self):
        with pytest.raises(PaletteError):
            validate_palette(np.array([[0, 0, 300]]))
