"""Tests for the segmentation quality score."""
import numpy as np
import pytest

from colorblobs.evaluation import categorization_error, color_fit_grid, evaluate_segmentation
from colorblobs.segmentation import build_segmentation
from colorblobs.types import SegmentationError


class TestCategorizationError:
    """Test per-region errors."""

    def test_background_error_is_one(self, half_segmentation):
        error = categorization_error(half_segmentation, np.ones((4, 4)))
        np.testing.assert_allclose(error, [1.0, 0.0])

    def test_mean_over_region(self, half_segmentation):
        fit = np.ones((4, 4))
        fit[:2, :2] = 0.0  # Half of region 1

        error = categorization_error(half_segmentation, fit)

        assert error[1] == pytest.approx(0.5)

    def test_shape_mismatch(self, half_segmentation):
        with pytest.raises(ValueError, match="shape"):
            categorization_error(half_segmentation, np.ones((3, 4)))


class TestEvaluateSegmentation:
    """Test F = sqrt(R) * sum(e^2 / sqrt(vol))."""

    def test_perfect_fit(self, half_segmentation):
        # Only the background contributes: sqrt(2) * 1 / sqrt(0.5)
        assert evaluate_segmentation(half_segmentation, np.ones((4, 4))) == pytest.approx(2.0)

    def test_worst_fit(self, half_segmentation):
        assert evaluate_segmentation(half_segmentation, np.zeros((4, 4))) == pytest.approx(4.0)

    def test_error_increases_score(self, half_segmentation):
        scores = [
            evaluate_segmentation(half_segmentation, np.full((4, 4), 1.0 - e))
            for e in (0.0, 0.1, 0.25, 0.5, 1.0)
        ]
        assert scores == sorted(scores)
        assert scores[0] < scores[-1]

    def test_empty_background_is_skipped(self):
        seg = build_segmentation(np.ones((4, 4), dtype=np.int32))
        fit = np.full((4, 4), 0.5)

        assert evaluate_segmentation(seg, fit) == pytest.approx(np.sqrt(2) * 0.25)

    def test_non_negative(self):
        rng = np.random.default_rng(0)
        seg = build_segmentation(rng.integers(0, 3, (12, 12)))

        assert evaluate_segmentation(seg, rng.uniform(0, 1, (12, 12))) >= 0.0


class TestColorFit:
    """Test the color homogeneity grid."""

    def test_uniform_region(self, half_segmentation):
        fit = color_fit_grid(half_segmentation)

        np.testing.assert_allclose(fit[:, :2], 1.0)
        np.testing.assert_allclose(fit[:, 2:], 0.0)
        assert evaluate_segmentation(half_segmentation, fit) == pytest.approx(2.0)

    def test_mixed_region(self):
        indexed = np.ones((2, 2), dtype=np.int32)
        source = np.zeros((2, 2, 3), dtype=np.uint8)
        source[0] = 255

        fit = color_fit_grid(build_segmentation(indexed, source))

        np.testing.assert_allclose(fit, 0.5)

    def test_needs_source(self, diagonal_blocks):
        with pytest.raises(SegmentationError, match="source"):
            color_fit_grid(build_segmentation(diagonal_blocks))
