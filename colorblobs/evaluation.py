"""Segmentation quality score.

Follows Liu and Yang's evaluation function (Colour Image Science, p. 188):

    F(I) = sqrt(R) * sum_i(e_i^2 / sqrt(A_i))

without the image size factor, since volumes are already normalized to a
unit image. ``e_i`` is the mean error of region ``i``; the background was
never classified and always counts as error 1. Lower is better.
"""
import logging

import numpy as np

from colorblobs.types import Segmentation, SegmentationError

logger = logging.getLogger(__name__)


def color_fit_grid(segmentation: Segmentation) -> np.ndarray:
    """
    How well each pixel matches the mean color of its region.

    ``1 - sqrt(sum_c (c/255 - mean_c)^2 / 3)`` for foreground pixels, 0 on
    the background.

    Returns:
        (H, W) float array in [0, 1]
    """
    if segmentation.source is None:
        raise SegmentationError("color fit needs the source image")

    labels = segmentation.labels
    means = np.array([r.mean_color for r in segmentation.regions])
    pixels = segmentation.source.astype(np.float64) / 255.0
    diff = pixels - means[labels]
    fit = 1.0 - np.sqrt(np.sum(diff * diff, axis=2) / 3.0)
    fit[labels == 0] = 0.0
    return fit


def categorization_error(segmentation: Segmentation, fit: np.ndarray) -> np.ndarray:
    """
    Mean per-pixel error ``1 - fit`` of every region.

    Args:
        segmentation: Segmentation to score
        fit: (H, W) grid in [0, 1], e.g. ``color_fit_grid`` or the
            categorizer confidence

    Returns:
        (R,) array; entry 0 (background) is always 1.0
    """
    fit = np.asarray(fit, dtype=np.float64)
    if fit.shape != segmentation.labels.shape:
        raise ValueError(f"fit grid shape {fit.shape} does not match labels {segmentation.labels.shape}")

    r = segmentation.n_regions
    flat = segmentation.labels.ravel()
    total = np.bincount(flat, weights=1.0 - fit.ravel(), minlength=r)
    n = np.bincount(flat, minlength=r)
    error = np.divide(total, n, out=np.zeros(r), where=n > 0)
    error[0] = 1.0
    return error


def evaluate_segmentation(segmentation: Segmentation, fit: np.ndarray) -> float:
    """Score ``F`` of a segmentation, >= 0; smaller is better."""
    error = categorization_error(segmentation, fit)
    vol = segmentation.volumes()
    present = vol > 0
    total = float(np.sum(error[present] ** 2 / np.sqrt(vol[present])))
    score = float(np.sqrt(segmentation.n_regions)) * total

    logger.debug(f"F(I) = {score:.6f} over {segmentation.n_regions} regions")
    return score
