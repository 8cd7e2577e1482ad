"""Pairwise comparison of the regions of two images."""
import logging

import numpy as np

from colorblobs.types import Segmentation

logger = logging.getLogger(__name__)

_POSITION = slice(0, 2)
_VOLUME = slice(2, 4)
_COLOR = slice(4, 13)


def _rms_distance(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    diff = a[:, np.newaxis, :] - b[np.newaxis, :, :]
    return np.sqrt(np.mean(diff * diff, axis=2))


def compare_regions(seg_a: Segmentation, seg_b: Segmentation) -> np.ndarray:
    """
    Similarity table between the regions of two segmentations.

    Pixel ``(y, x)`` compares region ``y + 1`` of ``seg_a`` with region
    ``x + 1`` of ``seg_b``: red is color similarity, green volume similarity
    and blue position similarity. A white pixel means identical features.

    Returns:
        (Ra - 1, Rb - 1, 3) uint8 table
    """
    fa = seg_a.features()
    fb = seg_b.features()

    table = np.zeros((len(fa), len(fb), 3), dtype=np.float64)
    if len(fa) == 0 or len(fb) == 0:
        return table.astype(np.uint8)

    for channel, part in enumerate((_COLOR, _VOLUME, _POSITION)):
        distance = _rms_distance(fa[:, part], fb[:, part])
        if np.any(distance > 1.0):
            logger.warning(f"feature distance above 1 in channel {channel}: {distance.max():.3f}")
        table[:, :, channel] = 255.0 * (1.0 - distance)

    return np.clip(table, 0, 255).astype(np.uint8)
