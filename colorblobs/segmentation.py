"""Segmentation of an indexed image into filtered color regions."""
from typing import Optional
import logging

import numpy as np

from colorblobs.features import extract_regions
from colorblobs.labeling import label_components
from colorblobs.region_filter import discard_small_regions
from colorblobs.types import Segmentation, SegmentationConfig

logger = logging.getLogger(__name__)


def build_segmentation(
    indexed: np.ndarray,
    source: Optional[np.ndarray] = None,
    connectivity: int = 4,
) -> Segmentation:
    """Label an indexed image and compute region features, without filtering."""
    if source is not None:
        source = np.asarray(source)
        if source.shape[:2] != indexed.shape:
            raise ValueError(
                f"source shape {source.shape[:2]} does not match indexed image {indexed.shape}")

    labels, n_regions, categories = label_components(indexed, connectivity)
    regions = extract_regions(labels, n_regions, categories, source)
    return Segmentation(labels=labels, regions=regions, source=source)


def segment(
    indexed: np.ndarray,
    source: Optional[np.ndarray] = None,
    config: Optional[SegmentationConfig] = None,
    volume_threshold: Optional[float] = None,
) -> Segmentation:
    """
    Segment an indexed image into significant color regions.

    Args:
        indexed: (H, W) int array of palette indexes, 0 = background
        source: Optional (H, W, 3) uint8 RGB image for color statistics
        config: Segmentation configuration (uses defaults if None)
        volume_threshold: Overrides ``config.volume_threshold``

    Returns:
        Filtered Segmentation
    """
    config = config or SegmentationConfig()
    threshold = config.volume_threshold if volume_threshold is None else volume_threshold

    segmentation = build_segmentation(indexed, source, config.connectivity)
    logger.debug(f"{segmentation.n_regions - 1} regions before filtering")

    segmentation = discard_small_regions(segmentation, threshold)
    logger.info(str(segmentation))
    return segmentation
