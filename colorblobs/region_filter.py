"""Removal of insignificant regions."""
import logging

import numpy as np

from colorblobs.features import extract_regions
from colorblobs.types import Region, Segmentation

logger = logging.getLogger(__name__)


def is_acceptable(region: Region, threshold: float) -> bool:
    """The background is always acceptable; other regions need ``vol >= threshold``."""
    return region.is_background or region.vol >= threshold


def discard_small_regions(segmentation: Segmentation, threshold: float = 0.01) -> Segmentation:
    """
    Merge regions smaller than ``threshold`` into the background.

    Surviving regions keep their relative order and color category and are
    renumbered densely. Features are recomputed from scratch on the new
    partition.

    Args:
        segmentation: Segmentation to filter
        threshold: Minimum volume, as a fraction of the image area

    Returns:
        New Segmentation; ``discarded`` holds the number of merged regions
    """
    regions = segmentation.regions
    keep = [r for r in regions if is_acceptable(r, threshold)]
    discarded = len(regions) - len(keep)

    if discarded == 0:
        return Segmentation(
            labels=segmentation.labels,
            regions=segmentation.regions,
            source=segmentation.source,
            discarded=0,
        )

    remap = np.zeros(len(regions), dtype=np.int32)
    categories = []
    for new_id, region in enumerate(keep):
        remap[region.id] = new_id
        if new_id > 0:
            categories.append(region.color_category)

    labels = remap[segmentation.labels]
    new_regions = extract_regions(labels, len(keep), categories, segmentation.source)

    logger.info(f"Discarded {discarded} regions below volume {threshold}, "
                f"background volume {regions[0].vol:.3f} -> {new_regions[0].vol:.3f}")

    return Segmentation(
        labels=labels,
        regions=new_regions,
        source=segmentation.source,
        discarded=discarded,
    )
