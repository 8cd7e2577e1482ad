"""Spatial ordering of regions around a reference region."""
from typing import List
import math
import logging

from colorblobs.types import Segmentation, SegmentationError

logger = logging.getLogger(__name__)

FOVEAL_LEVELS = 6


def central_region(segmentation: Segmentation) -> int:
    """
    Id of the region whose centroid is closest to the image center.

    The background is never a candidate; the lowest id wins ties.
    """
    if segmentation.n_regions < 2:
        raise SegmentationError("segmentation has no foreground regions")

    best, best_d = 0, math.inf
    for region in segmentation.foreground:
        cx, cy = region.centroid
        d = math.hypot(cx - 0.5, cy - 0.5)
        if d < best_d:
            best, best_d = region.id, d
    return best


def foveal_key(distance: float, levels: int = FOVEAL_LEVELS) -> int:
    """Log-scale distance bucket: coarser the farther from the center."""
    return int(math.floor(math.log2(1.0 + (1 << levels) * distance)))


def foveal_ordering(
    segmentation: Segmentation,
    reference: int,
    levels: int = FOVEAL_LEVELS,
) -> List[int]:
    """
    Order foreground regions by distance bucket, then angle, around ``reference``.

    The reference region always comes first. Regions with identical keys
    keep their id order.

    Args:
        segmentation: Segmentation with computed centroids
        reference: Id of the region used as center
        levels: Distance resolution, as a power of two

    Returns:
        List of region ids, background excluded
    """
    if not 1 <= reference < segmentation.n_regions:
        raise SegmentationError(
            f"reference region {reference} not in 1..{segmentation.n_regions - 1}")

    cx, cy = segmentation.regions[reference].centroid
    keys = [((-1, -math.inf, -1), reference)]
    for index, region in enumerate(segmentation.foreground):
        if region.id == reference:
            continue
        px, py = region.centroid
        d = math.hypot(px - cx, py - cy)
        theta = math.atan2(px - cx, py - cy)
        keys.append(((foveal_key(d, levels), theta, index), region.id))

    keys.sort(key=lambda item: item[0])
    return [region_id for _, region_id in keys]
