"""Per-region statistical and geometric features."""
from typing import List, Optional, Sequence
import logging

import numpy as np

from colorblobs.types import Region, Segmentation, NFEATURES

logger = logging.getLogger(__name__)


def extract_regions(
    labels: np.ndarray,
    n_regions: int,
    color_categories: Optional[Sequence[int]] = None,
    source: Optional[np.ndarray] = None,
) -> List[Region]:
    """
    Compute the features of every region of a label grid.

    Geometry is normalized so the whole image maps to the unit square.
    Color statistics are normalized to [0, 1] and stay zero when no source
    image is given.

    Args:
        labels: (H, W) int array of region ids, 0 = background
        n_regions: Number of regions, including the background
        color_categories: Category of region ``id`` at position ``id - 1``
        source: Optional (H, W, 3) RGB image the labels were computed from

    Returns:
        List of Region, indexed by id
    """
    labels = np.asarray(labels)
    if labels.ndim != 2:
        raise ValueError(f"labels must be an HxW grid, got shape {labels.shape}")
    height, width = labels.shape
    if source is not None and source.shape[:2] != labels.shape:
        raise ValueError(
            f"source shape {source.shape[:2]} does not match labels {labels.shape}")

    flat = labels.ravel().astype(np.int64)
    if flat.size and (flat.min() < 0 or flat.max() >= n_regions):
        raise ValueError(f"labels must be in 0..{n_regions - 1}")

    area = float(width * height)
    ys, xs = np.indices((height, width))
    xs = xs.ravel()
    ys = ys.ravel()

    # Pass 1: counts, bounding boxes, first moments, color sums
    n = np.bincount(flat, minlength=n_regions)
    min_x = np.full(n_regions, width, dtype=np.int64)
    max_x = np.zeros(n_regions, dtype=np.int64)
    min_y = np.full(n_regions, height, dtype=np.int64)
    max_y = np.zeros(n_regions, dtype=np.int64)
    np.minimum.at(min_x, flat, xs)
    np.maximum.at(max_x, flat, xs)
    np.minimum.at(min_y, flat, ys)
    np.maximum.at(max_y, flat, ys)

    safe_n = np.where(n > 0, n, 1).astype(np.float64)
    center_x = np.bincount(flat, weights=xs, minlength=n_regions) / safe_n
    center_y = np.bincount(flat, weights=ys, minlength=n_regions) / safe_n

    # Pass 2: central moments
    dx = xs - center_x[flat]
    dy = ys - center_y[flat]
    moment_xx = np.bincount(flat, weights=dx * dx, minlength=n_regions) / safe_n
    moment_xy = np.bincount(flat, weights=dx * dy, minlength=n_regions) / safe_n
    moment_yy = np.bincount(flat, weights=dy * dy, minlength=n_regions) / safe_n

    mean = np.zeros((n_regions, 3))
    deviation = np.zeros((n_regions, 3))
    third = np.zeros((n_regions, 3))
    if source is not None:
        pixels = source.reshape(-1, 3).astype(np.float64)
        for c in range(3):
            mean[:, c] = np.bincount(flat, weights=pixels[:, c], minlength=n_regions) / safe_n
            p = pixels[:, c] - mean[flat, c]
            deviation[:, c] = np.bincount(flat, weights=p * p, minlength=n_regions)
            third[:, c] = np.bincount(flat, weights=p * p * p, minlength=n_regions)

    regions = [Region(id=0, n=int(n[0]), vol=n[0] / area if area else 0.0)]
    for r in range(1, n_regions):
        region = Region(id=r, n=int(n[r]))
        if color_categories is not None:
            region.color_category = int(color_categories[r - 1])
        regions.append(region)

        if n[r] == 0:
            logger.debug(f"region {r} is empty, features skipped")
            continue

        w = int(max_x[r] - min_x[r] + 1)
        h = int(max_y[r] - min_y[r] + 1)
        region.bbox = (int(min_x[r]), int(max_x[r]), int(min_y[r]), int(max_y[r]))
        region.centroid = (float(center_x[r] / width), float(center_y[r] / height))
        region.vol = float(n[r] / area)
        if w * h > 0:
            region.relative_vol = float(n[r] / (w * h))
            region.moment_xx = float(np.sqrt(moment_xx[r]) / w)
            region.moment_yy = float(np.sqrt(moment_yy[r]) / h)
        region.moment_xy = float(np.clip((moment_xy[r] / n[r] + 1.0) / 2.0, 0.0, 1.0))

        region.mean_color = mean[r] / 255.0
        region.std_color = np.sqrt(deviation[r] / n[r]) / 255.0
        region.skew_color = np.cbrt(third[r] / n[r]) / 255.0

    return regions


def feature_matrix(regions: Sequence[Region]) -> np.ndarray:
    """13-column feature matrix of the foreground regions (background skipped)."""
    foreground = [r for r in regions if not r.is_background]
    if not foreground:
        return np.zeros((0, NFEATURES))
    return np.vstack([r.feature_vector() for r in foreground])


def int_to_hex(part: int) -> str:
    """Single hexadecimal digit; 16 saturates to 'F' and larger values give 'x'."""
    if part < 10:
        return str(part)
    if part <= 15:
        return "ABCDEF"[part - 10]
    if part == 16:
        return "F"
    return "x"


def unit_to_hex(unit: float) -> str:
    """Quantize a value in [0, 1] to one hexadecimal digit."""
    return int_to_hex(int(np.floor(16.0 * unit)))


def region_descriptor(region: Region) -> str:
    """
    Five-character descriptor of a region.

    Quantized horizontal position, vertical position, volume and relative
    volume, followed by the color category.
    """
    cx, cy = region.centroid
    return (unit_to_hex(cx) + unit_to_hex(cy) + unit_to_hex(region.vol)
            + unit_to_hex(region.relative_vol) + int_to_hex(region.color_category))


def image_descriptor(segmentation: Segmentation) -> str:
    """Sorted region descriptors of an image, joined by '.'."""
    descriptor = ".".join(sorted(region_descriptor(r) for r in segmentation.foreground))
    logger.debug(f"descriptor: {segmentation.n_regions - 1} - {descriptor}")
    return descriptor
