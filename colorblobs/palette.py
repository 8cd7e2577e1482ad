"""Palette construction and palette-based rendering."""
from typing import Sequence, TYPE_CHECKING
import logging

import numpy as np
from sklearn.cluster import KMeans

from colorblobs.types import BACKGROUND_COLOR, PaletteError

if TYPE_CHECKING:
    from colorblobs.types import Segmentation

logger = logging.getLogger(__name__)


def validate_palette(palette: np.ndarray) -> np.ndarray:
    """Return ``palette`` as a (K, 3) uint8 array, rejecting empty palettes."""
    palette = np.asarray(palette)
    if palette.size == 0:
        raise PaletteError("palette is empty")
    if palette.ndim != 2 or palette.shape[1] != 3:
        raise PaletteError(f"palette must be a (K, 3) array, got shape {palette.shape}")
    if palette.min() < 0 or palette.max() > 255:
        raise PaletteError("palette values must be in 0..255")
    return palette.astype(np.uint8)


def rainbow_palette(n_colors: int) -> np.ndarray:
    """
    Palette of ``n_colors`` colors in rainbow order plus the background.

    Entry 0 is left black for the background; the rest go
    red -> yellow -> green -> cyan -> blue -> magenta.

    Returns:
        (n_colors + 1, 3) uint8 palette
    """
    if n_colors < 0:
        raise ValueError(f"n_colors must be >= 0, got {n_colors}")

    palette = np.zeros((n_colors + 1, 3), dtype=np.uint8)
    period = n_colors // 5
    last_period = n_colors - 4 * period

    ramps = []
    for i in range(period):
        ramps.append((255, 255 * i // period, 0))  # red to yellow
    for i in range(period):
        ramps.append((255 * (period - i) // period, 255, 0))  # yellow to green
    for i in range(period):
        ramps.append((0, 255, 255 * i // period))  # green to cyan
    for i in range(period):
        ramps.append((0, 255 * (period - i) // period, 255))  # cyan to blue
    for i in range(last_period):
        ramps.append((255 * i // last_period, 0, 255))  # blue to magenta

    if ramps:
        palette[1:] = np.array(ramps, dtype=np.uint8)
    return palette


def kmeans_palette(
    image: np.ndarray,
    n_colors: int,
    random_state: int = 42,
) -> np.ndarray:
    """
    Build a palette from the dominant colors of an image.

    Index 0 is reserved for the background, so the result has
    ``n_colors + 1`` entries.

    Args:
        image: (H, W, 3) uint8 RGB image
        n_colors: Number of dominant colors (must be >= 1)
        random_state: Random seed for reproducibility

    Returns:
        (n_colors + 1, 3) uint8 palette
    """
    if n_colors < 1:
        raise ValueError(f"n_colors must be >= 1, got {n_colors}")
    if image.size == 0:
        raise PaletteError("Cannot build a palette from an empty image")

    pixels = np.float32(image.reshape(-1, 3))
    n_unique = len(np.unique(pixels, axis=0))
    if n_unique < n_colors:
        logger.warning(f"Image has only {n_unique} distinct colors, asked for {n_colors}")
        n_colors = n_unique

    kmeans = KMeans(n_clusters=n_colors, random_state=random_state, n_init=10)
    kmeans.fit(pixels)
    centers = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)

    logger.info(f"K-means palette with {n_colors} colors")
    return np.vstack([np.array(BACKGROUND_COLOR, dtype=np.uint8), centers])


def mean_color_palette(segmentation: "Segmentation") -> np.ndarray:
    """Palette mapping each region id to its mean color; background is gray."""
    palette = np.zeros((segmentation.n_regions, 3), dtype=np.uint8)
    for region in segmentation.foreground:
        palette[region.id] = np.clip(255.0 * region.mean_color, 0, 255).astype(np.uint8)
    palette[0] = BACKGROUND_COLOR
    return palette


def reorder_palette(palette: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """
    Move palette entry ``i`` (i >= 1) to slot ``order[i - 1]``.

    Used to color regions by their position in a foveal ordering.
    """
    palette = validate_palette(palette)
    out = np.zeros_like(palette)
    for i, slot in enumerate(order, start=1):
        if i >= len(palette) or not 0 <= slot < len(palette):
            raise PaletteError(f"cannot move entry {i} to slot {slot} of a {len(palette)}-color palette")
        out[slot] = palette[i]
    return out


def render_labels(labels: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Map an index grid to RGB through ``palette``."""
    palette = validate_palette(palette)
    if labels.size and labels.max() >= len(palette):
        raise PaletteError(
            f"index {int(labels.max())} out of range for a {len(palette)}-color palette")
    return palette[labels]
