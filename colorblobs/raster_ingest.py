"""Raster image ingestion and blob preprocessing."""
from pathlib import Path
from typing import Optional, Tuple, Union
import logging

import numpy as np
from PIL import Image
from PIL import ImageOps
from scipy import ndimage

from colorblobs.types import IngestError, SegmentationConfig

logger = logging.getLogger(__name__)


def load_rgb(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as 8-bit RGB.

    Args:
        path: Path to image file

    Returns:
        (H, W, 3) uint8 array

    Raises:
        FileNotFoundError: If file doesn't exist
        IngestError: If file cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    if not path.is_file():
        raise IngestError(f"Path is not a file: {path}")

    try:
        with Image.open(path) as img:
            # Apply EXIF orientation transformation to handle rotation
            img = ImageOps.exif_transpose(img)

            if img.mode == 'RGBA':
                # Composite on white background
                background = Image.new('RGB', img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[3])
                img = background
            elif img.mode != 'RGB':
                img = img.convert('RGB')

            image = np.array(img, dtype=np.uint8)

    except (IOError, OSError) as e:
        raise IngestError(f"Failed to load image {path}: {e}") from e

    logger.debug(f"Loaded {path}: {image.shape[1]}x{image.shape[0]}")
    return image


def ingest_array(image: np.ndarray) -> np.ndarray:
    """
    Normalize an array to (H, W, 3) uint8 RGB.

    Accepts grayscale, RGB and RGBA arrays, either 0-255 or floats in 0-1.
    RGBA is composited on white.
    """
    image = np.asarray(image)
    if image.ndim == 2:
        # Grayscale - convert to RGB
        image = np.stack([image] * 3, axis=-1)

    if image.ndim != 3:
        raise IngestError(f"Expected 3D array, got {image.ndim}D")

    if image.dtype != np.uint8:
        image = image.astype(np.float64)
        if image.size and image.max() <= 1.0:
            image = image * 255.0

    if image.shape[2] == 4:
        alpha = image[..., 3:4].astype(np.float64) / 255.0
        rgb = image[..., :3].astype(np.float64)
        image = rgb * alpha + 255.0 * (1.0 - alpha)
    elif image.shape[2] != 3:
        raise IngestError(f"Expected 3 or 4 channels, got {image.shape[2]}")

    if image.dtype != np.uint8:
        image = np.clip(np.rint(image), 0, 255).astype(np.uint8)
    return image


def gray_world_correct(
    image: np.ndarray,
    threshold: float = 90.0,
    fraction: float = 0.01,
    white: Tuple[float, float, float] = (246.0, 252.0, 230.0),
) -> np.ndarray:
    """
    Color correction under the modified white world assumption.

    Dark images (mean intensity <= ``threshold``) do not follow the gray
    world assumption and are returned unchanged. Otherwise, for each channel,
    the level with ``fraction`` of the pixels above it is scaled to the
    ``white`` point.

    Args:
        image: (H, W, 3) uint8 RGB image
        threshold: Mean intensity below which no correction is applied
        fraction: Fraction of brightest pixels considered white
        white: Target white point

    Returns:
        (H, W, 3) uint8 corrected image
    """
    if image.size == 0 or float(np.mean(image)) <= threshold:
        return image

    npix = float(image.shape[0] * image.shape[1])
    gains = np.ones(3)
    for c in range(3):
        hist = np.bincount(image[..., c].ravel(), minlength=256)
        level, accumulated = 255, 0.0
        while level > 0 and accumulated < fraction:
            accumulated += hist[level] / npix
            level -= 1
        gains[c] = white[c] / max(level, 1)

    logger.debug(f"white world gains {np.round(gains, 3).tolist()}")
    corrected = image.astype(np.float64) * gains
    return np.clip(corrected, 0, 255).astype(np.uint8)


def blob_size(width: int, height: int, config: Optional[SegmentationConfig] = None) -> Tuple[int, int]:
    """Working (width, height) for blob extraction, keeping the orientation."""
    config = config or SegmentationConfig()
    if width > height:
        return config.blob_long_side, config.blob_short_side
    return config.blob_short_side, config.blob_long_side


def resize(image: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize an RGB array to ``size`` = (width, height)."""
    return np.array(Image.fromarray(image).resize(size, Image.BILINEAR), dtype=np.uint8)


def prepare_blob_image(
    image: np.ndarray,
    config: Optional[SegmentationConfig] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Prepare an image for blob extraction.

    The image is color corrected, scaled down to the blob working size and
    blurred, so that only large color areas survive categorization.

    Args:
        image: (H, W, 3) uint8 RGB image
        config: Segmentation configuration (uses defaults if None)

    Returns:
        Tuple of (blurred, resized):
        - blurred: corrected, resized and blurred image to categorize
        - resized: uncorrected image at the working size, for color features
    """
    config = config or SegmentationConfig()
    height, width = image.shape[:2]
    size = blob_size(width, height, config)

    corrected = gray_world_correct(
        image,
        config.gray_world_threshold,
        config.white_world_fraction,
        config.white_point,
    )
    scaled = resize(corrected, size).astype(np.float64)
    blurred = ndimage.gaussian_filter(scaled, sigma=(config.blur_sigma, config.blur_sigma, 0))
    blurred = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)

    return blurred, resize(image, size)
