"""Conversion of RGB images into palette-indexed images."""
from typing import Optional, Tuple
import logging

import numpy as np

from colorblobs.palette import validate_palette
from colorblobs.perceptron import Perceptron, select_winner, NO_THRESHOLD

logger = logging.getLogger(__name__)

# Largest Euclidean distance in 8-bit RGB space
_MAX_RGB_DIST = 255.0 * np.sqrt(3.0)


def _check_rgb(image: np.ndarray) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Input must be HxWx3 array, got shape {image.shape}")


def color_opponent_input(rgb: np.ndarray) -> np.ndarray:
    """
    Re-parameterize RGB colors in [0, 1] as classifier inputs.

    Each color becomes ``(r/l, g/l, b/l, (r+g)/2l, (r+b)/2l, l/3)`` with
    ``l = r + g + b`` (1 for black): redness, greenness, blueness,
    yellowness, purpleness and lightness.

    Args:
        rgb: (..., 3) array of colors in [0, 1]

    Returns:
        (..., 6) array
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    l = r + g + b
    l = np.where(l == 0, 1.0, l)
    return np.stack([
        r / l,
        g / l,
        b / l,
        (r + g) / (2.0 * l),
        (r + b) / (2.0 * l),
        l / 3.0,
    ], axis=-1)


def bipolarize(x: np.ndarray) -> np.ndarray:
    """Map values in [0, 1] to [-1, 1]."""
    return 2.0 * np.asarray(x, dtype=np.float64) - 1.0


def categorize_nearest(image: np.ndarray, palette: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Index every pixel with the closest palette color.

    Ties go to the lowest palette index.

    Args:
        image: (H, W, 3) uint8 RGB image
        palette: (K, 3) palette

    Returns:
        Tuple of (indexed, confidence):
        - indexed: (H, W) int array of palette indexes
        - confidence: (H, W) float array in [0, 1], 1 for an exact match
    """
    _check_rgb(image)
    palette = validate_palette(palette).astype(np.int64)

    pixels = image.reshape(-1, 3).astype(np.int64)
    d = np.zeros((len(pixels), len(palette)), dtype=np.int64)
    for k, color in enumerate(palette):
        d[:, k] = np.sum((pixels - color) ** 2, axis=1)

    index = np.argmin(d, axis=1)
    best = d[np.arange(len(pixels)), index]
    confidence = 1.0 - np.sqrt(best) / _MAX_RGB_DIST

    h, w = image.shape[:2]
    return index.reshape(h, w), confidence.reshape(h, w)


def categorize_classifier(
    image: np.ndarray,
    classifier: Perceptron,
    threshold: float = 0.5,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Index every pixel with a color classification network.

    Output unit ``k`` (numbered from 1) maps to palette index ``k``; pixels
    whose strongest unit stays below ``threshold`` get index 0. The
    confidence grid always holds ``(activation + 1) / 2`` of the strongest
    unit, rejected pixels included.

    Args:
        image: (H, W, 3) uint8 RGB image
        classifier: Network with 6 inputs
        threshold: Rejection threshold, ``NO_THRESHOLD`` to disable

    Returns:
        Tuple of (indexed, confidence)
    """
    _check_rgb(image)
    if classifier.nin != 6:
        raise ValueError(f"color classifier must take 6 inputs, got {classifier.nin}")

    h, w = image.shape[:2]
    x = bipolarize(color_opponent_input(image.reshape(-1, 3) / 255.0))
    outputs = classifier.forward(x)

    index = select_winner(outputs, threshold)
    best = select_winner(outputs, NO_THRESHOLD) - 1
    confidence = (outputs[np.arange(len(outputs)), best] + 1.0) / 2.0

    rejected = int(np.sum(index == 0))
    if rejected:
        logger.debug(f"{rejected} of {len(index)} pixels below threshold {threshold}")

    return index.reshape(h, w), confidence.reshape(h, w)


class ColorCategorizer:
    """Converts RGB images to palette-indexed images.

    Uses the classifier when one is given, nearest palette color otherwise.
    """

    def __init__(
        self,
        palette: np.ndarray,
        classifier: Optional[Perceptron] = None,
        threshold: float = 0.5,
    ):
        self.palette = validate_palette(palette)
        self.classifier = classifier
        self.threshold = threshold

        if classifier is not None and classifier.nout + 1 > len(self.palette):
            logger.warning(
                f"classifier has {classifier.nout} outputs but the palette only "
                f"{len(self.palette)} entries")

    @property
    def mode(self) -> str:
        return "nearest" if self.classifier is None else "classifier"

    def categorize(self, image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return the (indexed, confidence) grids of ``image``."""
        if self.classifier is None:
            return categorize_nearest(image, self.palette)
        return categorize_classifier(image, self.classifier, self.threshold)
