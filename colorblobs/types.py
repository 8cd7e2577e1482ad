"""Core types for the color blob segmentation engine."""
from dataclasses import dataclass, field
from typing import Optional, List, Tuple
import numpy as np


# Number of values in a region feature vector
NFEATURES = 13

# Rendering color of the background (unknown) category
BACKGROUND_COLOR = (80, 80, 80)


@dataclass
class Region:
    """Connected region of pixels sharing one color category.

    Region 0 is the background pseudo-region; only ``n`` and ``vol`` are
    meaningful for it.
    """
    id: int
    n: int = 0
    bbox: Tuple[int, int, int, int] = (0, 0, 0, 0)  # min_x, max_x, min_y, max_y
    centroid: Tuple[float, float] = (0.0, 0.0)  # Normalized to the unit square
    vol: float = 0.0
    relative_vol: float = 0.0
    mean_color: np.ndarray = field(default_factory=lambda: np.zeros(3))
    std_color: np.ndarray = field(default_factory=lambda: np.zeros(3))
    skew_color: np.ndarray = field(default_factory=lambda: np.zeros(3))
    moment_xx: float = 0.0
    moment_xy: float = 0.0
    moment_yy: float = 0.0
    color_category: int = 0
    cluster_id: Optional[int] = None

    @property
    def is_background(self) -> bool:
        return self.id == 0

    @property
    def bbox_size(self) -> Tuple[int, int]:
        """Width and height of the bounding box, in pixels."""
        min_x, max_x, min_y, max_y = self.bbox
        return max_x - min_x + 1, max_y - min_y + 1

    def feature_vector(self) -> np.ndarray:
        """
        Return the 13 region features in their fixed order.

        ``[cx, cy, vol, relativeVol, meanR, meanG, meanB,
        stdR, stdG, stdB, skewR, skewG, skewB]``
        """
        return np.concatenate([
            [self.centroid[0], self.centroid[1], self.vol, self.relative_vol],
            self.mean_color,
            self.std_color,
            self.skew_color,
        ]).astype(np.float64)


@dataclass
class Segmentation:
    """A label grid together with the features of every region."""
    labels: np.ndarray  # (H, W) int, 0 = background
    regions: List[Region]  # Indexed by region id, regions[0] is background
    source: Optional[np.ndarray] = None  # (H, W, 3) uint8 RGB, if available
    discarded: int = 0

    @property
    def width(self) -> int:
        return int(self.labels.shape[1])

    @property
    def height(self) -> int:
        return int(self.labels.shape[0])

    @property
    def n_regions(self) -> int:
        """Number of regions, including the background."""
        return len(self.regions)

    @property
    def foreground(self) -> List[Region]:
        return self.regions[1:]

    @property
    def color_categories(self) -> List[int]:
        return [r.color_category for r in self.foreground]

    def features(self) -> np.ndarray:
        """Feature matrix, one 13-column row per foreground region."""
        if len(self.regions) <= 1:
            return np.zeros((0, NFEATURES))
        return np.vstack([r.feature_vector() for r in self.foreground])

    def volumes(self) -> np.ndarray:
        return np.array([r.vol for r in self.regions])

    def __str__(self) -> str:
        return (f"Segmentation: {self.n_regions - 1} regions, "
                f"{self.discarded} discarded.")


@dataclass
class SegmentationConfig:
    """Configuration for blob segmentation."""
    # Minimum region volume (fraction of the image) kept by the filter
    volume_threshold: float = 0.01

    # Classifier rejection threshold (bipolar activation)
    rejection_threshold: float = 0.5

    # 4 (west, north) or 8 (west, north, northwest, northeast)
    connectivity: int = 4

    # Foveal ordering: distances are discretized with 2**foveal_levels
    foveal_levels: int = 6

    # Blob preprocessing
    blob_long_side: int = 80
    blob_short_side: int = 60
    blur_sigma: float = 4.0
    blob_volume_threshold: float = 0.005

    # Color correction
    gray_world_threshold: float = 90.0
    white_world_fraction: float = 0.01
    white_point: Tuple[float, float, float] = (246.0, 252.0, 230.0)

    # Region clustering
    som_alpha: float = 0.8
    som_decay: float = 0.9
    som_min_alpha: float = 1e-4

    def __post_init__(self):
        if not 0.0 <= self.volume_threshold <= 1.0:
            raise ValueError(
                f"volume_threshold must be in [0, 1], got {self.volume_threshold}")
        if not 0.0 <= self.blob_volume_threshold <= 1.0:
            raise ValueError(
                f"blob_volume_threshold must be in [0, 1], got {self.blob_volume_threshold}")
        if self.connectivity not in (4, 8):
            raise ValueError(f"connectivity must be 4 or 8, got {self.connectivity}")
        if self.foveal_levels < 0:
            raise ValueError(f"foveal_levels must be >= 0, got {self.foveal_levels}")
        if self.blob_long_side < 1 or self.blob_short_side < 1:
            raise ValueError("blob sizes must be positive")
        if not 0.0 < self.som_decay < 1.0:
            raise ValueError(f"som_decay must be in (0, 1), got {self.som_decay}")


class SegmentationError(Exception):
    """Base exception for segmentation errors."""
    pass


class PaletteError(SegmentationError):
    """Exception raised for missing or malformed palettes."""
    pass


class ModelFormatError(SegmentationError):
    """Exception raised when a persisted network cannot be read."""
    pass


class IngestError(SegmentationError):
    """Exception raised when an image cannot be loaded."""
    pass
