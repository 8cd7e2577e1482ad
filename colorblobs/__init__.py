"""Color blob segmentation and region features."""
from colorblobs.types import (
    Region,
    Segmentation,
    SegmentationConfig,
    SegmentationError,
    PaletteError,
    ModelFormatError,
    IngestError,
    NFEATURES,
)

__version__ = "0.1.0"

__all__ = [
    "Region",
    "Segmentation",
    "SegmentationConfig",
    "SegmentationError",
    "PaletteError",
    "ModelFormatError",
    "IngestError",
    "NFEATURES",
]
