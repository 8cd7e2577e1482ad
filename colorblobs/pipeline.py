"""Blob extraction pipeline: preprocess, categorize, segment."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging
import time

import numpy as np

from colorblobs.categorization import ColorCategorizer
from colorblobs.raster_ingest import load_rgb, ingest_array, prepare_blob_image
from colorblobs.segmentation import segment
from colorblobs.types import Segmentation, SegmentationConfig

logger = logging.getLogger(__name__)


@dataclass
class BlobResult:
    """Output of the blob pipeline."""
    segmentation: Segmentation
    indexed: np.ndarray  # (H, W) palette indexes from the categorizer
    confidence: np.ndarray  # (H, W) categorizer confidence in [0, 1]


class BlobPipeline:
    """Color blob extraction.

    With ``resize=True`` images are color corrected, scaled down to the blob
    working size and blurred before categorization, and small regions are
    dropped with ``config.blob_volume_threshold``. Otherwise the image is
    categorized as is and ``config.volume_threshold`` applies.
    """

    def __init__(
        self,
        categorizer: ColorCategorizer,
        config: Optional[SegmentationConfig] = None,
        resize: bool = True,
    ):
        self.categorizer = categorizer
        self.config = config or SegmentationConfig()
        self.resize = resize

    def process(self, image: np.ndarray) -> BlobResult:
        """
        Extract the color blobs of an RGB image.

        Args:
            image: Image array, see ``ingest_array``

        Returns:
            BlobResult with the segmentation and the categorizer output
        """
        start_time = time.time()
        image = ingest_array(image)

        if self.resize:
            to_categorize, source = prepare_blob_image(image, self.config)
            threshold = self.config.blob_volume_threshold
        else:
            to_categorize, source = image, image
            threshold = self.config.volume_threshold

        logger.debug(f"Categorizing {to_categorize.shape[1]}x{to_categorize.shape[0]} "
                     f"({self.categorizer.mode})")
        indexed, confidence = self.categorizer.categorize(to_categorize)

        segmentation = segment(indexed, source, self.config, volume_threshold=threshold)

        logger.info(f"Blob extraction took {time.time() - start_time:.3f}s")
        return BlobResult(segmentation=segmentation, indexed=indexed, confidence=confidence)

    def process_path(self, path: Union[str, Path]) -> BlobResult:
        """Load an image file and extract its blobs."""
        return self.process(load_rgb(path))
