"""Clustering of regions by their feature vectors."""
from typing import Optional, Sequence
import logging

import numpy as np

from colorblobs.som import SOM
from colorblobs.types import NFEATURES, Segmentation, SegmentationConfig, SegmentationError

logger = logging.getLogger(__name__)


def cluster_regions(segmentation: Segmentation, som: SOM) -> np.ndarray:
    """
    Assign every foreground region to its closest SOM unit.

    Sets ``cluster_id`` on each region.

    Returns:
        (R-1,) int array of cluster ids, in region id order
    """
    if som.nin != NFEATURES:
        raise ValueError(f"SOM must take {NFEATURES} inputs, got {som.nin}")

    clusters = som.select_winners(segmentation.features())
    for region, cluster in zip(segmentation.foreground, clusters):
        region.cluster_id = int(cluster)

    logger.debug(f"clustered {len(clusters)} regions into {som.nout} units")
    return clusters


def _cluster_ids(segmentation: Segmentation) -> np.ndarray:
    ids = [r.cluster_id for r in segmentation.foreground]
    if any(c is None for c in ids):
        raise SegmentationError("regions have not been clustered, see cluster_regions")
    return np.array(ids, dtype=np.int64)


def cluster_histogram(segmentation: Segmentation, n_clusters: int) -> np.ndarray:
    """Sum of region volumes per cluster."""
    if n_clusters < 1:
        raise ValueError(f"n_clusters must be >= 1, got {n_clusters}")
    ids = _cluster_ids(segmentation)
    volumes = np.array([r.vol for r in segmentation.foreground])
    return np.bincount(ids, weights=volumes, minlength=n_clusters).astype(np.float64)


def cluster_image(segmentation: Segmentation) -> np.ndarray:
    """Label grid with every region replaced by ``cluster_id + 1``; background stays 0."""
    lookup = np.concatenate([[0], _cluster_ids(segmentation) + 1])
    return lookup[segmentation.labels]


def train_region_som(
    segmentations: Sequence[Segmentation],
    n_clusters: int,
    config: Optional[SegmentationConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> SOM:
    """
    Train a SOM on the region features of several segmentations.

    Units start on randomly picked regions.
    """
    config = config or SegmentationConfig()
    features = [s.features() for s in segmentations]
    samples = np.vstack(features) if features else np.zeros((0, NFEATURES))
    if len(samples) == 0:
        raise SegmentationError("no regions to train on")

    som = SOM.random(NFEATURES, n_clusters, rng)
    som.init_from_samples(samples, rng)
    epochs = som.learn(samples, config.som_alpha, config.som_decay, config.som_min_alpha)

    logger.info(f"Trained {som} on {len(samples)} regions ({epochs} epochs)")
    return som
