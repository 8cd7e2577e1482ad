"""Pytest configuration and fixtures."""

import numpy as np
import pytest

from colorblobs.segmentation import build_segmentation


@pytest.fixture
def diagonal_blocks():
    """4x4 grid with two diagonal 2x2 blocks of category 1."""
    indexed = np.zeros((4, 4), dtype=np.int32)
    indexed[0:2, 0:2] = 1
    indexed[2:4, 2:4] = 1
    return indexed


@pytest.fixture
def primary_palette():
    """Background black, then red, green and blue."""
    return np.array([
        [0, 0, 0],
        [255, 0, 0],
        [0, 255, 0],
        [0, 0, 255],
    ], dtype=np.uint8)


@pytest.fixture
def two_squares_image():
    """40x40 black image with a red and a blue 10x10 square."""
    image = np.zeros((40, 40, 3), dtype=np.uint8)
    image[5:15, 5:15] = [255, 0, 0]
    image[25:35, 20:30] = [0, 0, 255]
    return image


@pytest.fixture
def half_segmentation():
    """4x4 segmentation: left half category 1 (red), right half background."""
    indexed = np.zeros((4, 4), dtype=np.int32)
    indexed[:, :2] = 1
    source = np.zeros((4, 4, 3), dtype=np.uint8)
    source[:, :2] = [255, 0, 0]
    return build_segmentation(indexed, source)
