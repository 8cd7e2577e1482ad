"""Connected-component labeling of palette-indexed images.

Pixels are scanned in raster order. Each non-background pixel looks at its
already visited (causal) neighbors that share its category:

- none: the pixel starts a new provisional label,
- one or more: the pixel takes the label of the first one and every other
  matching label is recorded as equivalent.

Equivalent labels are then resolved to a single representative and the
representatives compacted to ``0..R-1`` in discovery order.
"""
from typing import List, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)

# Causal neighbor offsets (dx, dy), in priority order
_WEST = (-1, 0)
_NORTH = (0, -1)
_NORTHWEST = (-1, -1)
_NORTHEAST = (1, -1)

CAUSAL_NEIGHBORS = {
    4: (_WEST, _NORTH),
    8: (_WEST, _NORTH, _NORTHWEST, _NORTHEAST),
}


class EquivalenceTable:
    """Union-find forest over provisional labels.

    The representative of a class is always its smallest label.
    """

    def __init__(self):
        self.parent: List[int] = [0]

    def __len__(self) -> int:
        return len(self.parent)

    def new_label(self) -> int:
        label = len(self.parent)
        self.parent.append(label)
        return label

    def find(self, a: int) -> int:
        parent = self.parent
        while parent[a] != a:
            parent[a] = parent[parent[a]]
            a = parent[a]
        return a

    def associate(self, a: int, b: int) -> None:
        """Record that labels ``a`` and ``b`` belong to the same region."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        if ra > rb:
            ra, rb = rb, ra
        self.parent[rb] = ra

    def resolve(self) -> List[int]:
        """
        Point every label directly to its representative.

        Labels are resolved from the highest down, so each chain only
        needs to be walked once.
        """
        for label in range(len(self.parent) - 1, 0, -1):
            root = self.find(label)
            assert root <= label, f"label {label} resolved to larger label {root}"
            self.parent[label] = root
        return self.parent


def label_components(
    indexed: np.ndarray,
    connectivity: int = 4,
) -> Tuple[np.ndarray, int, List[int]]:
    """
    Label the connected regions of each color category.

    Category 0 is the background and always gets label 0.

    Args:
        indexed: (H, W) int array of palette indexes
        connectivity: 4 (west and north neighbors) or 8 (also northwest and
            northeast)

    Returns:
        Tuple of (labels, n_regions, color_categories):
        - labels: (H, W) int array, 0 = background, 1..R-1 = regions
        - n_regions: R, number of regions including the background
        - color_categories: category of region ``id`` at position ``id - 1``
    """
    if connectivity not in CAUSAL_NEIGHBORS:
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")
    indexed = np.asarray(indexed)
    if indexed.ndim != 2:
        raise ValueError(f"Input must be an HxW index grid, got shape {indexed.shape}")

    height, width = indexed.shape
    neighbors = CAUSAL_NEIGHBORS[connectivity]
    src = indexed.tolist()
    provisional = [[0] * width for _ in range(height)]
    table = EquivalenceTable()

    for y in range(height):
        row = src[y]
        out = provisional[y]
        for x in range(width):
            color = row[x]
            if color == 0:
                continue

            matches = []
            for dx, dy in neighbors:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and ny >= 0 and src[ny][nx] == color:
                    matches.append(provisional[ny][nx])

            if not matches:
                out[x] = table.new_label()
                continue

            label = matches[0]
            out[x] = label
            for other in matches[1:]:
                if other != label:
                    table.associate(other, label)

    equivalences = table.resolve()

    # Compact representatives, preserving discovery order
    condensed = [0] * len(equivalences)
    count = 0
    for label, root in enumerate(equivalences):
        if label == root:
            condensed[label] = count
            count += 1
    n_regions = count

    lookup = np.array([condensed[root] for root in equivalences], dtype=np.int32)
    labels = lookup[np.array(provisional, dtype=np.int64).reshape(height, width)]

    # All pixels of a region share its category
    categories = np.zeros(n_regions, dtype=np.int64)
    foreground = labels > 0
    categories[labels[foreground]] = indexed[foreground]
    color_categories = [int(c) for c in categories[1:]]

    logger.debug(f"{len(equivalences) - 1} provisional labels, {n_regions - 1} regions")
    return labels, n_regions, color_categories
