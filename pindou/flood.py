"""Breadth-first flood fill over a 2D grid with a caller-supplied predicate.

Background segmentation (pixel grid, "is near-white") and region merging
(bead grid, "is close to the seed colour") are both this traversal.
"""

from collections import deque
from collections.abc import Callable, Iterable

import numpy as np

NEIGHBORS_4 = ((-1, 0), (1, 0), (0, -1), (0, 1))


def flood_fill(
    shape: tuple[int, int],
    seeds: Iterable[tuple[int, int]],
    accept: Callable[[int, int], bool],
) -> np.ndarray:
    """4-connected BFS from seeds. Returns (H, W) bool mask of filled cells.

    A dequeued cell is visited once. If accept(r, c) is true the cell is
    filled and its unvisited in-bounds neighbours are enqueued; a rejected
    cell stops the fill in that direction.
    """
    H, W = shape
    visited = bytearray(H * W)
    filled = bytearray(H * W)
    queue = deque(seeds)

    while queue:
        r, c = queue.popleft()
        idx = r * W + c
        if visited[idx]:
            continue
        visited[idx] = 1
        if not accept(r, c):
            continue
        filled[idx] = 1
        for dr, dc in NEIGHBORS_4:
            nr, nc = r + dr, c + dc
            if 0 <= nr < H and 0 <= nc < W and not visited[nr * W + nc]:
                queue.append((nr, nc))

    return np.frombuffer(bytes(filled), dtype=np.uint8).reshape(H, W).astype(bool)


def corner_seeds(shape: tuple[int, int]) -> list[tuple[int, int]]:
    """The four corner cells of a grid (duplicates when a side is 1)."""
    H, W = shape
    return [(0, 0), (0, W - 1), (H - 1, 0), (H - 1, W - 1)]
