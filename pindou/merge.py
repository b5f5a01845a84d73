"""Merge adjacent grid cells whose bead colours are perceptually close.

Both entry points return a new grid and leave their input untouched. A merged
region always takes the colour of the cell it was seeded from. Background
cells never join a region and never seed one.
"""

import numpy as np

from pindou.color import delta_e
from pindou.flood import flood_fill
from pindou.palette import ColorInfo

Grid = list[list[ColorInfo]]


def _copy_grid(grid: Grid) -> Grid:
    return [list(row) for row in grid]


def _similar_region(grid: Grid, seed_row: int, seed_col: int,
                    threshold: float,
                    claimed: np.ndarray | None = None) -> np.ndarray:
    """Cells 4-connected to the seed through colours within threshold of it."""
    seed_lab = grid[seed_row][seed_col].lab

    def accept(r: int, c: int) -> bool:
        cell = grid[r][c]
        if cell.is_external:
            return False
        if claimed is not None and claimed[r, c]:
            return False
        return delta_e(cell.lab, seed_lab) < threshold

    shape = (len(grid), len(grid[0]))
    return flood_fill(shape, [(seed_row, seed_col)], accept)


def _paint(grid: Grid, region: np.ndarray, color: ColorInfo) -> bool:
    """Rewrite region cells to color in place. Returns True if any changed."""
    changed = False
    for r, c in zip(*np.nonzero(region)):
        cell = grid[r][c]
        if cell.code != color.code or cell.rgb != color.rgb:
            grid[r][c] = ColorInfo(color.code, color.rgb, color.lab,
                                   cell.is_external)
            changed = True
    return changed


def merge_region(grid: Grid, seed_row: int, seed_col: int,
                 threshold: float) -> Grid:
    """Recolour the similar-colour region around one seed cell.

    A seed on a background cell, outside the grid, or a threshold <= 0
    leaves the grid unchanged.
    """
    merged = _copy_grid(grid)
    if threshold <= 0 or not merged or not merged[0]:
        return merged
    if not (0 <= seed_row < len(merged) and 0 <= seed_col < len(merged[0])):
        return merged
    seed = merged[seed_row][seed_col]
    if seed.is_external:
        return merged

    region = _similar_region(merged, seed_row, seed_col, threshold)
    _paint(merged, region, seed)
    return merged


def _merge_pass(grid: Grid, threshold: float) -> bool:
    H, W = len(grid), len(grid[0])
    claimed = np.zeros((H, W), dtype=bool)
    changed = False
    for r in range(H):
        for c in range(W):
            if claimed[r, c] or grid[r][c].is_external:
                continue
            region = _similar_region(grid, r, c, threshold, claimed)
            claimed |= region
            if _paint(grid, region, grid[r][c]):
                changed = True
    return changed


def auto_merge(grid: Grid, threshold: float) -> Grid:
    """Merge every similar-colour region, sweeping seeds in row-major order.

    Sweeps repeat until one changes nothing, so the result is a fixed point:
    auto_merge(auto_merge(g, t), t) == auto_merge(g, t).
    """
    merged = _copy_grid(grid)
    if threshold <= 0 or not merged or not merged[0]:
        return merged
    while _merge_pass(merged, threshold):
        pass
    return merged
