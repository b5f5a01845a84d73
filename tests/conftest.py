"""Pytest configuration and fixtures."""

import numpy as np
import pytest
from PIL import Image

from pindou.palette import PaletteStore

# Two brands; "beta" has no code for green. RX duplicates R to exercise the
# first-listed tie break.
SMALL_PALETTE_CSV = """\
hex,alpha,beta
#FFFFFF,W,w1
#FF0000,R,r1
#FA0A0A,R2,r2
#F01414,R3,r3
#0000FF,B,b1
#00FF00,G,
#000000,K,k1
#FF0000,RX,rx
"""


@pytest.fixture
def small_store() -> PaletteStore:
    return PaletteStore.from_text(SMALL_PALETTE_CSV)


def make_grid(store: PaletteStore, key: str, codes: list[list[str]],
              external: set[tuple[int, int]] = frozenset()):
    """Build a grid from code rows; cells in `external` are background."""
    lookup = {c.code: c for c in store[key]}
    grid = []
    for r, row in enumerate(codes):
        cells = []
        for c, code in enumerate(row):
            info = lookup[code]
            cells.append(info.as_background() if (r, c) in external else info)
        grid.append(cells)
    return grid


def grid_codes(grid) -> list[list[str]]:
    return [[cell.code for cell in row] for row in grid]


@pytest.fixture
def framed_image() -> Image.Image:
    """20x20 solid white image with a 10x10 solid red centre."""
    arr = np.full((20, 20, 3), 255, dtype=np.uint8)
    arr[5:15, 5:15] = [255, 0, 0]
    return Image.fromarray(arr)
