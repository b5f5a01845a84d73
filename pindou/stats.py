"""Bead usage summary, substitute suggestions and grid export."""

from collections import Counter

from pindou.color import delta_e
from pindou.palette import ColorInfo, PaletteStore

Grid = list[list[ColorInfo]]


def count_beads(grid: Grid) -> list[tuple[ColorInfo, int]]:
    """Bead count per code, most used first. Background cells are skipped.

    Codes with equal counts keep the order they first appear in the grid.
    """
    usage: Counter[str] = Counter()
    first_seen: dict[str, ColorInfo] = {}
    for row in grid:
        for cell in row:
            if cell.is_external:
                continue
            usage[cell.code] += 1
            first_seen.setdefault(cell.code, cell)
    return [(first_seen[code], count) for code, count in usage.most_common()]


def find_alternatives(palettes: PaletteStore, code: str, palette_key: str,
                      n: int = 3) -> list[ColorInfo]:
    """The n closest other codes to `code` in the same palette.

    Returns an empty list when the code is not in the palette.
    """
    target = palettes.code_lookup(palette_key, code)
    if target is None:
        return []
    others = [c for c in palettes[palette_key] if c.code != code]
    # sorted() is stable, so equal distances keep palette order
    others.sort(key=lambda c: delta_e(target.lab, c.lab))
    return others[:n]


def grid_to_dict(grid: Grid, palette_key: str | None = None) -> dict:
    """JSON-ready form of a grid for renderers and other consumers."""
    return {
        "palette": palette_key,
        "width": len(grid[0]) if grid else 0,
        "height": len(grid),
        "cells": [
            [{"code": cell.code,
              "rgb": list(cell.rgb),
              "external": cell.is_external} for cell in row]
            for row in grid
        ],
        "usage": [{"code": info.code, "count": count}
                  for info, count in count_beads(grid)],
    }
