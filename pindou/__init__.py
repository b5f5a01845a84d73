"""拼豆图纸生成器 - turn images into bead pattern grids."""

from pindou.color import delta_e, hex_to_rgb, rgb_to_lab
from pindou.generator import ALGORITHMS, generate
from pindou.merge import auto_merge, merge_region
from pindou.palette import (
    ColorInfo, PaletteError, PaletteStore, Swatch, UnknownPaletteError,
    load_default_palettes,
)
from pindou.stats import count_beads, find_alternatives, grid_to_dict

__version__ = "0.1.0"

__all__ = [
    "ALGORITHMS",
    "ColorInfo",
    "PaletteError",
    "PaletteStore",
    "Swatch",
    "UnknownPaletteError",
    "auto_merge",
    "count_beads",
    "delta_e",
    "find_alternatives",
    "generate",
    "grid_to_dict",
    "hex_to_rgb",
    "load_default_palettes",
    "merge_region",
    "rgb_to_lab",
]
