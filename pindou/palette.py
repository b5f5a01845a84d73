"""Bead colour database: per-brand palettes and nearest-colour matching.

The palette source is a CSV table. The header row names the hex column
followed by one column per brand; every data row is one physical colour with
the code each brand sells it under.

    hex,mard,COCO
    #FFFFFF,H2,A01
    #000000,H7,A02
"""

import csv
import functools
import io
from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np

from pindou.color import delta_e, hex_to_rgb, rgb_to_lab

DEFAULT_PALETTE_PATH = Path(__file__).parent / "colors" / "palette.csv"
_HEX_DIGITS = set("0123456789abcdefABCDEF")
_MATCH_CHUNK = 500


class PaletteError(ValueError):
    """Palette source could not be parsed, or a palette is unusable."""


class UnknownPaletteError(KeyError):
    """Requested palette key is not in the store."""

    def __str__(self) -> str:
        return f"Unknown palette: {self.args[0]!r}"


@dataclass(frozen=True)
class ColorInfo:
    """A palette swatch as seen by one brand, or a grid cell's resolved swatch.

    is_external marks a grid cell classified as background; such cells are
    left out of bead counts.
    """

    code: str
    rgb: tuple[int, int, int]
    lab: tuple[float, float, float]
    is_external: bool = False

    def as_background(self) -> "ColorInfo":
        return replace(self, is_external=True)


@dataclass(frozen=True)
class Swatch:
    """One palette row: a single colour and the code each brand uses for it."""

    rgb: tuple[int, int, int]
    lab: tuple[float, float, float]
    codes: dict[str, str] = field(default_factory=dict, hash=False)

    def color_info(self, brand: str) -> ColorInfo:
        return ColorInfo(self.codes[brand], self.rgb, self.lab)


def _valid_hex(value: str) -> bool:
    return (value.startswith("#") and len(value) == 7
            and all(ch in _HEX_DIGITS for ch in value[1:]))


class PaletteStore:
    """Immutable set of brand palettes built from one colour table."""

    def __init__(self, brands: list[str], swatches: list[Swatch]) -> None:
        self._brands = tuple(brands)
        self.swatches = tuple(swatches)
        self._entries: dict[str, tuple[ColorInfo, ...]] = {}
        self._lab: dict[str, np.ndarray] = {}
        for brand in self._brands:
            entries = tuple(s.color_info(brand) for s in self.swatches
                            if brand in s.codes)
            self._entries[brand] = entries
            self._lab[brand] = np.array([e.lab for e in entries],
                                        dtype=np.float64).reshape(-1, 3)

    # -- construction -------------------------------------------------------

    @classmethod
    def from_text(cls, text: str) -> "PaletteStore":
        """Parse CSV palette text. Rows with a malformed hex are skipped."""
        try:
            rows = [row for row in csv.reader(io.StringIO(text.strip()))
                    if any(cell.strip() for cell in row)]
        except csv.Error as exc:
            raise PaletteError(f"Cannot parse palette data: {exc}") from exc
        if not rows:
            raise PaletteError("Palette data is empty")

        header = [cell.strip() for cell in rows[0]]
        brand_columns = [(i, name) for i, name in enumerate(header)
                         if i > 0 and name]
        if not brand_columns:
            raise PaletteError("Palette header has no brand columns")

        swatches: list[Swatch] = []
        for row in rows[1:]:
            hexval = row[0].strip()
            if not _valid_hex(hexval):
                continue
            codes: dict[str, str] = {}
            for i, brand in brand_columns:
                code = row[i].strip() if i < len(row) else ""
                if code:
                    codes[brand] = code
            rgb = hex_to_rgb(hexval)
            lab = tuple(float(v) for v in rgb_to_lab(rgb))
            swatches.append(Swatch(rgb, lab, codes))  # type: ignore[arg-type]
        return cls([name for _, name in brand_columns], swatches)

    @classmethod
    def from_csv(cls, path: str | Path) -> "PaletteStore":
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                text = f.read()
        except OSError as exc:
            raise PaletteError(f"Cannot read palette file {path}: {exc}") from exc
        return cls.from_text(text)

    # -- lookup -------------------------------------------------------------

    def keys(self) -> tuple[str, ...]:
        return self._brands

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> tuple[ColorInfo, ...]:
        if key not in self._entries:
            raise UnknownPaletteError(key)
        return self._entries[key]

    def lab_array(self, key: str) -> np.ndarray:
        """(N, 3) Lab values of the palette, in palette order."""
        entries = self[key]
        if not entries:
            raise PaletteError(f"Palette {key!r} has no colors")
        return self._lab[key]

    def find_closest_color(self, r: float, g: float, b: float,
                           key: str) -> ColorInfo:
        """Nearest palette entry by CIE76; the first listed wins a tie."""
        idx = int(self.match_many(np.array([r, g, b], dtype=np.float64), key))
        return self[key][idx]

    def match_many(self, rgb: np.ndarray, key: str) -> np.ndarray:
        """Index of the nearest palette entry for every colour in (..., 3)."""
        palette_lab = self.lab_array(key)
        rgb = np.asarray(rgb, dtype=np.float64)
        flat_lab = rgb_to_lab(rgb.reshape(-1, 3))
        indices = np.empty(len(flat_lab), dtype=np.intp)
        for start in range(0, len(flat_lab), _MATCH_CHUNK):
            chunk = flat_lab[start:start + _MATCH_CHUNK]
            dists = delta_e(chunk[:, np.newaxis, :], palette_lab[np.newaxis, :, :])
            # argmin returns the first occurrence of the minimum
            indices[start:start + _MATCH_CHUNK] = dists.argmin(axis=1)
        return indices.reshape(rgb.shape[:-1])

    def code_lookup(self, key: str, code: str) -> ColorInfo | None:
        for entry in self[key]:
            if entry.code == code:
                return entry
        return None


@functools.lru_cache(maxsize=None)
def load_default_palettes() -> PaletteStore:
    """Load the bundled palette table once per process."""
    return PaletteStore.from_csv(DEFAULT_PALETTE_PATH)
