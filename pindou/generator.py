"""Image -> bead grid pipeline.

Stages: center crop to the target aspect ratio, resample to a fixed 4x
oversampled processing buffer, optional background segmentation by flood
fill from the corners, per-cell colour selection with one of four
strategies, then nearest bead colour matching.
"""

import math
from collections.abc import Callable

import numpy as np
from PIL import Image

from pindou.color import clamp_channel
from pindou.flood import NEIGHBORS_4, corner_seeds, flood_fill
from pindou.palette import ColorInfo, PaletteStore, load_default_palettes

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MIN_GRID = 1
MAX_GRID = 120
OVERSAMPLE = 4            # processing buffer is 4x the target grid
BRIGHTNESS_STEP = 15      # channel offset per brightness unit
DEFAULT_BG_TOLERANCE = 30
BACKGROUND_RATIO = 0.5    # a cell is background above this masked fraction
TRANSPARENT_ALPHA = 10    # alpha below this counts as transparent
POOL_BUCKET = 10          # dominant pooling rounds channels to this step
FLAT_GRADIENT = 15.0      # below this neighbour difference a cell is flat
SHARPEN_CENTER = 2.0
SHARPEN_EDGE = -0.1
NEUTRAL_RGB = (255.0, 255.0, 255.0)

Grid = list[list[ColorInfo]]
CellSampler = Callable[..., tuple[np.ndarray, np.ndarray]]


def clamp_dimension(n: int) -> int:
    """Clamp a requested grid side to the supported range."""
    return max(MIN_GRID, min(MAX_GRID, int(n)))


# ---------------------------------------------------------------------------
# Geometric preprocessing
# ---------------------------------------------------------------------------

def center_crop_box(src_w: int, src_h: int, target_w: int,
                    target_h: int) -> tuple[float, float, float, float]:
    """Largest centred (x, y, w, h) region with the target aspect ratio."""
    target_ratio = target_w / target_h
    if src_w / src_h > target_ratio:
        # Image is wider, crop width
        crop_w = src_h * target_ratio
        return (src_w - crop_w) / 2.0, 0.0, crop_w, float(src_h)
    # Image is taller, crop height
    crop_h = src_w / target_ratio
    return 0.0, (src_h - crop_h) / 2.0, float(src_w), crop_h


def _to_rgba_image(image: Image.Image | np.ndarray) -> Image.Image:
    if isinstance(image, Image.Image):
        return image.convert("RGBA")
    arr = np.asarray(image)
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    return Image.fromarray(arr).convert("RGBA")


def build_processing_buffer(image: Image.Image | np.ndarray, target_w: int,
                            target_h: int) -> np.ndarray:
    """Crop and resample the image to (target_h*4, target_w*4, 4) RGBA."""
    img = _to_rgba_image(image)
    x, y, w, h = center_crop_box(img.width, img.height, target_w, target_h)
    proc_size = (target_w * OVERSAMPLE, target_h * OVERSAMPLE)
    resized = img.resize(proc_size, Image.Resampling.BILINEAR,
                         box=(x, y, x + w, y + h))
    return np.array(resized)


# ---------------------------------------------------------------------------
# Background segmentation
# ---------------------------------------------------------------------------

def background_mask(buffer: np.ndarray, tolerance: float) -> np.ndarray:
    """Near-white pixels reachable from the buffer corners.

    A pixel is near-white when its RGB distance to white is below
    2 * tolerance. Near-white areas enclosed by foreground are not masked.
    """
    tolerance = min(100.0, max(0.0, float(tolerance)))
    rgb = buffer[..., :3].astype(np.float64)
    dist_to_white = np.sqrt(((255.0 - rgb) ** 2).sum(axis=-1))
    near_white = (dist_to_white < tolerance * 2).tolist()
    shape = buffer.shape[:2]
    return flood_fill(shape, corner_seeds(shape),
                      lambda r, c: near_white[r][c])


# ---------------------------------------------------------------------------
# Cell sampling strategies
# ---------------------------------------------------------------------------

def _block_span(index: int, block: float, limit: int) -> tuple[int, int]:
    start = math.floor(index * block)
    end = min(math.floor((index + 1) * block), limit)
    return start, end


def _adjusted(pixels: np.ndarray, offset: float) -> np.ndarray:
    return clamp_channel(pixels[..., :3].astype(np.float64) + offset)


def sample_nearest(buffer: np.ndarray, mask: np.ndarray | None,
                   target_w: int, target_h: int,
                   brightness: float = 0) -> tuple[np.ndarray, np.ndarray]:
    """One sample at each block centre. Background iff that pixel is masked."""
    proc_h, proc_w = buffer.shape[:2]
    rgb = np.empty((target_h, target_w, 3), dtype=np.float64)
    rgb[:] = NEUTRAL_RGB
    background = np.zeros((target_h, target_w), dtype=bool)
    if proc_h == 0 or proc_w == 0:
        return rgb, background

    block_w = proc_w / target_w
    block_h = proc_h / target_h
    rows = np.floor(np.arange(target_h) * block_h + block_h / 2).astype(int)
    cols = np.floor(np.arange(target_w) * block_w + block_w / 2).astype(int)
    rows = np.clip(rows, 0, proc_h - 1)
    cols = np.clip(cols, 0, proc_w - 1)

    rgb = _adjusted(buffer[rows[:, None], cols[None, :]],
                    brightness * BRIGHTNESS_STEP)
    if mask is not None:
        background = mask[rows[:, None], cols[None, :]].copy()
    return rgb, background


def sample_average(buffer: np.ndarray, mask: np.ndarray | None,
                   target_w: int, target_h: int,
                   brightness: float = 0) -> tuple[np.ndarray, np.ndarray]:
    """Mean colour of each block; background above half masked pixels."""
    proc_h, proc_w = buffer.shape[:2]
    block_w = proc_w / target_w
    block_h = proc_h / target_h
    offset = brightness * BRIGHTNESS_STEP

    rgb = np.empty((target_h, target_w, 3), dtype=np.float64)
    background = np.zeros((target_h, target_w), dtype=bool)
    for r in range(target_h):
        y0, y1 = _block_span(r, block_h, proc_h)
        for c in range(target_w):
            x0, x1 = _block_span(c, block_w, proc_w)
            block = buffer[y0:y1, x0:x1]
            count = block.shape[0] * block.shape[1]
            if count == 0:
                rgb[r, c] = NEUTRAL_RGB
                continue
            rgb[r, c] = _adjusted(block, offset).reshape(-1, 3).mean(axis=0)
            if mask is not None:
                masked = int(mask[y0:y1, x0:x1].sum())
                background[r, c] = masked / count > BACKGROUND_RATIO
    return rgb, background


def _bucket_key(rgb: list[float]) -> tuple[int, int, int]:
    # round half up, like the browser's Math.round
    return tuple(int(math.floor(v / POOL_BUCKET + 0.5)) * POOL_BUCKET
                 for v in rgb)  # type: ignore[return-value]


def sample_dominant(buffer: np.ndarray, mask: np.ndarray | None,
                    target_w: int, target_h: int,
                    brightness: float = 0) -> tuple[np.ndarray, np.ndarray]:
    """Most frequent colour bucket of each block.

    Pixels are bucketed by channels rounded to the nearest POOL_BUCKET; the
    bucket keeps the first pixel seen as its colour. Nearly transparent
    pixels never enter a bucket but count towards the background ratio.
    A block without opaque pixels falls back to white.
    """
    proc_h, proc_w = buffer.shape[:2]
    block_w = proc_w / target_w
    block_h = proc_h / target_h
    offset = brightness * BRIGHTNESS_STEP

    rgb = np.empty((target_h, target_w, 3), dtype=np.float64)
    background = np.zeros((target_h, target_w), dtype=bool)
    for r in range(target_h):
        y0, y1 = _block_span(r, block_h, proc_h)
        for c in range(target_w):
            x0, x1 = _block_span(c, block_w, proc_w)
            pixels = _adjusted(buffer[y0:y1, x0:x1], offset).reshape(-1, 3).tolist()
            alphas = buffer[y0:y1, x0:x1, 3].reshape(-1).tolist()
            if mask is not None:
                masked = mask[y0:y1, x0:x1].reshape(-1).tolist()
            else:
                masked = [False] * len(alphas)

            buckets: dict[tuple[int, int, int], list] = {}
            bg_count = 0
            total = 0
            for px, alpha, is_masked in zip(pixels, alphas, masked):
                total += 1
                if alpha < TRANSPARENT_ALPHA:
                    bg_count += 1
                    continue
                if is_masked:
                    bg_count += 1
                key = _bucket_key(px)
                if key not in buckets:
                    buckets[key] = [px, 0]
                buckets[key][1] += 1

            dominant = NEUTRAL_RGB
            best = -1
            for px, count in buckets.values():
                if count > best:
                    best = count
                    dominant = px
            rgb[r, c] = dominant
            if mask is not None and total > 0:
                background[r, c] = bg_count / total > BACKGROUND_RATIO
    return rgb, background


def enhance_gradients(rgb: np.ndarray,
                      background: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Unsharp-style contrast boost on cells that differ from their neighbours.

    Flat cells (mean neighbour difference below FLAT_GRADIENT) are kept.
    Missing border neighbours are replaced by the centre value so edges are
    not biased. Background flags pass through untouched.
    """
    H, W = rgb.shape[:2]
    enhanced = rgb.copy()
    for r in range(H):
        for c in range(W):
            center = rgb[r, c]
            neighbors = [rgb[r + dr, c + dc] for dr, dc in NEIGHBORS_4
                         if 0 <= r + dr < H and 0 <= c + dc < W]
            if not neighbors:
                continue
            diff = sum(float(np.abs(center - n).sum()) for n in neighbors)
            if diff / len(neighbors) < FLAT_GRADIENT:
                continue
            missing = len(NEIGHBORS_4) - len(neighbors)
            value = (SHARPEN_CENTER * center
                     + SHARPEN_EDGE * np.sum(neighbors, axis=0)
                     + SHARPEN_EDGE * missing * center)
            enhanced[r, c] = clamp_channel(value)
    return enhanced, background.copy()


def sample_gradient_enhanced(buffer: np.ndarray, mask: np.ndarray | None,
                             target_w: int, target_h: int,
                             brightness: float = 0) -> tuple[np.ndarray, np.ndarray]:
    rgb, background = sample_average(buffer, mask, target_w, target_h, brightness)
    return enhance_gradients(rgb, background)


SAMPLERS: dict[str, CellSampler] = {
    "nearest": sample_nearest,
    "average": sample_average,
    "gradient_enhanced": sample_gradient_enhanced,
    "dominant_pooling": sample_dominant,
}
ALGORITHMS = tuple(SAMPLERS)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def cells_to_grid(rgb: np.ndarray, background: np.ndarray,
                  palettes: PaletteStore, palette_key: str) -> Grid:
    """Resolve sampled cell colours to palette entries."""
    entries = palettes[palette_key]
    indices = palettes.match_many(rgb, palette_key)
    H, W = background.shape
    grid: Grid = []
    for r in range(H):
        row: list[ColorInfo] = []
        for c in range(W):
            info = entries[int(indices[r, c])]
            row.append(info.as_background() if background[r, c] else info)
        grid.append(row)
    return grid


def generate(
    image: Image.Image | np.ndarray,
    target_w: int,
    target_h: int,
    algorithm: str,
    palette_key: str,
    brightness: float = 0,
    remove_background: bool = False,
    background_tolerance: float = DEFAULT_BG_TOLERANCE,
    *,
    palettes: PaletteStore | None = None,
    progress_cb: Callable[[str], None] | None = None,
) -> Grid:
    """Convert an image to a target_h x target_w grid of bead colours.

    target_w and target_h are clamped to [1, 120]. Raises ValueError for an
    unknown algorithm and UnknownPaletteError for an unknown palette key.
    """
    def _progress(msg: str) -> None:
        if progress_cb:
            progress_cb(msg)

    sampler = SAMPLERS.get(algorithm)
    if sampler is None:
        raise ValueError(
            f"Unknown algorithm {algorithm!r}; expected one of {', '.join(ALGORITHMS)}")
    if palettes is None:
        palettes = load_default_palettes()
    palettes.lab_array(palette_key)  # fail fast on unknown/empty palette

    target_w = clamp_dimension(target_w)
    target_h = clamp_dimension(target_h)

    _progress(f"Resampling to {target_w * OVERSAMPLE}x{target_h * OVERSAMPLE}...")
    buffer = build_processing_buffer(image, target_w, target_h)

    mask = None
    if remove_background:
        _progress(f"Removing background (tolerance={background_tolerance})...")
        mask = background_mask(buffer, background_tolerance)

    _progress(f"Sampling cells ({algorithm})...")
    rgb, background = sampler(buffer, mask, target_w, target_h, brightness)

    _progress(f"Matching {target_w}x{target_h} cells to palette {palette_key}...")
    return cells_to_grid(rgb, background, palettes, palette_key)
