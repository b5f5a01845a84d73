"""拼豆图纸生成器 command line front end."""

import argparse
import json
import sys
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from pindou.generator import (
    ALGORITHMS, DEFAULT_BG_TOLERANCE, MAX_GRID, MIN_GRID, clamp_dimension,
    generate,
)
from pindou.merge import auto_merge
from pindou.palette import DEFAULT_PALETTE_PATH, PaletteError, PaletteStore
from pindou.stats import count_beads, grid_to_dict


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pindou",
        description="拼豆图纸生成器 - convert an image into a bead color grid",
    )
    parser.add_argument("input", help="Input image path")
    parser.add_argument("-o", "--output", default=None,
                        help="Output grid JSON path (default: <input>_pindou.json)")
    parser.add_argument("-W", "--width", type=int, default=40,
                        help=f"Grid width in beads ({MIN_GRID}-{MAX_GRID}, default: 40)")
    parser.add_argument("-H", "--height", type=int, default=40,
                        help=f"Grid height in beads ({MIN_GRID}-{MAX_GRID}, default: 40)")
    parser.add_argument("-a", "--algorithm", choices=ALGORITHMS,
                        default="dominant_pooling",
                        help="Cell color selection (default: dominant_pooling)")
    parser.add_argument("-p", "--palette", default="mard",
                        help="Brand palette key (default: mard)")
    parser.add_argument("--palette-file", default=None,
                        help=f"Palette CSV (default: {DEFAULT_PALETTE_PATH.name} bundled)")
    parser.add_argument("--brightness", type=int, default=0,
                        help="Brightness offset, in steps of 15 per channel (default: 0)")
    parser.add_argument("--remove-background", action="store_true",
                        help="Flag near-white areas connected to the corners as background")
    parser.add_argument("--bg-tolerance", type=float, default=DEFAULT_BG_TOLERANCE,
                        help=f"Background tolerance 0-100 (default: {DEFAULT_BG_TOLERANCE})")
    parser.add_argument("--merge-threshold", type=float, default=0.0,
                        help="Auto-merge similar neighbouring colors below this deltaE "
                             "(default: 0, off)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    input_path = Path(args.input)
    if args.output is None:
        output_path = input_path.parent / f"{input_path.stem}_pindou.json"
    else:
        output_path = Path(args.output)

    # 1. Load bead colors
    palette_path = Path(args.palette_file) if args.palette_file else DEFAULT_PALETTE_PATH
    print(f"Loading bead colors: {palette_path}")
    try:
        palettes = PaletteStore.from_csv(palette_path)
    except PaletteError as exc:
        print(f"Error: {exc}")
        return 1
    if args.palette not in palettes:
        print(f"Error: unknown palette {args.palette!r} "
              f"(available: {', '.join(palettes.keys())})")
        return 1
    n_colors = len(palettes[args.palette])
    print(f"  {n_colors} bead colors in palette {args.palette}")

    # 2. Load image
    print(f"Loading image: {input_path}")
    try:
        img = Image.open(input_path)
        img.load()
    except (OSError, UnidentifiedImageError) as exc:
        print(f"Error: cannot open {input_path}: {exc}")
        return 1
    print(f"  Image size: {img.width}x{img.height}")

    # 3. Generate
    width = clamp_dimension(args.width)
    height = clamp_dimension(args.height)
    print(f"Generating {width}x{height} grid...")
    try:
        grid = generate(
            img, width, height, args.algorithm, args.palette,
            brightness=args.brightness,
            remove_background=args.remove_background,
            background_tolerance=args.bg_tolerance,
            palettes=palettes,
            progress_cb=lambda msg: print(f"  {msg}"),
        )
    except PaletteError as exc:
        print(f"Error: {exc}")
        return 1

    # 4. Merge
    if args.merge_threshold > 0:
        before = len(count_beads(grid))
        print(f"Merging similar regions (threshold={args.merge_threshold})...")
        grid = auto_merge(grid, args.merge_threshold)
        print(f"  {before} -> {len(count_beads(grid))} colors")

    # 5. Write grid
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(grid_to_dict(grid, args.palette), f, ensure_ascii=False)
    print(f"Saved: {output_path}")

    # Summary
    usage = count_beads(grid)
    total = sum(count for _, count in usage)
    print(f"\nColor usage ({len(usage)} colors, {total} beads total):")
    for info, count in usage:
        r, g, b = info.rgb
        print(f"  {info.code:>4s}: {count:4d}  #{r:02X}{g:02X}{b:02X}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
