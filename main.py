from __future__ import annotations

import argparse
import sys
from pathlib import Path

from stamp_forms.config import ConfigError, FormConfig, FormInvariantError
from stamp_forms.imaging import load_mark_grid, open_file, output_paths, save_grid
from stamp_forms.pipeline import generate_forms

# ================== CONFIG ==================
# Every value here can be overridden on the command line. These are just the
# numbers the tool was tuned with.

# Resolution of the input bitmap. 10 px/mm = 254 DPI.
# Everything geometric is done in mm and only turned into pixels for the search radius.
PIXELS_PER_MM = 10.0

# How far the sheet gets pushed through where the input is black.
PUNCH_OUT_DEPTH_MM = 2.0

# Material thickness. Also the radius of the positive-form scan, so a thick
# sheet on a high-res image gets slow quickly.
SHEET_THICKNESS_MM = 0.7

# Distance over which the negative form fades from full depth back to flat.
FADE_DISTANCE_MM = 4.5

# 16-bit luminance at or below this counts as a mark (black).
# 0 = only pure black. Bump it if your bitmap is anti-aliased.
THRESHOLD = 0

# Output conventions.
#   mirror negative: the punch works from the back of the sheet, so flip it left/right
#   invert positive: white = deep instead of black = deep
MIRROR_NEGATIVE = True
INVERT_POSITIVE = False

# Threads and band size. Results are identical whatever you pick here.
WORKERS = 1
BAND_ROWS = 64

# If True, we open the positive form in your default viewer when done.
OPEN_FINAL = False
# ===========================================


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Turn a black/white bitmap into negative (punch) and positive (die) height maps.",
    )
    p.add_argument("input", type=Path, help="Input bitmap. Black = push the sheet through.")
    p.add_argument("-o", "--output-dir", type=Path, default=None, help="Where to write (default: next to input).")
    p.add_argument("--pixels-per-mm", type=float, default=PIXELS_PER_MM)
    p.add_argument("--punch-out-depth-mm", type=float, default=PUNCH_OUT_DEPTH_MM)
    p.add_argument("--sheet-thickness-mm", type=float, default=SHEET_THICKNESS_MM)
    p.add_argument("--fade-distance-mm", type=float, default=FADE_DISTANCE_MM)
    p.add_argument("--threshold", type=int, default=THRESHOLD)
    p.add_argument(
        "--mirror-negative",
        action=argparse.BooleanOptionalAction,
        default=MIRROR_NEGATIVE,
        help="Flip the negative form left/right on output.",
    )
    p.add_argument(
        "--invert-positive",
        action=argparse.BooleanOptionalAction,
        default=INVERT_POSITIVE,
        help="Invert the positive form on output.",
    )
    p.add_argument("--workers", type=int, default=WORKERS)
    p.add_argument("--band-rows", type=int, default=BAND_ROWS)
    p.add_argument("--open", dest="open_final", action=argparse.BooleanOptionalAction, default=OPEN_FINAL)
    return p


def config_from_args(args: argparse.Namespace) -> FormConfig:
    return FormConfig(
        punch_out_depth_mm=args.punch_out_depth_mm,
        sheet_thickness_mm=args.sheet_thickness_mm,
        fade_distance_mm=args.fade_distance_mm,
        pixels_per_mm=args.pixels_per_mm,
        mirror_negative=args.mirror_negative,
        invert_positive=args.invert_positive,
        workers=args.workers,
        band_rows=args.band_rows,
    ).validate()


def print_settings(config: FormConfig) -> None:
    # Sanity-check block, so you can see what the run is about to do
    print("=== Form settings ===")
    print(f"Pixels per mm:      {config.pixels_per_mm:.4f} ({config.dpi:.1f} DPI)")
    print(f"Punch-out depth:    {config.punch_out_depth_mm:.4f} mm")
    print(f"Sheet thickness:    {config.sheet_thickness_mm:.4f} mm ({config.sheet_radius_px:.2f}px)")
    print(f"Fade distance:      {config.fade_distance_mm:.4f} mm ({config.fade_radius_px:.2f}px)")
    print(f"Mirror negative:    {config.mirror_negative}")
    print(f"Invert positive:    {config.invert_positive}")
    print(f"Workers / band:     {config.workers} / {config.band_rows} rows")
    print("=====================\n")


class PercentPrinter:
    """Prints 'stage: N%' whenever the whole-number percentage goes up."""

    def __init__(self) -> None:
        self.last: dict[str, int] = {}

    def __call__(self, stage: str, done: int, total: int) -> None:
        percentage = done * 100 // total if total else 100
        if percentage > self.last.get(stage, 0):
            self.last[stage] = percentage
            print(f"{stage}: {percentage}%")


def run(args: argparse.Namespace) -> tuple[Path, Path]:
    config = config_from_args(args)
    print_settings(config)

    marks = load_mark_grid(args.input, threshold=args.threshold)
    height, width = marks.shape
    print(f"Loaded {args.input}: {width}x{height}, {int((marks == 0).sum())} mark pixel(s)")

    forms = generate_forms(marks, config, progress=PercentPrinter())
    negative, positive = forms.oriented(config)

    out_negative, out_positive = output_paths(args.input, args.output_dir)
    save_grid(out_negative, negative, config.dpi)
    save_grid(out_positive, positive, config.dpi)

    print("\nOutputs:")
    print(f"  Negative form:  {out_negative.resolve()}")
    print(f"  Positive form:  {out_positive.resolve()}")

    if args.open_final:
        open_file(out_positive)
    return out_negative, out_positive


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except FileNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2
    except FormInvariantError as e:
        print(f"invariant violated: {e}", file=sys.stderr)
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
