from __future__ import annotations

from typing import Optional

import numpy as np

from stamp_forms.config import MARK, ConfigError, require_positive
from stamp_forms.fade import fade
from stamp_forms.neighbors import OffsetTable, build_offset_table
from stamp_forms.rows import ProgressFn, run_bands


def as_grid(arr: np.ndarray, name: str = "grid") -> np.ndarray:
    """Make sure we got a 2-D integer image. Color images are the caller's problem."""
    arr = np.asarray(arr)
    if arr.ndim != 2:
        raise ConfigError(f"{name} must be a 2-D grayscale array, got shape {arr.shape}")
    if not np.issubdtype(arr.dtype, np.integer):
        raise ConfigError(f"{name} must hold integer samples, got dtype {arr.dtype}")
    return arr


def nearest_mark_distances(
    marks: np.ndarray,
    table: OffsetTable,
    y0: int,
    y1: int,
) -> np.ndarray:
    """
    Pixel distance to the closest mark for rows [y0, y1), inf if none in range.

    `marks` is the boolean mark mask padded by table.reach on every side, so any
    offset in the table can be applied without bounds checks. Because the table
    is sorted closest-first, the first offset that lands on a mark IS the minimum
    distance for that pixel; once every pixel in the band has one we stop.
    """
    r = table.reach
    width = marks.shape[1] - 2 * r

    dist = np.full((y1 - y0, width), np.inf, dtype=np.float64)
    open_ = np.ones(dist.shape, dtype=bool)

    for dx, dy, d in zip(table.dx.tolist(), table.dy.tolist(), table.distances.tolist()):
        window = marks[r + y0 + dy : r + y1 + dy, r + dx : r + dx + width]
        # Only pixels that have no distance yet. Anything already set got a
        # closer (or equal) mark from an earlier offset.
        hit = window & open_
        if not hit.any():
            continue
        dist[hit] = d
        open_ &= ~hit
        if not open_.any():
            break

    return dist


def compute_negative_form(
    source: np.ndarray,
    fade_distance_mm: float,
    pixels_per_mm: float,
    workers: int = 1,
    band_rows: int = 64,
    progress: Optional[ProgressFn] = None,
) -> np.ndarray:
    """
    Build the negative (punch) form from a mark image.

    For every pixel:
    - find the closest MARK pixel within fade_distance_mm (search disk in pixels
      = fade_distance_mm * pixels_per_mm, clipped to the image)
    - convert that distance to mm
    - push it through the cosine fade

    No mark within range => MAX_SAMPLE (flat, full white).

    Output is in the same frame as the input (no mirroring here) and read-only.
    """
    source = as_grid(source, "source")
    fade_distance_mm = require_positive("fade_distance_mm", fade_distance_mm)
    pixels_per_mm = require_positive("pixels_per_mm", pixels_per_mm)

    table = build_offset_table(fade_distance_mm * pixels_per_mm)
    # Pad the mask with "no mark" so the windows near the border just see nothing.
    marks = np.pad(source == MARK, table.reach, mode="constant", constant_values=False)

    height, width = source.shape
    out = np.empty((height, width), dtype=np.uint16)

    def work(y0: int, y1: int) -> None:
        dist_px = nearest_mark_distances(marks, table, y0, y1)
        out[y0:y1] = fade(dist_px / pixels_per_mm, fade_distance_mm)

    run_bands(height, band_rows, work, workers=workers, progress=progress)

    out.flags.writeable = False
    return out
