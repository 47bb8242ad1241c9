from __future__ import annotations

from typing import Optional

import numpy as np

from stamp_forms.config import MAX_SAMPLE, FormInvariantError, require_positive
from stamp_forms.negative_form import as_grid
from stamp_forms.neighbors import OffsetTable, build_offset_table
from stamp_forms.rows import ProgressFn, run_bands

# Float slop we tolerate on the [0, depth] check. (depth + t) - t is not always
# exactly depth in binary floating point. Anything bigger than this is a real error.
HEIGHT_TOLERANCE_MM = 1e-9


def clearance_mm(table: OffsetTable, sheet_thickness_mm: float, pixels_per_mm: float) -> np.ndarray:
    """
    Extra Z the sheet needs above a negative-form point, per table offset.

    The sheet thickness is the hypotenuse, the horizontal distance is one leg,
    the clearance is the other leg: sqrt(t^2 - xy^2). The radicand is clamped
    at 0 for offsets sitting right on the rim.

    Non-increasing along the table, since the table is sorted by distance.
    """
    xy_mm = table.distances / pixels_per_mm
    return np.sqrt(np.maximum(0.0, sheet_thickness_mm**2 - xy_mm**2))


def required_heights(
    negative_mm: np.ndarray,
    table: OffsetTable,
    clearance: np.ndarray,
    punch_out_depth_mm: float,
    y0: int,
    y1: int,
) -> np.ndarray:
    """
    Highest "negative height + clearance" over the sheet disk, for rows [y0, y1).

    `negative_mm` is the negative form in mm, padded by table.reach with -inf so
    off-image neighbors never win the max.

    Early exit: clearance only shrinks from here on and a negative-form height
    can't exceed punch_out_depth_mm, so once z > depth + clearance for every
    pixel in the band, no later offset can raise anything.
    """
    r = table.reach
    width = negative_mm.shape[1] - 2 * r

    z = np.zeros((y1 - y0, width), dtype=np.float64)
    for dx, dy, diff in zip(table.dx.tolist(), table.dy.tolist(), clearance.tolist()):
        window = negative_mm[r + y0 + dy : r + y1 + dy, r + dx : r + dx + width]
        np.maximum(z, window + diff, out=z)
        # Band-level early exit. Every pixel has to be settled, not just most of
        # them, otherwise we would cut a pixel off before its real max shows up.
        if np.all(z > punch_out_depth_mm + diff):
            break
    return z


def check_height_range(z_mm: np.ndarray, punch_out_depth_mm: float, y0: int = 0) -> np.ndarray:
    """
    Enforce 0 <= z <= depth. Rounding noise gets snapped onto the exact
    endpoint, anything else raises FormInvariantError for the first offending pixel.
    """
    bad = (z_mm < -HEIGHT_TOLERANCE_MM) | (z_mm > punch_out_depth_mm + HEIGHT_TOLERANCE_MM)
    if bad.any():
        row, x = np.argwhere(bad)[0]
        raise FormInvariantError(int(x), int(y0 + row), float(z_mm[row, x]), punch_out_depth_mm)
    # (depth + t) - t can land an ulp above OR below depth, and truncating
    # 0.99999...*MAX_SAMPLE would lose the top sample. Same story around 0.
    z = np.clip(z_mm, 0.0, punch_out_depth_mm)
    z[z >= punch_out_depth_mm - HEIGHT_TOLERANCE_MM] = punch_out_depth_mm
    z[z <= HEIGHT_TOLERANCE_MM] = 0.0
    return z


def compute_positive_form(
    negative_form: np.ndarray,
    punch_out_depth_mm: float,
    sheet_thickness_mm: float,
    pixels_per_mm: float,
    workers: int = 1,
    band_rows: int = 64,
    progress: Optional[ProgressFn] = None,
) -> np.ndarray:
    """
    Build the positive (die) form that a sheet of given thickness can ride on
    top of the negative form without cutting into it.

    Per pixel p:
      z = max over offsets o in the sheet disk of
              negative_mm(p + o) + sqrt(t^2 - |o|^2)
      z -= t
    then z (0..depth mm) is mapped linearly onto 0..MAX_SAMPLE.

    Neighbors that fall off the image don't contribute (no wrap, no mirror).
    An out-of-range z is a modelling error and raises FormInvariantError.
    """
    negative_form = as_grid(negative_form, "negative_form")
    punch_out_depth_mm = require_positive("punch_out_depth_mm", punch_out_depth_mm)
    sheet_thickness_mm = require_positive("sheet_thickness_mm", sheet_thickness_mm)
    pixels_per_mm = require_positive("pixels_per_mm", pixels_per_mm)

    table = build_offset_table(sheet_thickness_mm * pixels_per_mm)
    clearance = clearance_mm(table, sheet_thickness_mm, pixels_per_mm)

    negative_mm = negative_form.astype(np.float64) / MAX_SAMPLE * punch_out_depth_mm
    # Pad with -inf instead of 0: a 0 mm neighbor off the edge would still add
    # a full sheet of clearance and push the rim of the image up.
    negative_mm = np.pad(negative_mm, table.reach, mode="constant", constant_values=-np.inf)

    height, width = negative_form.shape
    out = np.empty((height, width), dtype=np.uint16)

    def work(y0: int, y1: int) -> None:
        z = required_heights(negative_mm, table, clearance, punch_out_depth_mm, y0, y1)
        z = check_height_range(z - sheet_thickness_mm, punch_out_depth_mm, y0=y0)
        out[y0:y1] = (z / punch_out_depth_mm * MAX_SAMPLE).astype(np.uint16)

    run_bands(height, band_rows, work, workers=workers, progress=progress)

    out.flags.writeable = False
    return out
