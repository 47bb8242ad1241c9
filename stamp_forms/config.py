from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

# 16-bit grayscale everywhere. 0 is "mark" on input, 0 mm height on output.
MAX_SAMPLE = 65535
MARK = 0

MM_PER_INCH = 25.4


class ConfigError(ValueError):
    """Bad numbers handed to the core. Nothing sensible can be computed from them."""


class FormInvariantError(RuntimeError):
    """
    The positive form came out of range.

    This is not bad input data. It means the sheet thickness, the punch depth and
    the negative form don't fit together geometrically (or units got mixed up
    somewhere). We never clip our way out of it.
    """

    def __init__(self, x: int, y: int, z_mm: float, punch_out_depth_mm: float):
        self.x = x
        self.y = y
        self.z_mm = z_mm
        self.punch_out_depth_mm = punch_out_depth_mm
        super().__init__(
            f"Positive form height {z_mm:.6f} mm at pixel ({x}, {y}) is outside "
            f"[0, {punch_out_depth_mm:.6f}] mm. Sheet thickness / punch depth do not "
            "match the negative form."
        )


def require_positive(name: str, value: float) -> float:
    """Fail hard on NaN, inf, zero or negative."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(value) or value <= 0.0:
        raise ConfigError(f"{name} must be a finite number > 0, got {value!r}")
    return value


def require_count(name: str, value) -> int:
    """Whole number >= 1. 2.5 threads is not a thing, and neither is True."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be a whole number, got {value!r}")
    if value < 1:
        raise ConfigError(f"{name} must be >= 1, got {value!r}")
    return int(value)


@dataclass
class FormConfig:
    """
    Everything the two stages need to know about the physical setup.

    All lengths are millimeters. pixels_per_mm is the only bridge between
    pixel space and physical space.
    """

    punch_out_depth_mm: float = 2.0
    sheet_thickness_mm: float = 0.7
    fade_distance_mm: float = 4.5
    pixels_per_mm: float = 10.0

    # Output conventions (applied after both stages are done)
    mirror_negative: bool = True
    invert_positive: bool = False

    # Execution knobs. These never change the numbers, only how fast we get them.
    workers: int = 1
    band_rows: int = 64

    def validate(self) -> FormConfig:
        # Store the coerced floats back, so a "2" string from somewhere ends up as 2.0
        self.punch_out_depth_mm = require_positive("punch_out_depth_mm", self.punch_out_depth_mm)
        self.sheet_thickness_mm = require_positive("sheet_thickness_mm", self.sheet_thickness_mm)
        self.fade_distance_mm = require_positive("fade_distance_mm", self.fade_distance_mm)
        self.pixels_per_mm = require_positive("pixels_per_mm", self.pixels_per_mm)
        self.workers = require_count("workers", self.workers)
        self.band_rows = require_count("band_rows", self.band_rows)
        return self

    @property
    def fade_radius_px(self) -> float:
        return self.fade_distance_mm * self.pixels_per_mm

    @property
    def sheet_radius_px(self) -> float:
        return self.sheet_thickness_mm * self.pixels_per_mm

    @property
    def dpi(self) -> float:
        return self.pixels_per_mm * MM_PER_INCH
