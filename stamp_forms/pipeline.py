from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from stamp_forms.config import FormConfig
from stamp_forms.imaging import invert, mirror_horizontal
from stamp_forms.negative_form import compute_negative_form
from stamp_forms.positive_form import compute_positive_form

# stage_progress(stage_name, rows_done, total_rows)
StageProgressFn = Callable[[str, int, int], None]


@dataclass
class StampForms:
    # Both grids are in the input frame, straight out of the stages.
    negative: np.ndarray
    positive: np.ndarray

    def oriented(self, config: FormConfig) -> tuple[np.ndarray, np.ndarray]:
        """Apply the output conventions (mirror / invert) from config."""
        negative = mirror_horizontal(self.negative) if config.mirror_negative else self.negative
        positive = invert(self.positive) if config.invert_positive else self.positive
        return negative, positive


def generate_forms(
    marks: np.ndarray,
    config: FormConfig,
    progress: Optional[StageProgressFn] = None,
) -> StampForms:
    """
    Mark grid -> negative form -> positive form.

    The positive stage only starts once the negative form is fully built; it
    works off the un-mirrored negative form.
    """
    config.validate()

    def stage(name: str):
        if progress is None:
            return None
        return lambda done, total: progress(name, done, total)

    negative = compute_negative_form(
        marks,
        config.fade_distance_mm,
        config.pixels_per_mm,
        workers=config.workers,
        band_rows=config.band_rows,
        progress=stage("negative"),
    )
    positive = compute_positive_form(
        negative,
        config.punch_out_depth_mm,
        config.sheet_thickness_mm,
        config.pixels_per_mm,
        workers=config.workers,
        band_rows=config.band_rows,
        progress=stage("positive"),
    )
    return StampForms(negative=negative, positive=positive)
