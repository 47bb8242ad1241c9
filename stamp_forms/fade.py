from __future__ import annotations

import numpy as np

from stamp_forms.config import MAX_SAMPLE


def fade(distance_mm, fade_distance_mm: float):
    """
    Raised-cosine ease from 0 (on the mark) to MAX_SAMPLE (fade distance away).

        angle  = d / fade_distance * pi
        sample = (cos(angle + pi) + 1) / 2 * MAX_SAMPLE   (truncated)

    Anything past the fade distance is MAX_SAMPLE outright; the cosine is only
    ever evaluated on [0, fade_distance]. Works on a plain float (returns int)
    or on a numpy array (returns a uint16 array of the same shape).
    """
    d = np.asarray(distance_mm, dtype=np.float64)
    beyond = ~(d <= fade_distance_mm)  # NaN counts as "nothing nearby"

    clamped = np.clip(np.where(beyond, fade_distance_mm, d), 0.0, fade_distance_mm)
    angle = clamped / fade_distance_mm * np.pi
    ramp = ((np.cos(angle + np.pi) + 1.0) / 2.0 * MAX_SAMPLE).astype(np.uint16)

    out = np.where(beyond, np.uint16(MAX_SAMPLE), ramp).astype(np.uint16)
    if out.ndim == 0:
        return int(out)
    return out
