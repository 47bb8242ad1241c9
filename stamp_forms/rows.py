from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from stamp_forms.config import ConfigError

# progress(rows_done, total_rows)
ProgressFn = Callable[[int, int], None]


def row_bands(height: int, band_rows: int) -> list[tuple[int, int]]:
    """Split [0, height) into consecutive [y0, y1) chunks of at most band_rows rows."""
    if band_rows < 1:
        raise ConfigError(f"band_rows must be >= 1, got {band_rows!r}")
    return [(y0, min(y0 + band_rows, height)) for y0 in range(0, height, band_rows)]


def run_bands(
    height: int,
    band_rows: int,
    work: Callable[[int, int], None],
    workers: int = 1,
    progress: Optional[ProgressFn] = None,
) -> None:
    """
    Call work(y0, y1) for every row band, optionally on a thread pool.

    Every band writes its own rows of the output and only reads shared, finished
    arrays, so the bands don't need to talk to each other. Progress is always
    reported from the calling thread, once per finished band, with a
    monotonically increasing row count that ends at height.

    The first exception coming out of a band is re-raised here.
    """
    bands = row_bands(height, band_rows)
    done = 0

    if workers <= 1 or len(bands) <= 1:
        for y0, y1 in bands:
            work(y0, y1)
            done += y1 - y0
            if progress is not None:
                progress(done, height)
        return

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(work, y0, y1): (y0, y1) for y0, y1 in bands}
        try:
            for fut in as_completed(futures):
                fut.result()
                y0, y1 = futures[fut]
                done += y1 - y0
                if progress is not None:
                    progress(done, height)
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
