from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from stamp_forms.config import ConfigError


@dataclass(frozen=True)
class Offset:
    # Integer pixel offset. +x is right, +y is down (same as image rows).
    dx: int
    dy: int


class OffsetTable:
    """
    Every integer offset inside a disk, closest first.

    Built once per radius and then only read. Iterating gives
    (Offset, distance_px) pairs and can be restarted as often as you like.
    The numpy views (dx, dy, distances) are what the stages actually loop over.
    """

    def __init__(self, max_radius: float, entries: list[tuple[Offset, float]]):
        self.max_radius = max_radius
        self._entries = tuple(entries)

        self.dx = np.array([o.dx for o, _ in self._entries], dtype=np.int64)
        self.dy = np.array([o.dy for o, _ in self._entries], dtype=np.int64)
        self.distances = np.array([d for _, d in self._entries], dtype=np.float64)
        for arr in (self.dx, self.dy, self.distances):
            arr.flags.writeable = False

    def __iter__(self) -> Iterator[tuple[Offset, float]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, i: int) -> tuple[Offset, float]:
        return self._entries[i]

    @property
    def reach(self) -> int:
        """Largest |dx| or |dy| in the table, i.e. how much padding a scan needs."""
        return int(math.floor(self.max_radius))

    def __repr__(self) -> str:
        return f"OffsetTable(max_radius={self.max_radius!r}, offsets={len(self)})"


def build_offset_table(max_radius: float) -> OffsetTable:
    """
    Enumerate the disk of integer offsets with dx^2 + dy^2 <= r^2.

    Points sitting exactly on the radius are included. Offsets are bucketed by
    their exact float distance and the buckets are emitted in ascending order;
    inside a bucket the order is row-major (top row first, left to right),
    which is just the order we generated them in.

    A negative (or NaN) radius is a caller bug, so we blow up instead of
    returning an empty table.
    """
    r = float(max_radius)
    if not r >= 0.0:
        raise ConfigError(f"Neighbor radius must be >= 0, got {max_radius!r}")

    r2 = r * r
    end_y = int(math.floor(r))

    by_distance: dict[float, list[tuple[Offset, float]]] = {}
    for dy in range(-end_y, end_y + 1):
        end_x = int(math.floor(math.sqrt(max(0.0, r2 - dy * dy))))
        for dx in range(-end_x, end_x + 1):
            distance = math.sqrt(dx * dx + dy * dy)
            by_distance.setdefault(distance, []).append((Offset(dx, dy), distance))

    entries = [entry for d in sorted(by_distance) for entry in by_distance[d]]
    return OffsetTable(r, entries)
