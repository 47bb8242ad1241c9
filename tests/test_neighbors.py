import math

import pytest

from stamp_forms.config import ConfigError
from stamp_forms.neighbors import Offset, build_offset_table


def pairs(table):
    return [((o.dx, o.dy), d) for o, d in table]


def test_radius_zero_is_just_the_origin():
    assert pairs(build_offset_table(0.0)) == [((0, 0), 0.0)]


def test_radius_below_one_is_just_the_origin():
    assert pairs(build_offset_table(0.99)) == [((0, 0), 0.0)]


def test_radius_one_is_von_neumann_neighborhood():
    expected = [
        ((0, 0), 0.0),
        ((0, -1), 1.0),
        ((-1, 0), 1.0),
        ((1, 0), 1.0),
        ((0, 1), 1.0),
    ]
    assert pairs(build_offset_table(1.0)) == expected
    # just under sqrt(2): still no corners
    assert pairs(build_offset_table(math.sqrt(1.9999))) == expected


def test_just_over_sqrt2_adds_corners_last():
    s = math.sqrt(2.0)
    got = pairs(build_offset_table(s + 0.0001))
    assert got == [
        ((0, 0), 0.0),
        ((0, -1), 1.0),
        ((-1, 0), 1.0),
        ((1, 0), 1.0),
        ((0, 1), 1.0),
        ((-1, -1), s),
        ((1, -1), s),
        ((-1, 1), s),
        ((1, 1), s),
    ]


@pytest.mark.parametrize("radius", [2.0, 2.5, 3.7, 7.0, 12.25])
def test_table_covers_disk_exactly_once_sorted(radius):
    table = build_offset_table(radius)
    offsets = [(o.dx, o.dy) for o, _ in table]

    assert len(offsets) == len(set(offsets))
    disk = {
        (dx, dy)
        for dy in range(-int(radius) - 1, int(radius) + 2)
        for dx in range(-int(radius) - 1, int(radius) + 2)
        if dx * dx + dy * dy <= radius * radius
    }
    assert set(offsets) == disk

    distances = [d for _, d in table]
    assert distances == sorted(distances)
    for (dx, dy), d in zip(offsets, distances):
        assert d == math.sqrt(dx * dx + dy * dy)


def test_boundary_points_are_included():
    offsets = {(o.dx, o.dy) for o, _ in build_offset_table(5.0)}
    assert (3, 4) in offsets
    assert (5, 0) in offsets
    assert (0, -5) in offsets


def test_table_is_restartable_and_deterministic():
    table = build_offset_table(4.2)
    assert list(table) == list(table)
    assert list(table) == list(build_offset_table(4.2))
    assert table[0] == (Offset(0, 0), 0.0)
    assert len(table) == len(table.dx) == len(table.dy) == len(table.distances)
    assert table.reach == 4


def test_numpy_views_are_read_only():
    table = build_offset_table(2.0)
    with pytest.raises(ValueError):
        table.distances[0] = 5.0


@pytest.mark.parametrize("radius", [-0.5, float("nan")])
def test_bad_radius_fails_fast(radius):
    with pytest.raises(ConfigError):
        build_offset_table(radius)
