import pytest

from slabgen.geometry import Intervals, get_neighbour_cells, get_wrapped_positions
import numpy as np


def test_periodic_interval_is_split():
    intervals = Intervals(period=1.0)
    intervals.add_interval(0.9, 1.2)
    assert intervals.get_merged_intervals() == [(0.0, pytest.approx(0.2)), (0.9, 1.0)]


def test_gaps_wrap_around():
    intervals = Intervals([(0.1, 0.2), (0.5, 0.6)], period=1.0)
    gaps = intervals.get_gaps()
    assert gaps == [(0.2, 0.5), (0.6, pytest.approx(1.1))]


def test_full_coverage_has_no_gaps():
    intervals = Intervals([(0.0, 0.6), (0.5, 1.0)], period=1.0)
    assert intervals.get_gaps() == []
    assert Intervals([(-3, 2)], period=1.0).get_gaps() == []


def test_empty_period_is_one_gap():
    assert Intervals(period=1.0).get_gaps() == [(0.0, 1.0)]


def test_covers():
    intervals = Intervals([(0.9, 1.1)], period=1.0)
    assert intervals.covers(0.95) is not None
    assert intervals.covers(0.05) is not None
    assert intervals.covers(0.0) is not None
    assert intervals.covers(0.5) is None


def test_open_axis_merge():
    intervals = Intervals([(0, 1), (0.5, 2), (3, 4)])
    assert intervals.get_merged_intervals() == [(0, 2), (3, 4)]
    assert intervals.get_gaps() == [(2, 3)]
    assert intervals.add_up_merged_intervals() == 3


def test_neighbour_cells_padding():
    cells = get_neighbour_cells(np.eye(3), 1.0, [True, True, False], padding=0.5)
    assert cells[:, 0].max() == 2
    assert np.all(cells[:, 2] == 0)


def test_wrapped_positions():
    wrapped = get_wrapped_positions(np.array([1.0 - 1e-7, -0.25, 2.5]))
    assert np.allclose(wrapped, [0, 0.75, 0.5])
