from datetime import date, datetime
from decimal import Decimal

import pytest

from profilekit.app.autosave import (
    DirtyStateTracker,
    SnapshotError,
    capture_snapshot,
    snapshots_equal,
    validate_snapshot,
)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ({"a": 1, "b": 2}, {"b": 2, "a": 1}),
        ([1, 2, 3], (1, 2, 3)),
        ({"tags": {"x", "y"}}, {"tags": frozenset({"y", "x"})}),
        (1, 1.0),
        (Decimal("1.50"), Decimal("1.5")),
        (datetime(2024, 1, 2, 3, 4), datetime(2024, 1, 2, 3, 4)),
        (None, None),
        ("", ""),
        ({"score": float("nan")}, {"score": float("nan")}),
        (Decimal("NaN"), Decimal("NaN")),
    ],
)
def test_structurally_equal_values(left, right):
    assert snapshots_equal(left, right)
    assert snapshots_equal(right, left)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ({"a": 1}, {"a": 1, "b": None}),
        ([1, 2], [2, 1]),
        (True, 1),
        (False, 0),
        ("1", 1),
        (b"a", "a"),
        (None, {}),
        ([], {}),
        (date(2024, 1, 2), datetime(2024, 1, 2)),
        ({"skills": [{"name": "py"}]}, {"skills": [{"name": "go"}]}),
        (float("nan"), 0.0),
        (float("nan"), None),
    ],
)
def test_structurally_different_values(left, right):
    assert not snapshots_equal(left, right)
    assert not snapshots_equal(right, left)


def test_capture_returns_independent_copy():
    original = {"experience": [{"title": "Engineer", "achievements": ["shipped"]}]}
    captured = capture_snapshot(original)
    original["experience"][0]["achievements"].append("later")
    assert captured == {"experience": [{"title": "Engineer", "achievements": ["shipped"]}]}


def test_shared_substructures_are_not_circular():
    shared = ["python"]
    validate_snapshot({"a": shared, "b": shared})


def test_validation_reports_path():
    with pytest.raises(SnapshotError, match=r"\$\.contact\.address\[1\]"):
        validate_snapshot({"contact": {"address": ["ok", print]}})


def test_snapshot_error_is_a_type_error():
    with pytest.raises(TypeError):
        validate_snapshot({("tuple", "key"): 1})


def test_dirty_tracker_transitions():
    tracker = DirtyStateTracker()
    assert tracker.is_dirty() is False
    tracker.mark_dirty()
    tracker.mark_dirty()
    assert tracker.is_dirty() is True
    tracker.mark_clean()
    assert tracker.is_dirty() is False
