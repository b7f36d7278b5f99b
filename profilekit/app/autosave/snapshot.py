"""Snapshot capture and canonical deep equality.

Snapshots are copied on capture so the scheduler never holds a reference the
editor could later mutate in place. Equality is structural: mapping key order
does not matter, lists and tuples are both sequences, numbers compare by value
but ``True`` is never equal to ``1``, and NaN equals NaN.
"""
import copy
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .errors import SnapshotError

_SCALARS = (str, bytes, int, float, Decimal, date, datetime)


def _validate(value: Any, path: str, active: set) -> None:
    if value is None or isinstance(value, bool) or isinstance(value, _SCALARS):
        return

    if isinstance(value, (dict, list, tuple, set, frozenset)):
        marker = id(value)
        if marker in active:
            raise SnapshotError(f"Circular reference in snapshot at {path}")
        active.add(marker)
        try:
            if isinstance(value, dict):
                for key, item in value.items():
                    if not isinstance(key, str):
                        raise SnapshotError(
                            f"Snapshot mapping keys must be strings, got {type(key).__name__} at {path}"
                        )
                    _validate(item, f"{path}.{key}", active)
            elif isinstance(value, (set, frozenset)):
                for item in value:
                    _validate(item, f"{path}{{}}", active)
            else:
                for index, item in enumerate(value):
                    _validate(item, f"{path}[{index}]", active)
        finally:
            active.discard(marker)
        return

    raise SnapshotError(
        f"Unsupported value of type {type(value).__name__} in snapshot at {path}"
    )


def _is_nan(value: Any) -> bool:
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, Decimal):
        return value.is_nan()
    return False


def validate_snapshot(value: Any) -> None:
    """Raise SnapshotError unless ``value`` can be compared structurally."""
    _validate(value, "$", set())


def capture_snapshot(value: Any) -> Any:
    """Validate ``value`` and return an independent deep copy of it."""
    validate_snapshot(value)
    return copy.deepcopy(value)


def snapshots_equal(left: Any, right: Any) -> bool:
    """Canonical structural equality between two validated snapshots."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, dict) or isinstance(right, dict):
        if not (isinstance(left, dict) and isinstance(right, dict)):
            return False
        if left.keys() != right.keys():
            return False
        return all(snapshots_equal(left[key], right[key]) for key in left)

    if isinstance(left, (list, tuple)) or isinstance(right, (list, tuple)):
        if not (isinstance(left, (list, tuple)) and isinstance(right, (list, tuple))):
            return False
        if len(left) != len(right):
            return False
        return all(snapshots_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, (set, frozenset)) or isinstance(right, (set, frozenset)):
        if not (isinstance(left, (set, frozenset)) and isinstance(right, (set, frozenset))):
            return False
        return left == right

    # datetime is a subclass of date; a date never equals a datetime here.
    if isinstance(left, datetime) != isinstance(right, datetime):
        return False

    if isinstance(left, (str, bytes)) or isinstance(right, (str, bytes)):
        return type(left) is type(right) and left == right

    # NaN never equals itself, yet two NaN values are the same edit.
    if _is_nan(left) and _is_nan(right):
        return True

    return left == right
