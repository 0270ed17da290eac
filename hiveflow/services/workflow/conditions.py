"""Condition evaluation for conditional, loop and routing decisions.

Pure functions: resolve a dotted field path against node input, compare
it with an operator, and fold condition groups with AND/OR.

Comparison rules:
- equals / not_equals use strict equality: ``1`` does not equal ``True``
  or ``"1"``, and a missing field only equals an absent (null) value.
- greater_than / less_than compare numbers with numbers and strings with
  strings; numeric strings are compared numerically against numbers.
  Anything else compares as False.
- contains / not_contains compare the text form of both sides.

No operator raises on mismatched types.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any, Final

from hiveflow.models.enums import ConditionOperator, LogicalOperator
from hiveflow.schemas.graph import ConditionGroup, SimpleCondition
from hiveflow.services.workflow.exceptions import ConditionDepthError

DEFAULT_MAX_DEPTH: Final = 32


class _Missing:
    """Marker for a field path that does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


def resolve_field(data: Any, path: str) -> Any:
    """Walk a dot-separated path through nested mappings and sequences.

    Numeric segments index into lists. Any segment that cannot be followed
    yields MISSING.

    Example:
        >>> resolve_field({"build": {"steps": [{"ok": True}]}}, "build.steps.0.ok")
        True
    """
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif (
            isinstance(current, Sequence)
            and not isinstance(current, str | bytes)
            and part.lstrip("-").isdigit()
        ):
            index = int(part)
            if not -len(current) <= index < len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _is_absent(value: Any) -> bool:
    return value is MISSING or value is None


def _strict_equals(left: Any, right: Any) -> bool:
    if _is_absent(left) or _is_absent(right):
        return _is_absent(left) and _is_absent(right)
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _as_number(value: Any) -> float | None:
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def _ordered(left: Any, right: Any, operator: ConditionOperator) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        pair: tuple[Any, Any] = (left, right)
    else:
        left_number, right_number = _as_number(left), _as_number(right)
        if left_number is None or right_number is None:
            return False
        pair = (left_number, right_number)

    if operator is ConditionOperator.GREATER_THAN:
        return pair[0] > pair[1]
    return pair[0] < pair[1]


def to_text(value: Any) -> str:
    """Text form used by the contains operators."""
    # Absent and None read as "", not "undefined" or "null", so they never
    # match a literal "null" needle.
    if _is_absent(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value
    if isinstance(value, list | tuple):
        return ",".join(to_text(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str, sort_keys=True)
    return str(value)


def compare(actual: Any, operator: ConditionOperator | str, expected: Any) -> bool:
    """Apply one comparison operator. Unknown operators evaluate False."""
    try:
        op = ConditionOperator(operator)
    except ValueError:
        return False

    match op:
        case ConditionOperator.EQUALS:
            return _strict_equals(actual, expected)
        case ConditionOperator.NOT_EQUALS:
            return not _strict_equals(actual, expected)
        case ConditionOperator.GREATER_THAN | ConditionOperator.LESS_THAN:
            return _ordered(actual, expected, op)
        case ConditionOperator.CONTAINS:
            return to_text(expected) in to_text(actual)
        case ConditionOperator.NOT_CONTAINS:
            return to_text(expected) not in to_text(actual)


def evaluate_simple(condition: SimpleCondition, data: Any) -> bool:
    """Evaluate one field comparison against node input."""
    actual = resolve_field(data, condition.field)
    return compare(actual, condition.operator, condition.value)


def evaluate_group(
    group: ConditionGroup,
    data: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """Evaluate a condition group recursively.

    Direct conditions are evaluated first, then nested groups; the combined
    results are folded with the group's operator. An empty AND group is
    True and an empty OR group is False.

    Raises:
        ConditionDepthError: Groups nest deeper than ``max_depth``.
    """
    return _evaluate_group(group, data, depth=1, max_depth=max_depth)


def _evaluate_group(
    group: ConditionGroup, data: Any, *, depth: int, max_depth: int
) -> bool:
    if depth > max_depth:
        raise ConditionDepthError(max_depth)

    results = [evaluate_simple(condition, data) for condition in group.conditions]
    results.extend(
        _evaluate_group(nested, data, depth=depth + 1, max_depth=max_depth)
        for nested in group.groups or []
    )

    if group.operator == LogicalOperator.OR:
        return any(results)
    return all(results)


__all__ = [
    "MISSING",
    "compare",
    "evaluate_group",
    "evaluate_simple",
    "resolve_field",
    "to_text",
]
