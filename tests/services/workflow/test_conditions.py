"""Tests for condition evaluation."""

import pytest

from hiveflow.models.enums import ConditionOperator
from hiveflow.schemas.graph import ConditionGroup, SimpleCondition
from hiveflow.services.workflow.conditions import (
    MISSING,
    compare,
    evaluate_group,
    evaluate_simple,
    resolve_field,
    to_text,
)
from hiveflow.services.workflow.exceptions import ConditionDepthError


def _group(operator: str = "AND", conditions=(), groups=None) -> ConditionGroup:
    return ConditionGroup.model_validate(
        {"operator": operator, "conditions": list(conditions), "groups": groups}
    )


def _inner(operator: str, *conditions: tuple) -> dict:
    return {
        "operator": operator,
        "conditions": [
            {"field": field, "operator": op, "value": value}
            for field, op, value in conditions
        ],
    }


class TestResolveField:
    """Test dotted path resolution."""

    def test_nested_mapping_and_list_index(self):
        data = {"build": {"steps": [{"ok": True}, {"ok": False}]}}

        assert resolve_field(data, "build.steps.1.ok") is False

    def test_missing_key(self):
        assert resolve_field({"a": 1}, "b") is MISSING

    def test_out_of_range_index(self):
        assert resolve_field({"items": [1]}, "items.3") is MISSING

    def test_cannot_descend_into_scalar(self):
        assert resolve_field({"a": "text"}, "a.length") is MISSING

    def test_missing_is_falsy(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestEquality:
    """Test strict equals / not_equals."""

    @pytest.mark.parametrize(
        ("actual", "expected", "result"),
        [
            (1, 1, True),
            (1, 1.0, True),
            (1, True, False),
            (1, "1", False),
            ("main", "main", True),
            (None, None, True),
            (MISSING, None, True),
            (MISSING, 0, False),
            ({"a": 1}, {"a": 1}, True),
        ],
    )
    def test_equals(self, actual, expected, result):
        assert compare(actual, ConditionOperator.EQUALS, expected) is result

    def test_not_equals_negates(self):
        assert compare(1, "not_equals", "1") is True
        assert compare("x", "not_equals", "x") is False


class TestOrdering:
    """Test greater_than / less_than."""

    def test_numbers(self):
        assert compare(150, "greater_than", 100) is True
        assert compare(50, "greater_than", 100) is False
        assert compare(2.5, "less_than", 3) is True

    def test_numeric_string_against_number(self):
        assert compare("10", "greater_than", 9) is True

    def test_strings_compare_lexicographically(self):
        assert compare("b", "greater_than", "a") is True
        assert compare("10", "less_than", "9") is True

    def test_mismatched_types_are_false(self):
        assert compare({"a": 1}, "greater_than", 0) is False
        assert compare(MISSING, "less_than", 3) is False
        assert compare("abc", "greater_than", 1) is False


class TestContains:
    """Test contains / not_contains on text forms."""

    def test_substring(self):
        assert compare("deploy failed", "contains", "fail") is True
        assert compare("deploy ok", "not_contains", "fail") is True

    def test_list_joins_items(self):
        assert compare(["lint", "test"], "contains", "test") is True

    def test_to_text(self):
        assert to_text(True) == "true"
        assert to_text(3.0) == "3"
        assert to_text(None) == ""
        assert to_text({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'


class TestCompareUnknownOperator:
    def test_unknown_operator_is_false(self):
        assert compare(1, "between", 1) is False


class TestEvaluate:
    """Test simple conditions and AND/OR groups."""

    def test_simple_condition(self):
        condition = SimpleCondition(field="amount", operator="greater_than", value=100)

        assert evaluate_simple(condition, {"amount": 150}) is True
        assert evaluate_simple(condition, {"amount": 10}) is False

    def test_empty_and_group_is_true(self):
        assert evaluate_group(_group("AND"), {}) is True

    def test_empty_or_group_is_false(self):
        assert evaluate_group(_group("OR"), {}) is False

    def test_nested_groups(self):
        group = _group(
            "AND",
            [{"field": "branch", "operator": "equals", "value": "main"}],
            groups=[
                {
                    "operator": "OR",
                    "conditions": [
                        {"field": "tests", "operator": "equals", "value": "passed"},
                        {"field": "force", "operator": "equals", "value": True},
                    ],
                }
            ],
        )

        assert evaluate_group(group, {"branch": "main", "force": True}) is True
        assert evaluate_group(group, {"branch": "main", "tests": "failed"}) is False
        assert evaluate_group(group, {"branch": "dev", "tests": "passed"}) is False

    @pytest.mark.parametrize(
        ("inner", "data"),
        [
            (_inner("AND", ("branch", "equals", "main")), {"branch": "main"}),
            (_inner("AND", ("branch", "equals", "main")), {"branch": "dev"}),
            (
                _inner("OR", ("count", "greater_than", 10), ("tag", "contains", "hot")),
                {"count": 3, "tag": "hotfix"},
            ),
            (_inner("OR", ("count", "greater_than", 10)), {"count": 3}),
            ({"operator": "AND", "conditions": []}, {}),
            ({"operator": "OR", "conditions": []}, {}),
        ],
    )
    def test_or_over_single_group_equals_the_group(self, inner, data):
        wrapped = _group("OR", groups=[inner])

        assert evaluate_group(wrapped, data) is evaluate_group(
            ConditionGroup.model_validate(inner), data
        )

    def test_depth_limit(self):
        group = _group(groups=[{"groups": [{"conditions": []}]}])

        assert evaluate_group(group, {}, max_depth=3) is True
        with pytest.raises(ConditionDepthError) as exc_info:
            evaluate_group(group, {}, max_depth=2)

        assert exc_info.value.max_depth == 2
