"""Condition evaluator: boolean tree over an event context.

Malformed leaves (unknown operator, wrong value shape, bad regex) never
raise: they evaluate to False and are reported as diagnostics. A missing
tree always matches.
"""

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from psa_automation.application.services.placeholders import MISSING, resolve_path
from psa_automation.domain.entities.condition import (
    ConditionGroup,
    ConditionLeaf,
    ConditionNode,
)
from psa_automation.domain.enums import ConditionOperator, LogicalOperator
from psa_automation.shared.telemetry.logging import get_logger
from psa_automation.shared.utils.datetime import parse_datetime

logger = get_logger(__name__)


class InvalidConditionError(ValueError):
    """A leaf that cannot be evaluated as written."""


@dataclass(frozen=True)
class ConditionDiagnostic:
    """Why one node evaluated to False without being a real mismatch."""

    position: str
    message: str
    field: str | None = None
    operator: str | None = None


@dataclass(frozen=True)
class ConditionOutcome:
    matched: bool
    diagnostics: tuple[ConditionDiagnostic, ...] = ()


def to_number(value: Any) -> float | None:
    """int, float or numeric string as float; anything else (bool included) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def deep_equal(left: Any, right: Any) -> bool:
    """Structural equality where booleans only equal booleans."""
    if left is MISSING or right is MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(
            deep_equal(left[key], right[key]) for key in left
        )
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            deep_equal(a, b) for a, b in zip(left, right)
        )
    return left == right


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidConditionError(f"invalid regular expression {pattern!r}: {e}") from e


def _require_list(operator: str, expected: Any) -> list[Any]:
    if not isinstance(expected, (list, tuple)):
        raise InvalidConditionError(f"{operator} requires a list value")
    return list(expected)


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def _apply(actual: Any, expected: Any) -> bool:
        a, b = to_number(actual), to_number(expected)
        if a is None or b is None:
            return False
        return compare(a, b)

    return _apply


def _temporal(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def _apply(actual: Any, expected: Any) -> bool:
        a, b = parse_datetime(actual), parse_datetime(expected)
        if a is None or b is None:
            return False
        return compare(a, b)

    return _apply


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return isinstance(expected, str) and expected.lower() in actual.lower()
    if isinstance(actual, (list, tuple)):
        return any(deep_equal(item, expected) for item in actual)
    return False


def _not_contains(actual: Any, expected: Any) -> bool:
    if actual is MISSING or actual is None:
        return True
    if isinstance(actual, (str, list, tuple)):
        return not _contains(actual, expected)
    return False


def _starts_with(actual: Any, expected: Any) -> bool:
    return (
        isinstance(actual, str)
        and isinstance(expected, str)
        and actual.lower().startswith(expected.lower())
    )


def _ends_with(actual: Any, expected: Any) -> bool:
    return (
        isinstance(actual, str)
        and isinstance(expected, str)
        and actual.lower().endswith(expected.lower())
    )


def _matches_regex(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, str):
        raise InvalidConditionError("MATCHES_REGEX requires a string pattern")
    if not isinstance(actual, str):
        return False
    return _compile(expected).search(actual) is not None


def _in(actual: Any, expected: Any) -> bool:
    options = _require_list("IN", expected)
    return actual is not MISSING and any(deep_equal(actual, o) for o in options)


def _not_in(actual: Any, expected: Any) -> bool:
    options = _require_list("NOT_IN", expected)
    return actual is MISSING or not any(deep_equal(actual, o) for o in options)


def _exists(actual: Any, _expected: Any) -> bool:
    return actual is not MISSING and actual is not None


def _between(actual: Any, expected: Any) -> bool:
    bounds = _require_list("BETWEEN", expected)
    if len(bounds) != 2:
        raise InvalidConditionError("BETWEEN requires exactly two bounds")
    low, high = bounds
    number = to_number(actual)
    if number is not None:
        lo, hi = to_number(low), to_number(high)
        return lo is not None and hi is not None and lo <= number <= hi
    moment = parse_datetime(actual)
    start, end = parse_datetime(low), parse_datetime(high)
    if moment is None or start is None or end is None:
        return False
    return start <= moment <= end


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: lambda a, e: deep_equal(a, e),
    ConditionOperator.NOT_EQUALS: lambda a, e: not deep_equal(a, e),
    ConditionOperator.GREATER_THAN: _numeric(lambda a, b: a > b),
    ConditionOperator.LESS_THAN: _numeric(lambda a, b: a < b),
    ConditionOperator.GREATER_OR_EQUAL: _numeric(lambda a, b: a >= b),
    ConditionOperator.LESS_OR_EQUAL: _numeric(lambda a, b: a <= b),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: _not_contains,
    ConditionOperator.STARTS_WITH: _starts_with,
    ConditionOperator.ENDS_WITH: _ends_with,
    ConditionOperator.MATCHES_REGEX: _matches_regex,
    ConditionOperator.IN: _in,
    ConditionOperator.NOT_IN: _not_in,
    ConditionOperator.EXISTS: _exists,
    ConditionOperator.IS_NOT_NULL: _exists,
    ConditionOperator.IS_NULL: lambda a, e: not _exists(a, e),
    ConditionOperator.IS_TRUE: lambda a, _e: a is True,
    ConditionOperator.IS_FALSE: lambda a, _e: a is False,
    ConditionOperator.BEFORE: _temporal(lambda a, b: a < b),
    ConditionOperator.AFTER: _temporal(lambda a, b: a > b),
    ConditionOperator.BETWEEN: _between,
}


class ConditionEvaluator:
    """Evaluates condition trees against an event context (see DomainEvent.to_context)."""

    def evaluate(self, node: ConditionNode | None, context: Mapping[str, Any]) -> bool:
        """Return whether the tree matches; None matches everything."""
        return self.evaluate_with_diagnostics(node, context).matched

    def evaluate_with_diagnostics(
        self, node: ConditionNode | None, context: Mapping[str, Any]
    ) -> ConditionOutcome:
        if node is None:
            return ConditionOutcome(matched=True)
        diagnostics: list[ConditionDiagnostic] = []
        matched = self._evaluate_node(node, context, "root", diagnostics)
        for diagnostic in diagnostics:
            logger.warning(
                "Condition %s evaluated to false: %s (field=%s, operator=%s)",
                diagnostic.position,
                diagnostic.message,
                diagnostic.field,
                diagnostic.operator,
            )
        return ConditionOutcome(matched=matched, diagnostics=tuple(diagnostics))

    def _evaluate_node(
        self,
        node: Any,
        context: Mapping[str, Any],
        position: str,
        diagnostics: list[ConditionDiagnostic],
    ) -> bool:
        if isinstance(node, ConditionGroup):
            return self._evaluate_group(node, context, position, diagnostics)
        if isinstance(node, ConditionLeaf):
            try:
                return self._evaluate_leaf(node, context)
            except Exception as e:
                diagnostics.append(
                    ConditionDiagnostic(position, str(e), node.field, node.operator)
                )
                return False
        diagnostics.append(
            ConditionDiagnostic(position, f"unsupported node {type(node).__name__}")
        )
        return False

    def _evaluate_group(
        self,
        group: ConditionGroup,
        context: Mapping[str, Any],
        position: str,
        diagnostics: list[ConditionDiagnostic],
    ) -> bool:
        if not group.conditions:
            diagnostics.append(
                ConditionDiagnostic(position, "empty group", operator=group.operator)
            )
            return False

        def children_all_true() -> bool:
            for i, child in enumerate(group.conditions):
                if not self._evaluate_node(child, context, f"{position}.{i}", diagnostics):
                    return False
            return True

        if group.operator == LogicalOperator.AND:
            return children_all_true()
        if group.operator == LogicalOperator.OR:
            for i, child in enumerate(group.conditions):
                if self._evaluate_node(child, context, f"{position}.{i}", diagnostics):
                    return True
            return False
        if group.operator == LogicalOperator.NOT:
            return not children_all_true()
        diagnostics.append(
            ConditionDiagnostic(
                position, "unknown group operator", operator=group.operator
            )
        )
        return False

    def _evaluate_leaf(self, leaf: ConditionLeaf, context: Mapping[str, Any]) -> bool:
        """Apply one comparison. Raises InvalidConditionError for malformed leaves."""
        compare = _OPERATORS.get(leaf.operator)
        if compare is None:
            raise InvalidConditionError(f"unknown operator {leaf.operator!r}")
        actual = resolve_path(context, leaf.field)
        return compare(actual, leaf.value)
