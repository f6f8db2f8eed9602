"""Condition tree: leaf comparisons and AND/OR/NOT groups.

Nodes are immutable. Operators are kept as the raw upper-cased string so
an unknown operator survives parsing and is reported by the evaluator
instead of failing the whole definition at load time.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ConditionLeaf:
    """Compare the value at `field` (dot path) with `value` using `operator`."""

    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class ConditionGroup:
    """Combine child nodes with AND, OR or NOT."""

    operator: str
    conditions: tuple["ConditionLeaf | ConditionGroup", ...]


ConditionNode = ConditionLeaf | ConditionGroup


def condition_from_dict(data: Any) -> ConditionNode | None:
    """Build a condition tree from its stored JSON form.

    Accepts a group ({"operator", "conditions"}), a leaf ({"field",
    "operator", "value"}), a bare list (implicit AND group) or None.
    Raises ValueError for shapes that are neither.
    """
    if data is None:
        return None
    if isinstance(data, list):
        return ConditionGroup(
            operator="AND",
            conditions=tuple(_required(condition_from_dict(c)) for c in data),
        )
    if not isinstance(data, dict):
        raise ValueError(f"Condition node must be an object, got {type(data).__name__}")
    if "conditions" in data:
        children = data.get("conditions") or []
        if not isinstance(children, list):
            raise ValueError("Group 'conditions' must be a list")
        return ConditionGroup(
            operator=str(data.get("operator") or "AND").upper(),
            conditions=tuple(_required(condition_from_dict(c)) for c in children),
        )
    if "field" in data:
        return ConditionLeaf(
            field=str(data["field"]),
            operator=str(data.get("operator") or "").upper(),
            value=data.get("value"),
        )
    raise ValueError("Condition node needs either 'conditions' or 'field'")


def _required(node: ConditionNode | None) -> ConditionNode:
    if node is None:
        raise ValueError("Group children cannot be null")
    return node


def condition_to_dict(node: ConditionNode | None) -> dict[str, Any] | None:
    """Inverse of condition_from_dict (groups and leaves only)."""
    if node is None:
        return None
    if isinstance(node, ConditionGroup):
        return {
            "operator": node.operator,
            "conditions": [condition_to_dict(c) for c in node.conditions],
        }
    return {"field": node.field, "operator": node.operator, "value": node.value}
