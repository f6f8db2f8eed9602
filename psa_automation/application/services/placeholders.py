"""Field paths and {{placeholder}} substitution.

Paths use dots with optional numeric segments or brackets:
"payload.client.email", "steps.0.output.id", "steps[0].output.id".
"""

import json
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_SEGMENT_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


class _Missing:
    """Sentinel for a path that does not resolve (distinct from None)."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def split_path(path: str) -> list[str | int]:
    """Split a field path into mapping keys (str) and list indexes (int)."""
    segments: list[str | int] = []
    for match in _SEGMENT_PATTERN.finditer(path.strip()):
        key, index = match.groups()
        segments.append(int(index) if index is not None else key.strip())
    return segments


def resolve_path(context: Any, path: str) -> Any:
    """Return the value at `path` inside `context`, or MISSING."""
    segments = split_path(path) if isinstance(path, str) else []
    if not segments:
        return MISSING
    current = context
    for segment in segments:
        if isinstance(current, Mapping):
            if segment in current:
                current = current[segment]
            elif isinstance(segment, int) and str(segment) in current:
                current = current[str(segment)]
            else:
                return MISSING
        elif isinstance(current, (list, tuple)):
            index = segment if isinstance(segment, int) else _as_index(segment)
            if index is None or not 0 <= index < len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _as_index(segment: str) -> int | None:
    return int(segment) if segment.isdigit() else None


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def render_placeholders(text: str, context: Mapping[str, Any]) -> Any:
    """Substitute placeholders in one string.

    A string that is exactly one placeholder yields the resolved value with
    its own type (a number stays a number). Embedded placeholders are
    stringified. Placeholders that do not resolve are left as written.
    """
    whole = PLACEHOLDER_PATTERN.fullmatch(text)
    if whole:
        resolved = resolve_path(context, whole.group(1))
        return text if resolved is MISSING else resolved

    def _replace(match: re.Match[str]) -> str:
        resolved = resolve_path(context, match.group(1))
        if resolved is MISSING:
            return match.group(0)
        return _stringify(resolved)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def substitute_placeholders(value: Any, context: Mapping[str, Any]) -> Any:
    """Recursively substitute placeholders in strings inside dicts and lists."""
    if isinstance(value, str):
        return render_placeholders(value, context)
    if isinstance(value, Mapping):
        return {key: substitute_placeholders(item, context) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [substitute_placeholders(item, context) for item in value]
    return value


def unresolved_placeholders(value: Any) -> list[str]:
    """Placeholder paths still present in a (substituted) value."""
    if isinstance(value, str):
        return [m.group(1) for m in PLACEHOLDER_PATTERN.finditer(value)]
    if isinstance(value, Mapping):
        return [p for item in value.values() for p in unresolved_placeholders(item)]
    if isinstance(value, (list, tuple)):
        return [p for item in value for p in unresolved_placeholders(item)]
    return []
