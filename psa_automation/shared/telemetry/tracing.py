"""Span helpers for dispatch, conditions and action attempts."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Keyword arguments recorded as span attributes; everything else (payloads,
# action configs that may hold credentials) stays out of traces.
_SAFE_SPAN_ATTR_KEYS = frozenset({
    "workflow_id", "event_type", "event_id", "entity_id", "actor_id",
    "action_type", "action_index", "dry_run", "status", "limit", "skip",
})


def _set_safe_span_attrs(span: trace.Span, kwargs: dict[str, Any]) -> None:
    for key, value in kwargs.items():
        if key in _SAFE_SPAN_ATTR_KEYS and value is not None:
            span.set_attribute(f"arg.{key}", str(value))


def _mark(span: trace.Span, error: BaseException | None) -> None:
    if error is None:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, str(error)))
        span.record_exception(error)


def traced(
    operation_name: str | None = None,
    attributes: dict[str, str | int | float | bool] | None = None,
) -> Callable:
    """Decorator that wraps a sync or async function in a span.

    Args:
        operation_name: Span name (defaults to module.qualname).
        attributes: Static attributes set on every span.

    Returns:
        Decorated function.
    """

    def decorator(func: Callable) -> Callable:
        tracer = trace.get_tracer(func.__module__)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        def _start() -> Any:
            return tracer.start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            )

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _start() as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                _set_safe_span_attrs(span, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _mark(span, e)
                    raise
                _mark(span, None)
                return result

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _start() as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                _set_safe_span_attrs(span, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _mark(span, e)
                    raise
                _mark(span, None)
                return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span, if one is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)


def add_span_event(name: str, attributes: dict | None = None) -> None:
    """Add an event (e.g. a retry or a condition diagnostic) to the current span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name, attributes=attributes or {})


class TracedOperation:
    """Async context manager for a child span around one unit of work.

    Used for per-action spans where a decorator does not fit (the action
    index and type are only known inside the executor loop).
    """

    def __init__(self, operation_name: str, attributes: dict | None = None) -> None:
        self.operation_name = operation_name
        self.attributes = attributes or {}
        self.tracer = trace.get_tracer(__name__)
        self._cm: Any = None
        self.span: trace.Span | None = None

    async def __aenter__(self) -> "TracedOperation":
        self._cm = self.tracer.start_as_current_span(
            self.operation_name,
            attributes=self.attributes,
            record_exception=False,
            set_status_on_exception=False,
        )
        self.span = self._cm.__enter__()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self.span is not None:
            _mark(self.span, exc_val)
        self._cm.__exit__(exc_type, exc_val, exc_tb)

    def set_attribute(self, key: str, value: str | int | float | bool) -> None:
        if self.span is not None and self.span.is_recording():
            self.span.set_attribute(key, value)
