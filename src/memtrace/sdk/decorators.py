# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Decorator for wrapping functions in a span.

``@traced`` is the decorator form of :func:`~memtrace.sdk.span_helpers.with_span`:
the span ends OK on return, ends with an error on exception, and the
exception always propagates.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from memtrace.sdk.tracer import MemoryTracer, SpanKindLike

T = TypeVar("T")


def traced(
    name: Optional[str] = None,
    *,
    kind: SpanKindLike = None,
    attributes: Optional[Mapping[str, Any]] = None,
    tracer: Optional[MemoryTracer] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Wrap a sync or async function in a span.

    Args:
        name: Span name (default: the function's qualified name).
        kind: Span kind name or ``SpanKind``.
        attributes: Initial attributes, sanitized like any other.
        tracer: Tracer to use (default: the process-wide tracer, looked up
            at call time so ``enable()`` may run after decoration).

    Example::

        @traced("memory.search", kind="CLIENT", attributes={"operation.type": "search"})
        async def search(query): ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        span_name = name or func.__qualname__
        is_async = inspect.iscoroutinefunction(func)

        def _resolve() -> MemoryTracer:
            if tracer is not None:
                return tracer
            from memtrace.sdk.bootstrap import get_tracer

            return get_tracer()

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            active = _resolve()
            span = active.start_span(span_name, kind=kind, attributes=attributes)
            try:
                result = await func(*args, **kwargs)
            except BaseException as exc:
                active.end_span_with_error(span, exc)
                raise
            active.end_span(span)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            active = _resolve()
            span = active.start_span(span_name, kind=kind, attributes=attributes)
            try:
                result = func(*args, **kwargs)
            except BaseException as exc:
                active.end_span_with_error(span, exc)
                raise
            active.end_span(span)
            return result

        if is_async:
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator
