# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Helpers that wrap an operation in a span.

The span ends OK when the operation returns and ends with an error when it
raises. Cancellation and interrupts (``asyncio.CancelledError``,
``KeyboardInterrupt``) also end the span with an error, so a span is always
closed. The operation's exception is always re-raised: tracing observes
failures, it never masks them.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Generator, Optional, TypeVar

from opentelemetry.trace import Span

from memtrace.sdk.tracer import MemoryTracer

T = TypeVar("T")


def with_span(
    tracer: MemoryTracer,
    name: str,
    operation: Callable[[Optional[Span]], T],
    **options: Any,
) -> T:
    """Run ``operation(span)`` inside a span named *name*.

    *options* are passed to :meth:`MemoryTracer.start_span`. When tracing is
    disabled the operation receives ``None``.

    Example::

        >>> result = with_span(tracer, "memory.search", lambda span: client.search(q))
    """
    span = tracer.start_span(name, **options)
    try:
        result = operation(span)
    except BaseException as exc:
        tracer.end_span_with_error(span, exc)
        raise
    tracer.end_span(span)
    return result


async def with_span_async(
    tracer: MemoryTracer,
    name: str,
    operation: Callable[[Optional[Span]], Awaitable[T]],
    **options: Any,
) -> T:
    """Async variant of :func:`with_span` for coroutine operations."""
    span = tracer.start_span(name, **options)
    try:
        result = await operation(span)
    except BaseException as exc:
        tracer.end_span_with_error(span, exc)
        raise
    tracer.end_span(span)
    return result


@contextmanager
def traced_span(
    tracer: MemoryTracer,
    name: str,
    **options: Any,
) -> Generator[Optional[Span], None, None]:
    """Context manager form of :func:`with_span`.

    Example::

        with traced_span(tracer, "memory.store", kind="CLIENT") as span:
            tracer.add_attributes(span, {"session.id": session_id})
            client.store(episode)
    """
    span = tracer.start_span(name, **options)
    try:
        yield span
    except BaseException as exc:
        tracer.end_span_with_error(span, exc)
        raise
    tracer.end_span(span)
