# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""OTLP/JSON encoding of finished spans.

Produces the ``ExportTraceServiceRequest`` JSON shape::

    {"resourceSpans": [{"resource": {...}, "scopeSpans": [{"scope": {...}, "spans": [...]}]}]}

Timestamps are nanoseconds since the epoch encoded as decimal strings.
They exceed the safe-integer range of some JSON consumers, so the string
form is required on the wire.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional, Tuple, Union

from opentelemetry.sdk.trace import ReadableSpan

NANOS_PER_SECOND = 1_000_000_000

# OTLP numbers span kinds from 1; the API enum starts at INTERNAL = 0.
SPAN_KIND_INTERNAL = 1

DEFAULT_SCOPE_NAME = "unknown"
DEFAULT_SCOPE_VERSION = "0.0.0"

HrTime = Union[int, Tuple[int, int]]


def to_unix_nanos(value: HrTime) -> str:
    """Convert a timestamp to a decimal string of nanoseconds since epoch.

    Args:
        value: Either an integer nanosecond count (how the Python SDK stores
            span times) or a ``(seconds, nanoseconds)`` pair.
    """
    if isinstance(value, (tuple, list)):
        seconds, nanos = value
        return str(int(seconds) * NANOS_PER_SECOND + int(nanos))
    return str(int(value))


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode one attribute value as an OTLP ``AnyValue``."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"boolValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, int):
        return {"intValue": value}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    return {"stringValue": str(value)}


def encode_attributes(attributes: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    if not attributes:
        return []
    return [{"key": key, "value": encode_value(value)} for key, value in attributes.items()]


def _hex_trace_id(trace_id: int) -> str:
    return format(trace_id, "032x")


def _hex_span_id(span_id: int) -> str:
    return format(span_id, "016x")


def encode_span(span: ReadableSpan) -> Dict[str, Any]:
    """Encode a finished span as an OTLP JSON span object."""
    span_context = span.get_span_context()
    start_time = span.start_time or 0
    end_time = span.end_time if span.end_time is not None else start_time

    encoded: Dict[str, Any] = {
        "traceId": _hex_trace_id(span_context.trace_id),
        "spanId": _hex_span_id(span_context.span_id),
        "name": span.name,
        "kind": span.kind.value + SPAN_KIND_INTERNAL,
        "startTimeUnixNano": to_unix_nanos(start_time),
        "endTimeUnixNano": to_unix_nanos(end_time),
        "attributes": encode_attributes(span.attributes),
        "events": [
            {
                "timeUnixNano": to_unix_nanos(event.timestamp),
                "name": event.name,
                "attributes": encode_attributes(event.attributes),
            }
            for event in span.events
        ],
        "status": {"code": span.status.status_code.value},
    }
    if span.parent is not None:
        encoded["parentSpanId"] = _hex_span_id(span.parent.span_id)
    if span.status.description:
        encoded["status"]["message"] = span.status.description
    return encoded


def _scope_of(span: ReadableSpan) -> Dict[str, str]:
    scope = getattr(span, "instrumentation_scope", None)
    name = getattr(scope, "name", None) or DEFAULT_SCOPE_NAME
    version = getattr(scope, "version", None) or DEFAULT_SCOPE_VERSION
    return {"name": name, "version": version}


def encode_spans(spans: Sequence[ReadableSpan]) -> Dict[str, Any]:
    """Encode a batch as a single ``resourceSpans`` envelope.

    A batch is assumed to share one resource and one instrumentation scope;
    both are taken from the first span.
    """
    first = spans[0] if spans else None
    resource = getattr(first, "resource", None)
    resource_attributes = getattr(resource, "attributes", None)
    scope = _scope_of(first) if first is not None else {
        "name": DEFAULT_SCOPE_NAME,
        "version": DEFAULT_SCOPE_VERSION,
    }

    return {
        "resourceSpans": [
            {
                "resource": {"attributes": encode_attributes(resource_attributes)},
                "scopeSpans": [
                    {
                        "scope": scope,
                        "spans": [encode_span(span) for span in spans],
                    }
                ],
            }
        ]
    }
