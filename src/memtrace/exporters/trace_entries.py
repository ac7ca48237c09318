# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Convert collected trace entries to OTLP JSON and ship them.

Trace entries are flat records, not SDK spans, so IDs are derived from the
entry UUIDs:

- root entry: traceId = its own UUID hex, spanId = first 16 hex chars
- child entry: traceId = the parent's UUID hex, parentSpanId = the parent's
  spanId, spanId = first 16 hex chars of its own UUID
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from memtrace._version import __version__
from memtrace.exporters.otlp_json import SPAN_KIND_INTERNAL, encode_attributes, encode_value
from memtrace.models.trace_entry import ErrorType, OperationType, ResourceType, TraceEntry, TraceStatus
from memtrace.processors.sanitizer import TRUNCATION_MARKER, max_length_for

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "n8n-memmachine-memory"

NANOS_PER_MILLI = 1_000_000

# OTLP status codes
STATUS_UNSET = 0
STATUS_OK = 1
STATUS_ERROR = 2

_STATUS_CODES = {
    TraceStatus.STARTED: STATUS_UNSET,
    TraceStatus.SUCCESS: STATUS_OK,
    TraceStatus.FAILURE: STATUS_ERROR,
}


def _uuid_hex(value: str) -> str:
    return value.replace("-", "")


def _metadata_value(key: str, value: Any) -> str:
    text = str(value)
    limit = max_length_for(key)
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def trace_entry_to_span(entry: TraceEntry) -> Dict[str, Any]:
    """Build an OTLP JSON span for one trace entry."""
    start_nanos = int(entry.started_at.timestamp() * 1000) * NANOS_PER_MILLI
    if entry.duration and entry.duration > 0:
        end_nanos = start_nanos + entry.duration * NANOS_PER_MILLI
    else:
        # viewers reject spans whose end does not follow their start
        end_nanos = start_nanos + 1

    attributes: List[Dict[str, Any]] = [
        {"key": key, "value": {"stringValue": _metadata_value(key, value)}}
        for key, value in entry.metadata.items()
        if value is not None
    ]
    operation = OperationType(entry.operation_type).value
    attributes.extend(
        encode_attributes(
            {
                "operation.type": operation,
                "trace.id": entry.trace_id,
            }
        )
    )

    if entry.error is not None:
        error_attributes: Dict[str, Any] = {
            "error": True,
            "error.type": ErrorType(entry.error.type).value if entry.error.type else "unknown",
            "error.message": entry.error.message or "",
        }
        if entry.error.code:
            error_attributes["error.code"] = entry.error.code
        attributes.extend(encode_attributes(error_attributes))

    own_hex = _uuid_hex(entry.trace_id)
    span: Dict[str, Any] = {
        "traceId": own_hex,
        "spanId": own_hex[:16],
        "name": f"{ResourceType(entry.resource_type).value}.{operation}",
        "kind": SPAN_KIND_INTERNAL,
        "startTimeUnixNano": str(start_nanos),
        "endTimeUnixNano": str(end_nanos),
        "attributes": attributes,
        "status": {
            "code": _STATUS_CODES[TraceStatus(entry.status)],
            "message": entry.error.message if entry.error else "",
        },
    }

    if entry.parent_trace_id:
        parent_hex = _uuid_hex(entry.parent_trace_id)
        span["traceId"] = parent_hex
        span["parentSpanId"] = parent_hex[:16]

    return span


def convert_to_otlp(
    entries: Sequence[TraceEntry],
    service_name: str = DEFAULT_SERVICE_NAME,
) -> Dict[str, Any]:
    """Wrap converted entries in a single ``resourceSpans`` envelope."""
    return {
        "resourceSpans": [
            {
                "resource": {
                    "attributes": [
                        {"key": "service.name", "value": encode_value(service_name)},
                        {"key": "telemetry.sdk.name", "value": encode_value("memtrace")},
                        {"key": "telemetry.sdk.version", "value": encode_value(__version__)},
                    ],
                },
                "scopeSpans": [
                    {
                        "scope": {"name": service_name, "version": __version__},
                        "spans": [trace_entry_to_span(entry) for entry in entries],
                    }
                ],
            }
        ]
    }


def export_trace_entries(
    entries: Sequence[TraceEntry],
    endpoint: str,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> bool:
    """POST *entries* to an OTLP/HTTP endpoint.

    Failures are logged, never raised, so a broken collector cannot break
    the operation being traced.

    Returns:
        ``True`` if the collector accepted the payload.
    """
    if not entries:
        logger.debug("No trace entries to export")
        return True

    try:
        body = json.dumps(convert_to_otlp(entries, service_name=service_name)).encode("utf-8")
        http = session or requests
        response = http.post(
            endpoint,
            data=body,
            headers={"Content-Type": "application/json", "Content-Length": str(len(body))},
            timeout=timeout,
        )
    except Exception as exc:
        logger.error("Error sending %d trace entries to %s: %s", len(entries), endpoint, exc)
        return False

    if not 200 <= response.status_code < 300:
        logger.error(
            "Failed to send trace entries to %s: %s %s",
            endpoint,
            response.status_code,
            response.text,
        )
        return False

    logger.info("Exported %d trace entries to %s", len(entries), endpoint)
    return True
