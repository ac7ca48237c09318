# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Memtrace - leak-proof OpenTelemetry tracing for conversational-memory clients.

Quick Start::

    from memtrace import enable, get_tracer, with_span

    enable(endpoint="http://jaeger:4318", protocol="http")
    tracer = get_tracer()

    result = with_span(
        tracer,
        "memory.search",
        lambda span: client.search(query),
        kind="CLIENT",
        attributes={"session.id": session_id, "secret.apiKey": key},  # apiKey is dropped
    )
"""

from __future__ import annotations

from memtrace._version import __version__

# Trace entry model
from memtrace.models.trace_entry import (
    ErrorContext,
    ErrorType,
    OperationType,
    ResourceType,
    TimeRange,
    TraceEntry,
    TraceFilter,
    TraceStatus,
)

# Sanitization
from memtrace.processors.sanitizer import (
    DROPPED,
    SafeAttributeSet,
    SensitiveDataSpanProcessor,
    sanitize_attribute,
    sanitize_attributes,
)

# Exporters
from memtrace.exporters.factory import ExporterKind, create_exporter
from memtrace.exporters.otlp_http import OTLPJsonHTTPSpanExporter

# Bootstrap
from memtrace.sdk.bootstrap import (
    disable,
    enable,
    get_tracer,
    is_enabled,
)

# Configuration
from memtrace.sdk.config import TracingConfig

# Tracer facade and helpers
from memtrace.sdk.decorators import traced
from memtrace.sdk.span_helpers import traced_span, with_span, with_span_async
from memtrace.sdk.tracer import MemoryTracer

# Operation tracking
from memtrace.tracking.collector import TraceCollector
from memtrace.tracking.operations import OperationTracer

__all__ = [
    "__version__",
    # Bootstrap
    "enable",
    "disable",
    "get_tracer",
    "is_enabled",
    # Configuration
    "TracingConfig",
    # Tracer
    "MemoryTracer",
    "traced",
    "traced_span",
    "with_span",
    "with_span_async",
    # Sanitization
    "DROPPED",
    "SafeAttributeSet",
    "SensitiveDataSpanProcessor",
    "sanitize_attribute",
    "sanitize_attributes",
    # Exporters
    "ExporterKind",
    "OTLPJsonHTTPSpanExporter",
    "create_exporter",
    # Trace entries
    "ErrorContext",
    "ErrorType",
    "OperationType",
    "ResourceType",
    "TimeRange",
    "TraceEntry",
    "TraceFilter",
    "TraceStatus",
    "TraceCollector",
    "OperationTracer",
]
