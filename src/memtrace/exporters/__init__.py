# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Span exporters and OTLP JSON encoding."""

from __future__ import annotations

from memtrace.exporters.factory import (
    ExporterKind,
    ExporterUnavailableError,
    UnsupportedProtocolError,
    create_exporter,
    normalize_grpc_endpoint,
    normalize_otlp_endpoint,
    parse_udp_target,
)
from memtrace.exporters.otlp_http import ExportResult, ExportResultCode, OTLPJsonHTTPSpanExporter
from memtrace.exporters.otlp_json import encode_span, encode_spans, encode_value, to_unix_nanos
from memtrace.exporters.trace_entries import convert_to_otlp, export_trace_entries, trace_entry_to_span

__all__ = [
    "ExportResult",
    "ExportResultCode",
    "ExporterKind",
    "ExporterUnavailableError",
    "OTLPJsonHTTPSpanExporter",
    "UnsupportedProtocolError",
    "convert_to_otlp",
    "create_exporter",
    "encode_span",
    "encode_spans",
    "encode_value",
    "export_trace_entries",
    "normalize_grpc_endpoint",
    "normalize_otlp_endpoint",
    "parse_udp_target",
    "to_unix_nanos",
    "trace_entry_to_span",
]
