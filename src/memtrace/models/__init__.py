# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Memtrace data models."""

from __future__ import annotations

from memtrace.models.trace_entry import (
    ErrorContext,
    ErrorType,
    OperationType,
    ResourceType,
    TimeRange,
    TraceEntry,
    TraceFilter,
    TraceStatus,
    generate_trace_id,
)

__all__ = [
    "ErrorContext",
    "ErrorType",
    "OperationType",
    "ResourceType",
    "TimeRange",
    "TraceEntry",
    "TraceFilter",
    "TraceStatus",
    "generate_trace_id",
]
