# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Memtrace SDK core components."""

from __future__ import annotations

from memtrace.sdk.bootstrap import disable, enable, flush, get_config, get_tracer, is_enabled
from memtrace.sdk.config import TracingConfig
from memtrace.sdk.decorators import traced
from memtrace.sdk.span_helpers import traced_span, with_span, with_span_async
from memtrace.sdk.tracer import MemoryTracer, resolve_span_kind

__all__ = [
    "MemoryTracer",
    "TracingConfig",
    "disable",
    "enable",
    "flush",
    "get_config",
    "get_tracer",
    "is_enabled",
    "resolve_span_kind",
    "traced",
    "traced_span",
    "with_span",
    "with_span_async",
]
