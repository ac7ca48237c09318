# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Memtrace operation tracking.

- :class:`TraceCollector`: in-memory store of trace entries with filtering
- :class:`OperationTracer`: start/complete operations and export them
"""

from __future__ import annotations

from memtrace.tracking.collector import TraceCollector
from memtrace.tracking.operations import OperationTracer, infer_api_endpoint

__all__ = [
    "OperationTracer",
    "TraceCollector",
    "infer_api_endpoint",
]
