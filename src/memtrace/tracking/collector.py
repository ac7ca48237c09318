# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""In-memory store of trace entries.

Entries are keyed by ``trace_id`` and kept in insertion order. The collector
does no locking of its own: callers touching the same ``trace_id`` from
several flows must serialise those calls themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from memtrace.models.trace_entry import ErrorContext, TraceEntry, TraceFilter, TraceStatus

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 1


class TraceCollector:
    """Collects :class:`TraceEntry` records during a workflow execution."""

    def __init__(self) -> None:
        self._traces: Dict[str, TraceEntry] = {}

    def add_trace(self, entry: TraceEntry) -> None:
        """Store *entry*, replacing any entry with the same ``trace_id``."""
        self._traces[entry.trace_id] = entry

    def update_trace(
        self,
        trace_id: str,
        *,
        success: bool,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[ErrorContext] = None,
    ) -> None:
        """Complete the entry for *trace_id*.

        Unknown IDs are ignored. Duration is measured from the entry's start
        timestamp and never drops below one millisecond, so viewers do not
        mistake the operation for an instantaneous one.

        Args:
            trace_id: ID returned when the entry was added.
            success: Whether the operation succeeded.
            metadata: Merged into the existing metadata; new keys win.
            error: Replaces the entry's error wholesale.
        """
        entry = self._traces.get(trace_id)
        if entry is None:
            logger.debug("Ignoring update for unknown trace %s", trace_id)
            return

        elapsed = datetime.now(timezone.utc) - entry.started_at
        duration = int(elapsed.total_seconds() * 1000)

        entry.status = TraceStatus.SUCCESS if success else TraceStatus.FAILURE
        entry.duration = max(duration, MIN_DURATION_MS)
        entry.metadata = {**entry.metadata, **(metadata or {})}
        entry.error = error

    def get_trace(self, trace_id: str) -> Optional[TraceEntry]:
        return self._traces.get(trace_id)

    def get_all_traces(self) -> List[TraceEntry]:
        """Snapshot of all entries in insertion order."""
        return list(self._traces.values())

    def filter_traces(self, trace_filter: Optional[TraceFilter] = None) -> List[TraceEntry]:
        """Return entries matching every populated field of *trace_filter*."""
        if trace_filter is None:
            return self.get_all_traces()
        return [entry for entry in self._traces.values() if trace_filter.matches(entry)]

    def clear(self) -> None:
        self._traces.clear()

    def count(self) -> int:
        return len(self._traces)

    def __len__(self) -> int:
        return len(self._traces)
