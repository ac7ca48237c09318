# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""OperationTracer - in-process operation records for the memory node.

Works without a tracing SDK: each memory or project operation becomes a
:class:`TraceEntry` in a :class:`TraceCollector`. Entries can be returned as
node output and shipped to an OTLP/HTTP collector in one batch.

Usage::

    ops = OperationTracer()
    trace_id = ops.start_operation("memory", "search", {"searchQuery": "..."})
    try:
        results = client.search(...)
        ops.complete_operation(trace_id, success=True, metadata={"memoryCount": len(results)})
    except Exception as exc:
        ops.complete_operation(trace_id, success=False, error=ErrorContext.from_exception(exc))
        raise
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from memtrace.exporters.trace_entries import DEFAULT_SERVICE_NAME, export_trace_entries
from memtrace.models.trace_entry import (
    ErrorContext,
    OperationType,
    ResourceType,
    TraceEntry,
    TraceStatus,
)
from memtrace.tracking.collector import TraceCollector

logger = logging.getLogger(__name__)

_ENDPOINT_SUFFIXES: Dict[OperationType, str] = {
    OperationType.STORE: "",
    OperationType.CREATE: "",
    OperationType.RETRIEVE: "/get",
    OperationType.SEARCH: "/search",
    OperationType.ENRICH: "/enrich",
    OperationType.DELETE: "/delete",
}


def infer_api_endpoint(
    resource_type: Union[ResourceType, str],
    operation_type: Union[OperationType, str],
) -> str:
    """API path an operation talks to, e.g. ``/memories/search``."""
    base = "/projects" if ResourceType(resource_type) == ResourceType.PROJECT else "/memories"
    return base + _ENDPOINT_SUFFIXES.get(OperationType(operation_type), "")


class OperationTracer:
    """Records operation lifecycles into a :class:`TraceCollector`.

    Tracing failures are logged and swallowed so they never break the
    operation being traced.
    """

    def __init__(
        self,
        enabled: bool = True,
        collector: Optional[TraceCollector] = None,
        service_name: str = DEFAULT_SERVICE_NAME,
    ) -> None:
        self._enabled = enabled
        self._collector = collector if collector is not None else TraceCollector()
        self._service_name = service_name

    @property
    def collector(self) -> TraceCollector:
        return self._collector

    def is_enabled(self) -> bool:
        return self._enabled

    def start_operation(
        self,
        resource_type: Union[ResourceType, str],
        operation_type: Union[OperationType, str],
        metadata: Optional[Dict[str, Any]] = None,
        parent_trace_id: Optional[str] = None,
    ) -> str:
        """Record the start of an operation.

        Returns:
            The new trace ID, or ``""`` when disabled or on failure.
        """
        if not self._enabled:
            return ""

        try:
            entry = TraceEntry.create(
                resource_type,
                operation_type,
                metadata={
                    "apiEndpoint": infer_api_endpoint(resource_type, operation_type),
                    **(metadata or {}),
                },
                parent_trace_id=parent_trace_id,
            )
            self._collector.add_trace(entry)
            return entry.trace_id
        except Exception as exc:
            logger.error("start_operation failed: %s", exc, exc_info=True)
            return ""

    def complete_operation(
        self,
        trace_id: str,
        *,
        success: bool,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[ErrorContext] = None,
    ) -> None:
        if not self._enabled or not trace_id:
            return

        try:
            self._collector.update_trace(trace_id, success=success, metadata=metadata, error=error)
        except Exception as exc:
            logger.error("complete_operation failed: %s", exc, exc_info=True)

    def get_trace_output(self) -> List[Dict[str, Any]]:
        """All entries as plain dicts, ready to append to node output."""
        if not self._enabled:
            return []
        return [entry.to_dict() for entry in self._collector.get_all_traces()]

    def exportable_traces(self) -> List[TraceEntry]:
        """Completed entries, plus unfinished entries that parent another entry.

        An unfinished parent still anchors its children in the trace tree.
        Unfinished entries with no children are orphans and are skipped.
        """
        entries = self._collector.get_all_traces()
        parent_ids = {entry.parent_trace_id for entry in entries if entry.parent_trace_id}
        return [
            entry
            for entry in entries
            if entry.status != TraceStatus.STARTED or entry.trace_id in parent_ids
        ]

    def export_traces(self, endpoint: str, timeout: float = 10.0) -> bool:
        """Send exportable entries to an OTLP/HTTP *endpoint*.

        Returns:
            ``True`` if there was nothing to send or the collector accepted
            the batch.
        """
        if not self._enabled:
            return True

        entries = self.exportable_traces()
        skipped = self._collector.count() - len(entries)
        if skipped:
            logger.info("Skipped %d orphaned incomplete trace(s)", skipped)

        return export_trace_entries(
            entries,
            endpoint,
            timeout=timeout,
            service_name=self._service_name,
        )
