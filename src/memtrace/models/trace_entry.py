# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Trace entries - flat records of one memory operation each.

A trace entry is the simplified, in-process view of an operation:
- It starts as ``started`` when the operation begins
- It moves exactly once to ``success`` or ``failure``, gaining a duration

Invariant: once ``status`` is terminal the entry is not modified again.
"""

from __future__ import annotations

import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Collection, Dict, Optional, Union


def generate_trace_id() -> str:
    """Generate a random UUID4 trace ID."""
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ResourceType(str, Enum):
    MEMORY = "memory"
    PROJECT = "project"


class OperationType(str, Enum):
    STORE = "store"
    CREATE = "create"
    RETRIEVE = "retrieve"
    SEARCH = "search"
    ENRICH = "enrich"
    DELETE = "delete"


class TraceStatus(str, Enum):
    STARTED = "started"
    SUCCESS = "success"
    FAILURE = "failure"


class ErrorType(str, Enum):
    """Error classification for failed operations."""

    NETWORK = "network"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


@dataclass
class ErrorContext:
    """Structured error information attached to a failed entry."""

    type: ErrorType
    message: str
    code: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    stack: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        error_type: ErrorType = ErrorType.UNEXPECTED,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorContext:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(
            type=error_type,
            message=str(exc),
            code=code,
            context=context,
            stack=stack or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": ErrorType(self.type).value, "message": self.message}
        if self.code is not None:
            data["code"] = self.code
        if self.context is not None:
            data["context"] = dict(self.context)
        if self.stack is not None:
            data["stack"] = self.stack
        return data


@dataclass
class TraceEntry:
    """One record of one logical memory or project operation."""

    trace_id: str
    timestamp: str
    resource_type: ResourceType
    operation_type: OperationType
    status: TraceStatus = TraceStatus.STARTED
    parent_trace_id: Optional[str] = None
    duration: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorContext] = None

    @classmethod
    def create(
        cls,
        resource_type: Union[ResourceType, str],
        operation_type: Union[OperationType, str],
        metadata: Optional[Dict[str, Any]] = None,
        parent_trace_id: Optional[str] = None,
    ) -> TraceEntry:
        """Create a ``started`` entry with a fresh ID and the current time."""
        return cls(
            trace_id=generate_trace_id(),
            timestamp=utc_timestamp(),
            resource_type=ResourceType(resource_type),
            operation_type=OperationType(operation_type),
            parent_trace_id=parent_trace_id,
            metadata=dict(metadata or {}),
        )

    @property
    def started_at(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @property
    def is_complete(self) -> bool:
        return self.status != TraceStatus.STARTED

    def to_dict(self) -> Dict[str, Any]:
        """Serialise with camelCase keys, omitting unset optional fields."""
        data: Dict[str, Any] = {
            "traceId": self.trace_id,
            "timestamp": self.timestamp,
            "resourceType": ResourceType(self.resource_type).value,
            "operationType": OperationType(self.operation_type).value,
            "status": TraceStatus(self.status).value,
            "metadata": dict(self.metadata),
        }
        if self.parent_trace_id:
            data["parentTraceId"] = self.parent_trace_id
        if self.duration is not None:
            data["duration"] = self.duration
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class TimeRange:
    """Inclusive time window compared against an entry's start timestamp."""

    start: Union[str, datetime]
    end: Union[str, datetime]

    def contains(self, moment: datetime) -> bool:
        return parse_timestamp(self.start) <= moment <= parse_timestamp(self.end)


@dataclass
class TraceFilter:
    """Query over collected entries.

    Every populated field must match (AND); list fields match any of their
    values (OR).
    """

    trace_id: Optional[str] = None
    operation_type: Optional[Collection[Union[OperationType, str]]] = None
    status: Optional[Collection[Union[TraceStatus, str]]] = None
    time_range: Optional[TimeRange] = None

    def matches(self, entry: TraceEntry) -> bool:
        if self.trace_id and entry.trace_id != self.trace_id:
            return False

        if self.operation_type is not None:
            accepted = {OperationType(op) for op in self.operation_type}
            if OperationType(entry.operation_type) not in accepted:
                return False

        if self.status is not None:
            accepted_status = {TraceStatus(s) for s in self.status}
            if TraceStatus(entry.status) not in accepted_status:
                return False

        if self.time_range is not None and not self.time_range.contains(entry.started_at):
            return False

        return True
