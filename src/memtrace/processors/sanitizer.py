# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Allowlist-based attribute sanitization.

This module is the security boundary between instrumented code and the
collector. Every attribute that reaches a span passes through
:func:`sanitize_attribute` first:

- Keys that are neither in the allowlist nor under an approved prefix are
  **dropped**. They are never attached, not even as empty values.
- Kept string values are truncated to a per-key ceiling and suffixed with
  ``...[truncated]``. Body and payload keys get a larger ceiling.
- Numbers and booleans pass through unchanged.

The policy is a frozen value built once at import time. Nothing here keeps
state, so the functions are safe to call from any thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional, Tuple, Union

from opentelemetry import context
from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor
from opentelemetry.trace import Span

logger = logging.getLogger(__name__)

AttributeValue = Union[str, bool, int, float]

SAFE_SPAN_ATTRIBUTES: FrozenSet[str] = frozenset(
    {
        "operation.type",
        "operation.mode",
        "session.id",
        "user.id",
        "agent.id",
        "group.id",
        "memory.count",
        "memory.count.raw",
        "memory.count.history",
        "memory.count.short",
        "memory.count.long",
        "memory.count.profile",
        "template.enabled",
        "template.length",
        "http.method",
        "http.url",
        "http.target",
        "http.status_code",
        "http.status_text",
        "error",
        "error.type",
        "message.length",
        # MemMachine API
        "memmachine.session.id",
        "memmachine.session.group_id",
        "memmachine.query.limit",
        "memmachine.response.episodic_count",
        "memmachine.response.profile_count",
        "memmachine.messages.total",
        "memmachine.messages.returned",
        "memmachine.message.producer",
        "memmachine.message.produced_for",
        "memmachine.message.length",
        "memmachine.episode.type",
    }
)

SAFE_ATTRIBUTE_PREFIXES: Tuple[str, ...] = (
    "header.",
    "payload.",
    "body",
    "http.request.",
    "http.response.",
)

MAX_ATTRIBUTE_VALUE_LENGTH = 256
MAX_BODY_VALUE_LENGTH = 10_000
TRUNCATION_MARKER = "...[truncated]"

_BODY_KEY_PREFIXES: Tuple[str, ...] = (
    "body.",
    "payload.",
    "http.request.body",
    "http.response.body",
)


class _Dropped:
    """Marker for an attribute that must not leave the process."""

    _instance: Optional[_Dropped] = None

    def __new__(cls) -> _Dropped:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DROPPED"

    def __bool__(self) -> bool:
        return False


DROPPED = _Dropped()


@dataclass(frozen=True)
class SafeAttributeSet:
    """Immutable allowlist: exact keys plus approved key prefixes."""

    keys: FrozenSet[str]
    prefixes: Tuple[str, ...]

    def allows(self, key: str) -> bool:
        return key in self.keys or key.startswith(self.prefixes)


DEFAULT_SAFE_ATTRIBUTES = SafeAttributeSet(
    keys=SAFE_SPAN_ATTRIBUTES,
    prefixes=SAFE_ATTRIBUTE_PREFIXES,
)


def max_length_for(key: str) -> int:
    """Return the string length ceiling applied to *key*."""
    if key == "body" or key.startswith(_BODY_KEY_PREFIXES):
        return MAX_BODY_VALUE_LENGTH
    return MAX_ATTRIBUTE_VALUE_LENGTH


def sanitize_attribute(
    key: str,
    value: Any,
    policy: SafeAttributeSet = DEFAULT_SAFE_ATTRIBUTES,
) -> Union[AttributeValue, _Dropped]:
    """Validate and truncate one attribute.

    Args:
        key: Attribute key.
        value: Attribute value. Strings, numbers and booleans are kept as
            they are; anything else (lists, dicts, ``None``) is converted
            with ``str()`` and then length-limited like any string.
        policy: Allowlist to check against.

    Returns:
        The value, possibly stringified and truncated, or :data:`DROPPED`
        if the key is not allowed.

    Example::

        >>> sanitize_attribute("secret.apiKey", "abc")
        DROPPED
        >>> len(sanitize_attribute("session.id", "x" * 300))
        270
        >>> sanitize_attribute("payload.ids", [1, 2])
        '[1, 2]'
    """
    if not policy.allows(key):
        return DROPPED

    if isinstance(value, (bool, int, float)):
        return value

    text = value if isinstance(value, str) else str(value)
    limit = max_length_for(key)
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def sanitize_attributes(
    attributes: Optional[Mapping[str, Any]],
    policy: SafeAttributeSet = DEFAULT_SAFE_ATTRIBUTES,
) -> dict[str, AttributeValue]:
    """Sanitize a mapping, omitting every dropped entry."""
    sanitized: dict[str, AttributeValue] = {}
    if not attributes:
        return sanitized
    for key, value in attributes.items():
        result = sanitize_attribute(key, value, policy)
        if result is not DROPPED:
            sanitized[key] = result  # type: ignore[assignment]
    return sanitized


class SensitiveDataSpanProcessor(SpanProcessor):
    """Validation point for the attribute allowlist.

    Finished span attributes are read-only, so this processor cannot strip
    anything. Filtering is enforced by only ever setting sanitized attributes
    through :class:`~memtrace.sdk.tracer.MemoryTracer`. On end, the processor
    warns about any key the policy would have rejected, which points at code
    writing to spans directly.
    """

    def __init__(self, policy: SafeAttributeSet = DEFAULT_SAFE_ATTRIBUTES) -> None:
        self._policy = policy

    def on_start(
        self,
        span: Span,
        parent_context: Optional[context.Context] = None,
    ) -> None:
        pass

    def on_end(self, span: ReadableSpan) -> None:
        attributes = span.attributes or {}
        unsafe = sorted(key for key in attributes if not self._policy.allows(key))
        if unsafe:
            logger.warning(
                "Span %r carries attributes outside the allowlist: %s",
                span.name,
                ", ".join(unsafe),
            )

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True

    @staticmethod
    def sanitize_attribute(key: str, value: Any) -> Union[AttributeValue, _Dropped]:
        return sanitize_attribute(key, value)
