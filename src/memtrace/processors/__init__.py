# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Memtrace span processors and the attribute allowlist.

Only :class:`SensitiveDataSpanProcessor` is installed on the provider.
Attribute filtering itself happens in :func:`sanitize_attribute`, before
values ever reach a span.
"""

from memtrace.processors.sanitizer import (
    DEFAULT_SAFE_ATTRIBUTES,
    DROPPED,
    MAX_ATTRIBUTE_VALUE_LENGTH,
    MAX_BODY_VALUE_LENGTH,
    SAFE_ATTRIBUTE_PREFIXES,
    SAFE_SPAN_ATTRIBUTES,
    TRUNCATION_MARKER,
    SafeAttributeSet,
    SensitiveDataSpanProcessor,
    max_length_for,
    sanitize_attribute,
    sanitize_attributes,
)

__all__ = [
    "DEFAULT_SAFE_ATTRIBUTES",
    "DROPPED",
    "MAX_ATTRIBUTE_VALUE_LENGTH",
    "MAX_BODY_VALUE_LENGTH",
    "SAFE_ATTRIBUTE_PREFIXES",
    "SAFE_SPAN_ATTRIBUTES",
    "TRUNCATION_MARKER",
    "SafeAttributeSet",
    "SensitiveDataSpanProcessor",
    "max_length_for",
    "sanitize_attribute",
    "sanitize_attributes",
]
