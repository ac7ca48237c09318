# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the attribute allowlist sanitizer."""

from __future__ import annotations

import dataclasses
import logging
from unittest import mock

import pytest

from memtrace.processors.sanitizer import (
    DEFAULT_SAFE_ATTRIBUTES,
    DROPPED,
    MAX_ATTRIBUTE_VALUE_LENGTH,
    MAX_BODY_VALUE_LENGTH,
    TRUNCATION_MARKER,
    SafeAttributeSet,
    SensitiveDataSpanProcessor,
    max_length_for,
    sanitize_attribute,
    sanitize_attributes,
)


class TestSanitizeAttribute:
    def test_allowlisted_key_passes_through(self):
        assert sanitize_attribute("session.id", "sess-123") == "sess-123"

    def test_unknown_key_is_dropped(self):
        assert sanitize_attribute("secret.apiKey", "abc") is DROPPED

    @pytest.mark.parametrize("key", ["password", "authorization", "user.email", "api_key"])
    def test_sensitive_looking_keys_are_dropped(self, key):
        assert sanitize_attribute(key, "value") is DROPPED

    @pytest.mark.parametrize(
        "key",
        ["header.content-type", "payload.messages", "body", "body.text", "http.request.method", "http.response.size"],
    )
    def test_prefixed_keys_are_allowed(self, key):
        assert sanitize_attribute(key, "v") == "v"

    def test_long_value_truncated_with_marker(self):
        result = sanitize_attribute("session.id", "x" * 300)
        assert result == "x" * MAX_ATTRIBUTE_VALUE_LENGTH + TRUNCATION_MARKER
        assert len(result) == 256 + len("...[truncated]")

    def test_value_at_limit_is_untouched(self):
        value = "y" * MAX_ATTRIBUTE_VALUE_LENGTH
        assert sanitize_attribute("user.id", value) == value

    def test_body_value_keeps_larger_ceiling(self):
        value = "p" * 300
        assert sanitize_attribute("payload.content", value) == value

    def test_body_value_truncated_past_body_ceiling(self):
        result = sanitize_attribute("body", "b" * (MAX_BODY_VALUE_LENGTH + 5))
        assert result.endswith(TRUNCATION_MARKER)
        assert len(result) == MAX_BODY_VALUE_LENGTH + len(TRUNCATION_MARKER)

    @pytest.mark.parametrize("value", [42, 3.5, True, False, 0])
    def test_non_strings_unchanged(self, value):
        assert sanitize_attribute("memory.count", value) == value

    def test_list_value_is_stringified_and_truncated(self):
        result = sanitize_attribute("payload.messages", ["x" * 50_000])

        assert isinstance(result, str)
        assert result.startswith("['xxx")
        assert result.endswith(TRUNCATION_MARKER)
        assert len(result) == MAX_BODY_VALUE_LENGTH + len(TRUNCATION_MARKER)

    def test_short_list_is_stringified(self):
        assert sanitize_attribute("payload.ids", [1, 2]) == "[1, 2]"

    def test_dict_value_is_stringified(self):
        assert sanitize_attribute("header.meta", {"a": 1}) == "{'a': 1}"

    def test_none_value_is_stringified(self):
        assert sanitize_attribute("user.id", None) == "None"

    def test_custom_policy(self):
        policy = SafeAttributeSet(keys=frozenset({"only.this"}), prefixes=())
        assert sanitize_attribute("only.this", "ok", policy) == "ok"
        assert sanitize_attribute("session.id", "x", policy) is DROPPED


class TestMaxLengthFor:
    @pytest.mark.parametrize(
        "key",
        ["body", "body.text", "payload.raw", "http.request.body", "http.response.body.json"],
    )
    def test_body_keys(self, key):
        assert max_length_for(key) == MAX_BODY_VALUE_LENGTH

    @pytest.mark.parametrize("key", ["session.id", "http.url", "bodyguard", "header.x"])
    def test_other_keys(self, key):
        assert max_length_for(key) == MAX_ATTRIBUTE_VALUE_LENGTH


class TestSanitizeAttributes:
    def test_dropped_keys_are_omitted(self):
        result = sanitize_attributes(
            {
                "session.id": "s1",
                "secret.apiKey": "k",
                "memory.count": 3,
            }
        )
        assert result == {"session.id": "s1", "memory.count": 3}
        assert "secret.apiKey" not in result

    def test_none_and_empty(self):
        assert sanitize_attributes(None) == {}
        assert sanitize_attributes({}) == {}

    def test_empty_string_value_is_kept(self):
        assert sanitize_attributes({"user.id": ""}) == {"user.id": ""}


class TestDroppedMarker:
    def test_is_falsy_singleton(self):
        assert not DROPPED
        assert repr(DROPPED) == "DROPPED"
        assert type(DROPPED)() is DROPPED


class TestSafeAttributeSet:
    def test_default_policy_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_SAFE_ATTRIBUTES.keys = frozenset()  # type: ignore[misc]

    def test_allows(self):
        assert DEFAULT_SAFE_ATTRIBUTES.allows("memmachine.session.id")
        assert not DEFAULT_SAFE_ATTRIBUTES.allows("memmachine.secret")


class TestSensitiveDataSpanProcessor:
    def test_warns_about_unsafe_keys(self, caplog):
        processor = SensitiveDataSpanProcessor()
        span = mock.Mock()
        span.name = "memory.store"
        span.attributes = {"session.id": "s", "secret.apiKey": "k"}

        with caplog.at_level(logging.WARNING, logger="memtrace.processors.sanitizer"):
            processor.on_end(span)

        assert "secret.apiKey" in caplog.text
        assert "session.id" not in caplog.text

    def test_silent_for_safe_span(self, caplog):
        processor = SensitiveDataSpanProcessor()
        span = mock.Mock()
        span.name = "memory.store"
        span.attributes = {"session.id": "s"}

        with caplog.at_level(logging.WARNING, logger="memtrace.processors.sanitizer"):
            processor.on_end(span)

        assert caplog.records == []

    def test_force_flush_and_static_helper(self):
        processor = SensitiveDataSpanProcessor()
        assert processor.force_flush() is True
        assert SensitiveDataSpanProcessor.sanitize_attribute("token", "t") is DROPPED
        assert SensitiveDataSpanProcessor.sanitize_attribute("user.id", "u") == "u"
