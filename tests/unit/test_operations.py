# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for OperationTracer and trace entry export."""

from __future__ import annotations

import json
from unittest import mock

import pytest
import requests

from memtrace.exporters.trace_entries import (
    STATUS_ERROR,
    STATUS_OK,
    STATUS_UNSET,
    convert_to_otlp,
    export_trace_entries,
    trace_entry_to_span,
)
from memtrace.models.trace_entry import ErrorContext, ErrorType, TraceEntry, TraceStatus
from memtrace.processors.sanitizer import TRUNCATION_MARKER
from memtrace.tracking.operations import OperationTracer, infer_api_endpoint

ENDPOINT = "http://collector:4318/v1/traces"


def _response(status_code=200, text=""):
    response = mock.Mock()
    response.status_code = status_code
    response.text = text
    return response


def _attrs(span):
    return {a["key"]: a["value"] for a in span["attributes"]}


class TestInferApiEndpoint:
    @pytest.mark.parametrize(
        ("resource", "operation", "expected"),
        [
            ("memory", "store", "/memories"),
            ("memory", "retrieve", "/memories/get"),
            ("memory", "search", "/memories/search"),
            ("memory", "enrich", "/memories/enrich"),
            ("memory", "delete", "/memories/delete"),
            ("project", "create", "/projects"),
            ("project", "retrieve", "/projects/get"),
        ],
    )
    def test_paths(self, resource, operation, expected):
        assert infer_api_endpoint(resource, operation) == expected


class TestOperationTracer:
    def test_start_and_complete(self):
        ops = OperationTracer()
        trace_id = ops.start_operation("memory", "search", {"searchQuery": "cats"})

        ops.complete_operation(trace_id, success=True, metadata={"memoryCount": 2})

        entry = ops.collector.get_trace(trace_id)
        assert entry.status == TraceStatus.SUCCESS
        assert entry.metadata == {
            "apiEndpoint": "/memories/search",
            "searchQuery": "cats",
            "memoryCount": 2,
        }
        assert entry.duration >= 1

    def test_caller_metadata_may_override_endpoint(self):
        ops = OperationTracer()
        trace_id = ops.start_operation("memory", "store", {"apiEndpoint": "/custom"})
        assert ops.collector.get_trace(trace_id).metadata["apiEndpoint"] == "/custom"

    def test_failure(self):
        ops = OperationTracer()
        trace_id = ops.start_operation("memory", "store")
        error = ErrorContext(type=ErrorType.NETWORK, message="ECONNREFUSED")

        ops.complete_operation(trace_id, success=False, error=error)

        entry = ops.collector.get_trace(trace_id)
        assert entry.status == TraceStatus.FAILURE
        assert entry.error is error

    def test_disabled(self):
        ops = OperationTracer(enabled=False)

        assert ops.is_enabled() is False
        assert ops.start_operation("memory", "store") == ""
        ops.complete_operation("anything", success=True)
        assert ops.get_trace_output() == []
        assert ops.export_traces(ENDPOINT) is True

    def test_invalid_operation_returns_empty_id(self):
        ops = OperationTracer()
        assert ops.start_operation("memory", "teleport") == ""
        assert ops.collector.count() == 0

    def test_complete_with_empty_id_is_noop(self):
        ops = OperationTracer()
        ops.complete_operation("", success=True)
        assert ops.collector.count() == 0

    def test_get_trace_output(self):
        ops = OperationTracer()
        trace_id = ops.start_operation("project", "create")
        ops.complete_operation(trace_id, success=True)

        output = ops.get_trace_output()

        assert output[0]["traceId"] == trace_id
        assert output[0]["resourceType"] == "project"
        assert output[0]["status"] == "success"

    def test_exportable_traces_skips_orphans(self):
        ops = OperationTracer()
        parent = ops.start_operation("memory", "search")
        child = ops.start_operation("memory", "retrieve", parent_trace_id=parent)
        orphan = ops.start_operation("memory", "store")
        ops.complete_operation(child, success=True)

        exportable = {entry.trace_id for entry in ops.exportable_traces()}

        assert exportable == {parent, child}
        assert orphan not in exportable

    def test_export_traces_posts_payload(self):
        ops = OperationTracer(service_name="my-node")
        trace_id = ops.start_operation("memory", "store")
        ops.complete_operation(trace_id, success=True)

        with mock.patch("memtrace.exporters.trace_entries.requests.post", return_value=_response(200)) as post:
            assert ops.export_traces(ENDPOINT, timeout=2.0) is True

        args, kwargs = post.call_args
        assert args == (ENDPOINT,)
        assert kwargs["timeout"] == 2.0
        payload = json.loads(kwargs["data"])
        resource = {a["key"]: a["value"] for a in payload["resourceSpans"][0]["resource"]["attributes"]}
        assert resource["service.name"] == {"stringValue": "my-node"}


class TestTraceEntryToSpan:
    def test_root_entry(self):
        entry = TraceEntry.create("memory", "search", metadata={"sessionId": "s1", "memoryCount": 3, "skip": None})
        entry.status = TraceStatus.SUCCESS
        entry.duration = 25

        span = trace_entry_to_span(entry)

        own_hex = entry.trace_id.replace("-", "")
        assert span["traceId"] == own_hex
        assert span["spanId"] == own_hex[:16]
        assert "parentSpanId" not in span
        assert span["name"] == "memory.search"
        assert span["kind"] == 1
        assert span["status"]["code"] == STATUS_OK
        assert int(span["endTimeUnixNano"]) - int(span["startTimeUnixNano"]) == 25_000_000

        attrs = _attrs(span)
        assert attrs["sessionId"] == {"stringValue": "s1"}
        assert attrs["memoryCount"] == {"stringValue": "3"}
        assert "skip" not in attrs
        assert attrs["operation.type"] == {"stringValue": "search"}
        assert attrs["trace.id"] == {"stringValue": entry.trace_id}

    def test_child_entry_joins_parent_trace(self):
        parent = TraceEntry.create("memory", "search")
        child = TraceEntry.create("memory", "retrieve", parent_trace_id=parent.trace_id)

        span = trace_entry_to_span(child)

        parent_hex = parent.trace_id.replace("-", "")
        assert span["traceId"] == parent_hex
        assert span["parentSpanId"] == parent_hex[:16]
        assert span["spanId"] == child.trace_id.replace("-", "")[:16]

    def test_unfinished_entry_has_positive_length(self):
        span = trace_entry_to_span(TraceEntry.create("memory", "store"))

        assert int(span["endTimeUnixNano"]) > int(span["startTimeUnixNano"])
        assert span["status"]["code"] == STATUS_UNSET

    def test_error_attributes(self):
        entry = TraceEntry.create("memory", "store")
        entry.status = TraceStatus.FAILURE
        entry.error = ErrorContext(type=ErrorType.TIMEOUT, message="slow", code="ETIMEDOUT")

        span = trace_entry_to_span(entry)
        attrs = _attrs(span)

        assert span["status"] == {"code": STATUS_ERROR, "message": "slow"}
        assert attrs["error"] == {"boolValue": True}
        assert attrs["error.type"] == {"stringValue": "timeout"}
        assert attrs["error.message"] == {"stringValue": "slow"}
        assert attrs["error.code"] == {"stringValue": "ETIMEDOUT"}

    def test_long_metadata_is_truncated(self):
        entry = TraceEntry.create("memory", "store", metadata={"content": "c" * 400})

        value = _attrs(trace_entry_to_span(entry))["content"]["stringValue"]

        assert value == "c" * 256 + TRUNCATION_MARKER

    def test_convert_to_otlp(self):
        entries = [TraceEntry.create("memory", "store"), TraceEntry.create("project", "create")]

        payload = convert_to_otlp(entries, service_name="svc")

        scope_spans = payload["resourceSpans"][0]["scopeSpans"][0]
        assert scope_spans["scope"]["name"] == "svc"
        assert [s["name"] for s in scope_spans["spans"]] == ["memory.store", "project.create"]
        json.dumps(payload)


class TestExportTraceEntries:
    def test_success_with_session(self):
        session = mock.Mock(spec=requests.Session)
        session.post.return_value = _response(204)

        assert export_trace_entries([TraceEntry.create("memory", "store")], ENDPOINT, session=session) is True

        headers = session.post.call_args[1]["headers"]
        assert headers["Content-Type"] == "application/json"
        assert headers["Content-Length"] == str(len(session.post.call_args[1]["data"]))

    def test_non_2xx(self, caplog):
        session = mock.Mock(spec=requests.Session)
        session.post.return_value = _response(503, "unavailable")

        assert export_trace_entries([TraceEntry.create("memory", "store")], ENDPOINT, session=session) is False
        assert "503" in caplog.text

    def test_transport_error(self):
        session = mock.Mock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError("refused")

        assert export_trace_entries([TraceEntry.create("memory", "store")], ENDPOINT, session=session) is False

    def test_nothing_to_send(self):
        session = mock.Mock(spec=requests.Session)

        assert export_trace_entries([], ENDPOINT, session=session) is True
        session.post.assert_not_called()
