# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared test fixtures for memtrace tests."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from memtrace.sdk import bootstrap
from memtrace.sdk.config import TracingConfig
from memtrace.sdk.tracer import MemoryTracer


@pytest.fixture
def memory_exporter():
    """In-memory span exporter, fresh per test."""
    return InMemorySpanExporter()


@pytest.fixture
def tracing_config():
    """Enabled config with explicit values so env vars cannot leak in."""
    return TracingConfig(
        enabled=True,
        endpoint="http://localhost:4318/v1/traces",
        protocol="http",
        service_name="test-memory-node",
        service_version="0.0.1",
        deployment_environment="test",
    )


@pytest.fixture
def tracer(tracing_config, memory_exporter):
    """An initialized MemoryTracer exporting into ``memory_exporter``."""
    memory_tracer = MemoryTracer()
    assert memory_tracer.initialize(tracing_config, exporter=memory_exporter)
    yield memory_tracer
    memory_tracer.shutdown()


@pytest.fixture
def finished_spans(tracer, memory_exporter):
    """Flush the batch processor and return the exported spans."""

    def _collect():
        tracer.flush()
        return memory_exporter.get_finished_spans()

    return _collect


@pytest.fixture
def reset_bootstrap():
    """Make sure process-wide tracing is disabled before and after a test."""
    bootstrap.disable()
    yield
    bootstrap.disable()
