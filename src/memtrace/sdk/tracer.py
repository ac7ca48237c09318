# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""MemoryTracer - span lifecycle facade for the memory node.

Wraps an OpenTelemetry ``TracerProvider`` owned by this object and gives call
sites a small, forgiving API:

1. Every attribute and event payload goes through the allowlist sanitizer
2. Disabled or failed initialisation turns every call into a no-op
3. Tracing errors are logged, never raised into the traced operation

Usage::

    tracer = MemoryTracer()
    tracer.initialize(TracingConfig(enabled=True, endpoint="jaeger:4318"))

    span = tracer.start_span("memory.store", kind="CLIENT", attributes={"session.id": sid})
    try:
        store(...)
        tracer.end_span(span)
    except Exception as exc:
        tracer.end_span_with_error(span, exc)
        raise
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Optional, Union

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from memtrace._version import __version__
from memtrace.processors.sanitizer import sanitize_attributes
from memtrace.sdk.config import DEFAULT_SERVICE_NAME, TracingConfig

logger = logging.getLogger(__name__)

TRACER_NAME = "memtrace"

_SPAN_KINDS: Dict[str, SpanKind] = {
    "INTERNAL": SpanKind.INTERNAL,
    "CLIENT": SpanKind.CLIENT,
    "SERVER": SpanKind.SERVER,
    "PRODUCER": SpanKind.PRODUCER,
    "CONSUMER": SpanKind.CONSUMER,
}

SpanKindLike = Union[SpanKind, str, None]
Parent = Union[Span, Context, None]
StartTime = Union[datetime, int, None]


def resolve_span_kind(kind: SpanKindLike) -> SpanKind:
    """Map a kind name (or ``SpanKind``) onto ``SpanKind``; unknown means INTERNAL."""
    if isinstance(kind, SpanKind):
        return kind
    if kind is None:
        return SpanKind.INTERNAL
    return _SPAN_KINDS.get(str(kind).upper(), SpanKind.INTERNAL)


def _to_nanos(start_time: StartTime) -> Optional[int]:
    if start_time is None:
        return None
    if isinstance(start_time, datetime):
        return int(start_time.timestamp() * 1_000_000_000)
    return int(start_time)


class MemoryTracer:
    """Tracing facade: start, annotate and end spans safely."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._provider: Any = None
        self._tracer: Optional[trace.Tracer] = None
        self._config: Optional[TracingConfig] = None
        self._propagator = TraceContextTextMapPropagator()

    @property
    def config(self) -> Optional[TracingConfig]:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, config: TracingConfig, *, exporter: Any = None) -> bool:
        """Set up the provider, exporter and batch processor.

        Safe to call more than once; later calls are ignored while a provider
        is active. Any failure leaves the tracer disabled.

        Args:
            config: Tracing configuration.
            exporter: Span exporter to use instead of the one selected by
                ``config.protocol``.

        Returns:
            ``True`` if tracing is active afterwards.
        """
        if self._tracer is not None:
            self._logger.warning("MemoryTracer already initialized")
            return True

        self._config = config
        if not config.enabled:
            self._logger.debug("Tracing disabled by configuration")
            return False

        try:
            from opentelemetry.sdk.resources import Resource
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor

            from memtrace.exporters.factory import create_exporter
            from memtrace.processors.sanitizer import SensitiveDataSpanProcessor
        except ImportError as exc:
            self._logger.warning("OpenTelemetry SDK not available, tracing disabled: %s", exc)
            return False

        self._logger.info(
            "Initializing tracing: endpoint=%s, protocol=%s",
            config.endpoint,
            config.protocol,
        )

        try:
            span_exporter = exporter if exporter is not None else create_exporter(config)

            resource = Resource.create(
                {
                    "service.name": config.service_name or DEFAULT_SERVICE_NAME,
                    "service.version": config.service_version or __version__,
                    "deployment.environment": config.deployment_environment or "development",
                    "tracing.protocol": str(config.protocol),
                }
            )

            provider = TracerProvider(resource=resource)
            provider.add_span_processor(
                BatchSpanProcessor(
                    span_exporter,
                    max_queue_size=config.max_queue_size,
                    max_export_batch_size=config.max_export_batch_size,
                    schedule_delay_millis=config.schedule_delay_millis,
                    export_timeout_millis=config.export_timeout_millis,
                )
            )
            provider.add_span_processor(SensitiveDataSpanProcessor())

            self._provider = provider
            self._tracer = provider.get_tracer(TRACER_NAME, __version__)
            self._logger.info("Tracing initialized for service %s", config.service_name)
            return True

        except Exception as exc:
            self._logger.error("Failed to initialize tracing: %s", exc, exc_info=True)
            self._provider = None
            self._tracer = None
            return False

    def is_enabled(self) -> bool:
        return bool(self._config and self._config.enabled) and self._tracer is not None

    def flush(self, timeout_millis: int = 30000) -> bool:
        """Export pending spans now. Returns ``False`` on failure or timeout."""
        if self._provider is None:
            return True
        try:
            return bool(self._provider.force_flush(timeout_millis))
        except Exception as exc:
            self._logger.error("Failed to flush spans: %s", exc)
            return False

    def shutdown(self) -> None:
        """Flush and release the provider. Later calls behave as disabled."""
        provider = self._provider
        self._provider = None
        self._tracer = None
        if provider is None:
            return
        try:
            provider.shutdown()
            self._logger.info("Tracer shutdown complete")
        except Exception as exc:
            self._logger.error("Failed to shutdown tracer: %s", exc, exc_info=True)

    # ------------------------------------------------------------------
    # Spans
    # ------------------------------------------------------------------

    def start_span(
        self,
        name: str,
        *,
        kind: SpanKindLike = None,
        attributes: Optional[Mapping[str, Any]] = None,
        parent: Parent = None,
        start_time: StartTime = None,
    ) -> Optional[Span]:
        """Start a span with sanitized attributes.

        Args:
            name: Span name.
            kind: ``SpanKind`` or one of ``INTERNAL`` (default), ``CLIENT``,
                ``SERVER``, ``PRODUCER``, ``CONSUMER``.
            attributes: Candidate attributes; unsafe keys are dropped.
            parent: Parent span or an extracted context.
            start_time: ``datetime`` or nanoseconds since epoch.

        Returns:
            The span, or ``None`` when tracing is disabled.
        """
        if not self.is_enabled() or self._tracer is None:
            return None

        try:
            ctx: Optional[Context] = None
            if isinstance(parent, Span):
                ctx = trace.set_span_in_context(parent)
            elif parent is not None:
                ctx = parent

            return self._tracer.start_span(
                name,
                context=ctx,
                kind=resolve_span_kind(kind),
                attributes=sanitize_attributes(attributes),
                start_time=_to_nanos(start_time),
            )
        except Exception as exc:
            self._logger.warning("Failed to start span %s: %s", name, exc)
            return None

    def end_span(self, span: Optional[Span]) -> None:
        if span is None:
            return
        try:
            span.set_status(Status(StatusCode.OK))
            span.end()
        except Exception as exc:
            self._logger.warning("Failed to end span: %s", exc)

    def end_span_with_error(self, span: Optional[Span], error: Union[BaseException, str]) -> None:
        """Mark *span* as failed, record the exception and end it."""
        if span is None:
            return
        try:
            exc = error if isinstance(error, BaseException) else Exception(str(error))
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            span.end()
        except Exception as err:
            self._logger.warning("Failed to end span with error: %s", err)

    def add_attributes(self, span: Optional[Span], attributes: Mapping[str, Any]) -> None:
        if span is None:
            return
        try:
            safe = sanitize_attributes(attributes)
            if safe:
                span.set_attributes(safe)
        except Exception as exc:
            self._logger.warning("Failed to add attributes: %s", exc)

    def add_event(
        self,
        span: Optional[Span],
        name: str,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if span is None:
            return
        try:
            if attributes is None:
                span.add_event(name)
            else:
                span.add_event(name, sanitize_attributes(attributes))
        except Exception as exc:
            self._logger.warning("Failed to add event %s: %s", name, exc)

    def create_child_span(
        self,
        parent: Optional[Span],
        name: str,
        *,
        kind: SpanKindLike = None,
        attributes: Optional[Mapping[str, Any]] = None,
        start_time: StartTime = None,
    ) -> Optional[Span]:
        if parent is None:
            return None
        return self.start_span(
            name,
            kind=kind,
            attributes=attributes,
            parent=parent,
            start_time=start_time,
        )

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def extract_context(self, metadata: Optional[Mapping[str, Any]]) -> Optional[Context]:
        """Read W3C trace context from *metadata*.

        Looks under ``metadata["traceContext"]`` first, then at the mapping
        itself.
        """
        if not metadata or not self.is_enabled():
            return None
        try:
            carrier = metadata.get("traceContext") or metadata
            return self._propagator.extract(carrier=carrier)
        except Exception as exc:
            self._logger.warning("Failed to extract context: %s", exc)
            return None

    def inject_context(self, span: Optional[Span]) -> Optional[Dict[str, str]]:
        """Return a carrier holding ``traceparent`` (and ``tracestate``) for *span*."""
        if span is None or not self.is_enabled():
            return None
        try:
            carrier: Dict[str, str] = {}
            self._propagator.inject(carrier, context=trace.set_span_in_context(span))
            return carrier
        except Exception as exc:
            self._logger.warning("Failed to inject context: %s", exc)
            return None
