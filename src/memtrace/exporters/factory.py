# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Exporter selection and endpoint normalisation.

One constructor per wire protocol, chosen once from the configured
``protocol`` value:

- ``http``: OTLP/HTTP JSON to ``http(s)://host:4318/v1/traces``
- ``grpc``: OTLP/gRPC to a bare ``host:4317`` target
- ``udp``: legacy Jaeger Thrift-compact over UDP to ``host:6831``

The gRPC and Jaeger exporters are optional extras. When their package is
missing the constructor raises :class:`ExporterUnavailableError`, which the
tracer turns into disabled tracing.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from opentelemetry.sdk.trace.export import SpanExporter

from memtrace.exporters.otlp_http import OTLPJsonHTTPSpanExporter

if TYPE_CHECKING:
    from memtrace.sdk.config import TracingConfig

logger = logging.getLogger(__name__)

OTLP_TRACES_PATH = "/v1/traces"
LEGACY_JAEGER_HTTP_PORT = ":14268"
OTLP_HTTP_PORT = ":4318"
DEFAULT_UDP_PORT = 6831
UDP_MAX_PACKET_SIZE = 65000

_SCHEME_RE = re.compile(r"^https?://")
_ANY_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


class UnsupportedProtocolError(ValueError):
    """The configured protocol is not one of ``http``, ``udp``, ``grpc``."""


class ExporterUnavailableError(ImportError):
    """The optional package backing an exporter is not installed."""


class ExporterKind(str, Enum):
    HTTP = "http"
    UDP = "udp"
    GRPC = "grpc"

    @classmethod
    def parse(cls, value: str) -> ExporterKind:
        try:
            return cls(str(value).lower())
        except ValueError:
            supported = ", ".join(kind.value for kind in cls)
            raise UnsupportedProtocolError(
                f"Unsupported protocol: {value}. Supported: {supported}"
            ) from None


# ---------------------------------------------------------------------------
# Endpoint normalisation
# ---------------------------------------------------------------------------


def normalize_otlp_endpoint(endpoint: str) -> str:
    """Turn a collector address into a full OTLP/HTTP traces URL.

    Legacy Jaeger HTTP ports are rewritten to the OTLP port, the traces path
    is appended when missing, and ``http://`` is assumed when no scheme is
    given.

    Example::

        >>> normalize_otlp_endpoint("jaeger:14268/api/traces")
        'http://jaeger:4318/v1/traces'
    """
    normalized = endpoint

    if LEGACY_JAEGER_HTTP_PORT in normalized:
        normalized = normalized.replace(f"{LEGACY_JAEGER_HTTP_PORT}/api/traces", f"{OTLP_HTTP_PORT}{OTLP_TRACES_PATH}")
        normalized = normalized.replace(LEGACY_JAEGER_HTTP_PORT, OTLP_HTTP_PORT)
        logger.info("Converted legacy Jaeger endpoint %s -> %s", endpoint, normalized)

    if OTLP_TRACES_PATH not in normalized:
        normalized = normalized.rstrip("/") + OTLP_TRACES_PATH

    if not _SCHEME_RE.match(normalized):
        normalized = "http://" + normalized

    return normalized


def normalize_grpc_endpoint(endpoint: str) -> str:
    """Reduce *endpoint* to the bare ``host:port`` a gRPC channel expects."""
    normalized = _ANY_SCHEME_RE.sub("", endpoint)
    return normalized.split("/", 1)[0]


def parse_udp_target(endpoint: str) -> Tuple[str, int]:
    """Split a Jaeger agent address into ``(host, port)``."""
    bare = normalize_grpc_endpoint(endpoint)
    host, _, port = bare.partition(":")
    try:
        return host, int(port)
    except ValueError:
        return host, DEFAULT_UDP_PORT


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def _timeout_seconds(config: TracingConfig) -> float:
    return config.export_timeout_millis / 1000.0


def create_http_exporter(config: TracingConfig) -> SpanExporter:
    endpoint = normalize_otlp_endpoint(config.endpoint)
    logger.info("Using OTLP/HTTP exporter: %s", endpoint)
    return OTLPJsonHTTPSpanExporter(
        endpoint=endpoint,
        headers=config.otlp_headers,
        timeout=_timeout_seconds(config),
    )


def create_grpc_exporter(config: TracingConfig) -> SpanExporter:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as exc:
        raise ExporterUnavailableError(
            "OTLP gRPC exporter not available. Install with: pip install memtrace[grpc]"
        ) from exc

    endpoint = normalize_grpc_endpoint(config.endpoint)
    logger.info("Using OTLP/gRPC exporter: %s", endpoint)
    return OTLPSpanExporter(
        endpoint=endpoint,
        insecure=True,
        headers=config.otlp_headers,
        timeout=_timeout_seconds(config),
    )


def create_udp_exporter(config: TracingConfig) -> SpanExporter:
    try:
        from opentelemetry.exporter.jaeger.thrift import JaegerExporter
    except ImportError as exc:
        raise ExporterUnavailableError(
            "Jaeger exporter not available. Install with: pip install memtrace[jaeger]"
        ) from exc

    host, port = parse_udp_target(config.endpoint)
    # Batches above the agent client's packet ceiling are split, not dropped.
    logger.info(
        "Using legacy Jaeger UDP exporter: %s:%d (max packet %d bytes)",
        host,
        port,
        UDP_MAX_PACKET_SIZE,
    )
    return JaegerExporter(
        agent_host_name=host,
        agent_port=port,
        udp_split_oversized_batches=True,
    )


_CONSTRUCTORS: Dict[ExporterKind, Callable[[TracingConfig], SpanExporter]] = {
    ExporterKind.HTTP: create_http_exporter,
    ExporterKind.GRPC: create_grpc_exporter,
    ExporterKind.UDP: create_udp_exporter,
}


def create_exporter(config: TracingConfig, kind: Optional[ExporterKind] = None) -> SpanExporter:
    """Build the exporter for ``config.protocol``.

    Raises:
        UnsupportedProtocolError: If the protocol is unknown.
        ExporterUnavailableError: If the exporter's package is missing.
    """
    selected = kind or ExporterKind.parse(config.protocol)
    return _CONSTRUCTORS[selected](config)
