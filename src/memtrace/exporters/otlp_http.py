# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""OTLP/HTTP span exporter that speaks JSON.

Lightweight alternative to the protobuf OTLP exporter: spans are encoded
with :mod:`memtrace.exporters.otlp_json` and POSTed to the collector.

Outcome reporting follows the SDK contract (a :class:`SpanExportResult`
return value) and, for callers that want it, a ``result_callback`` invoked
exactly once per batch with ``ExportResult(code=0)`` on success or
``ExportResult(code=1)`` on failure. ``export`` never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, Optional, Sequence

import requests
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from memtrace.exporters.otlp_json import encode_spans

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ExportResultCode(IntEnum):
    SUCCESS = 0
    FAILED = 1


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one export call, as handed to ``result_callback``."""

    code: ExportResultCode
    error: Optional[BaseException] = None


ResultCallback = Callable[[ExportResult], None]


class OTLPJsonHTTPSpanExporter(SpanExporter):
    """Export span batches as OTLP JSON over HTTP.

    Example::

        >>> exporter = OTLPJsonHTTPSpanExporter("http://collector:4318/v1/traces")
        >>> provider.add_span_processor(BatchSpanProcessor(exporter))
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout
        self._session = session or requests.Session()
        self._shutdown = False

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def export(
        self,
        spans: Sequence[ReadableSpan],
        result_callback: Optional[ResultCallback] = None,
    ) -> SpanExportResult:
        """Serialise *spans* and POST them to the collector.

        Any 2xx response counts as success. Non-2xx responses, transport
        errors and serialisation errors are logged and reported as failure.
        """
        result = self._export(spans)
        if result_callback is not None:
            try:
                result_callback(result)
            except Exception as exc:
                logger.error("Export result callback raised: %s", exc, exc_info=True)
        if result.code == ExportResultCode.SUCCESS:
            return SpanExportResult.SUCCESS
        return SpanExportResult.FAILURE

    def _export(self, spans: Sequence[ReadableSpan]) -> ExportResult:
        if self._shutdown:
            logger.warning("Exporter already shut down, dropping %d span(s)", len(spans))
            return ExportResult(ExportResultCode.FAILED)

        if not spans:
            return ExportResult(ExportResultCode.SUCCESS)

        try:
            body = json.dumps(encode_spans(spans)).encode("utf-8")
        except Exception as exc:
            logger.error("Failed to serialise %d span(s): %s", len(spans), exc, exc_info=True)
            return ExportResult(ExportResultCode.FAILED, exc)

        headers = {**self._headers, "Content-Length": str(len(body))}
        try:
            response = self._session.post(
                self._endpoint,
                data=body,
                headers=headers,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.error("Failed to export spans to %s: %s", self._endpoint, exc)
            return ExportResult(ExportResultCode.FAILED, exc)

        if 200 <= response.status_code < 300:
            logger.debug("Exported %d span(s) to %s", len(spans), self._endpoint)
            return ExportResult(ExportResultCode.SUCCESS)

        logger.error(
            "Span export to %s failed: %s %s",
            self._endpoint,
            response.status_code,
            response.text,
        )
        return ExportResult(ExportResultCode.FAILED)

    def shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True
        self._session.close()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
