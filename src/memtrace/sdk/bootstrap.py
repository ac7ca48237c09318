# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Process-wide tracer lifecycle.

Holds the single :class:`MemoryTracer` a process uses, so call sites never
touch provider-level state:

1. ``enable()`` builds the tracer from code arguments, YAML or env vars
2. ``get_tracer()`` hands out the tracer (a disabled one until enabled)
3. ``disable()`` flushes and shuts it down; safe to call at any time

Usage::

    from memtrace import enable, get_tracer
    enable(endpoint="http://jaeger:4318", protocol="http")
    span = get_tracer().start_span("memory.store")
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from memtrace.sdk.config import TracingConfig
from memtrace.sdk.tracer import MemoryTracer

logger = logging.getLogger(__name__)

_lock = threading.RLock()
_tracer = MemoryTracer()
_current_config: Optional[TracingConfig] = None


def enable(
    config: Optional[TracingConfig] = None,
    *,
    endpoint: Optional[str] = None,
    protocol: Optional[str] = None,
    service_name: Optional[str] = None,
    config_file: Optional[str] = None,
    exporter: Any = None,
) -> bool:
    """Enable process-wide tracing.

    Args:
        config: Full :class:`TracingConfig` (overrides individual params).
        endpoint: Collector endpoint.
        protocol: ``http``, ``grpc`` or ``udp``.
        service_name: Service name.
        config_file: Path to YAML config file.
        exporter: Span exporter to use instead of the protocol default.

    Returns:
        ``True`` if tracing is active, ``False`` if it stayed disabled.
    """
    global _current_config

    with _lock:
        if _tracer.is_enabled():
            logger.warning("memtrace already enabled")
            return True

        if config is not None:
            cfg = config
        elif config_file is not None:
            cfg = TracingConfig.from_yaml(config_file)
        else:
            cfg = TracingConfig.from_file_or_env()

        # Calling enable() is an explicit opt-in
        if config is None:
            cfg.enabled = True
        if endpoint is not None:
            cfg.endpoint = endpoint
        if protocol is not None:
            cfg.protocol = protocol
        if service_name is not None:
            cfg.service_name = service_name

        _current_config = cfg
        return _tracer.initialize(cfg, exporter=exporter)


def get_tracer() -> MemoryTracer:
    """Get the process-wide tracer."""
    return _tracer


def is_enabled() -> bool:
    return _tracer.is_enabled()


def get_config() -> Optional[TracingConfig]:
    """Get the configuration passed to the last ``enable()``."""
    return _current_config


def flush(timeout_millis: int = 30000) -> bool:
    return _tracer.flush(timeout_millis)


def disable() -> None:
    """Flush and shut down process-wide tracing.

    Call on application shutdown for clean exit. ``enable()`` may be called
    again afterwards.
    """
    global _tracer, _current_config

    with _lock:
        _tracer.shutdown()
        _tracer = MemoryTracer()
        _current_config = None
