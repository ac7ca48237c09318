# SPDX-FileCopyrightText: 2026 The Memtrace Authors
# SPDX-License-Identifier: Apache-2.0

"""Configuration for memtrace tracing.

Configuration precedence (highest to lowest):
1. Code arguments (explicit values passed to TracingConfig)
2. YAML config file (memtrace.yaml or specified path); values set in the
   file are handed to TracingConfig as explicit arguments
3. Environment variables (MEMTRACE_*, then OTEL_*)
4. Built-in defaults

Environment variables still reach a YAML file through ``${VAR}`` and
``${VAR:-default}`` placeholders, which are expanded before parsing.

Batch settings default to a short export interval so spans show up in the
collector while a workflow is still running.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "MEMTRACE_CONFIG_FILE"
CONFIG_FILE_CANDIDATES = (
    "memtrace.yaml",
    "memtrace.yml",
    "config/memtrace.yaml",
    "config/memtrace.yml",
)

_PLACEHOLDER_RE = re.compile(r"\$\{(?P<name>[A-Za-z_]\w*)(?::-(?P<default>[^}]*))?\}")

DEFAULT_ENDPOINT = "http://localhost:4318/v1/traces"
DEFAULT_PROTOCOL = "http"
DEFAULT_SERVICE_NAME = "n8n-memory-node"
DEFAULT_SERVICE_VERSION = "1.0.0"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_MAX_QUEUE_SIZE = 100
DEFAULT_SCHEDULE_DELAY_MILLIS = 500

_TRUTHY = ("true", "1", "yes", "on")


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in _TRUTHY


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, value)
        return None


@dataclass
class TracingConfig:
    """Tracing configuration for the memory node.

    Example::

        >>> config = TracingConfig(
        ...     enabled=True,
        ...     endpoint="http://jaeger:4318/v1/traces",
        ...     protocol="http",
        ... )

        >>> # Or load from YAML
        >>> config = TracingConfig.from_yaml("config/memtrace.yaml")
    """

    enabled: Optional[bool] = None
    endpoint: Optional[str] = None
    protocol: Optional[str] = None

    # Service identification
    service_name: Optional[str] = None
    service_version: Optional[str] = None
    deployment_environment: Optional[str] = None

    # Extra headers sent with every export request (http/grpc only)
    otlp_headers: Optional[Dict[str, str]] = None

    # Span batching
    max_queue_size: Optional[int] = None
    max_export_batch_size: int = 10
    schedule_delay_millis: Optional[int] = None
    export_timeout_millis: int = 30000

    # Config file path (for tracking where config was loaded from)
    _config_file: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Apply environment variable defaults."""
        if self.enabled is None:
            env_enabled = _env_bool("MEMTRACE_ENABLED")
            self.enabled = env_enabled if env_enabled is not None else False

        if self.endpoint is None:
            self.endpoint = (
                os.getenv("MEMTRACE_ENDPOINT")
                or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
                or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
                or DEFAULT_ENDPOINT
            )

        if self.protocol is None:
            self.protocol = os.getenv("MEMTRACE_PROTOCOL", DEFAULT_PROTOCOL)

        if self.service_name is None:
            self.service_name = os.getenv("MEMTRACE_SERVICE_NAME") or os.getenv(
                "OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME
            )

        if self.service_version is None:
            self.service_version = os.getenv("OTEL_SERVICE_VERSION", DEFAULT_SERVICE_VERSION)

        if self.deployment_environment is None:
            self.deployment_environment = (
                os.getenv("MEMTRACE_ENVIRONMENT")
                or os.getenv("OTEL_DEPLOYMENT_ENVIRONMENT")
                or DEFAULT_ENVIRONMENT
            )

        if self.max_queue_size is None:
            env_queue = _env_int("MEMTRACE_MAX_QUEUE_SIZE")
            self.max_queue_size = env_queue if env_queue is not None else DEFAULT_MAX_QUEUE_SIZE

        if self.schedule_delay_millis is None:
            env_delay = _env_int("MEMTRACE_SCHEDULE_DELAY_MS")
            self.schedule_delay_millis = env_delay if env_delay is not None else DEFAULT_SCHEDULE_DELAY_MILLIS

    # ------------------------------------------------------------------
    # YAML loading
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> TracingConfig:
        """Build a config from a YAML file with ``tracing``, ``service`` and
        ``export`` sections.

        ``${VAR}`` placeholders are expanded from the environment first.
        Settings the file leaves out fall back to env vars and defaults.

        Raises:
            FileNotFoundError: If *path* is missing or does not exist.
            ValueError: If the file is not valid YAML or not a mapping.
            ImportError: If PyYAML is not installed.
        """
        if not path or not Path(path).is_file():
            raise FileNotFoundError(f"Tracing config file not found: {path!r}")

        try:
            import yaml  # type: ignore[import-untyped]
        except ImportError as err:
            raise ImportError("Reading memtrace.yaml needs PyYAML: pip install memtrace[yaml]") from err

        text = _interpolate_env_vars(Path(path).read_text(encoding="utf-8"))
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")

        return cls.from_dict(data, config_file=str(path))

    @classmethod
    def from_file_or_env(cls, path: Optional[str] = None) -> TracingConfig:
        """Use the first config file found, else configure from env vars alone.

        Files are tried in this order: *path*, ``$MEMTRACE_CONFIG_FILE``, then
        :data:`CONFIG_FILE_CANDIDATES` relative to the working directory.
        """
        found = next((p for p in _config_file_candidates(path) if p.is_file()), None)
        if found is None:
            logger.debug("No memtrace config file found; using env vars")
            return cls()

        logger.info("Loading tracing config from %s", found)
        return cls.from_yaml(str(found))

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        config_file: Optional[str] = None,
    ) -> TracingConfig:
        """Create config from a nested dictionary (parsed YAML)."""
        tracing = data.get("tracing") or {}
        service = data.get("service") or {}
        export = data.get("export") or {}

        return cls(
            enabled=tracing.get("enabled"),
            endpoint=tracing.get("endpoint"),
            protocol=tracing.get("protocol"),
            otlp_headers=tracing.get("headers"),
            service_name=service.get("name"),
            service_version=service.get("version"),
            deployment_environment=service.get("environment"),
            max_queue_size=export.get("queue_size"),
            max_export_batch_size=export.get("batch_size", 10),
            schedule_delay_millis=export.get("delay_ms"),
            export_timeout_millis=export.get("timeout_ms", 30000),
            _config_file=config_file,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "tracing": {
                "enabled": self.enabled,
                "endpoint": self.endpoint,
                "protocol": self.protocol,
                "headers": self.otlp_headers,
            },
            "service": {
                "name": self.service_name,
                "version": self.service_version,
                "environment": self.deployment_environment,
            },
            "export": {
                "queue_size": self.max_queue_size,
                "batch_size": self.max_export_batch_size,
                "delay_ms": self.schedule_delay_millis,
                "timeout_ms": self.export_timeout_millis,
            },
        }


def _config_file_candidates(path: Optional[str]) -> Iterator[Path]:
    if path:
        yield Path(path)
    env_path = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_path:
        yield Path(env_path)
    for name in CONFIG_FILE_CANDIDATES:
        yield Path(name)


def _expand_placeholder(match: re.Match) -> str:  # type: ignore[type-arg]
    # unset with no default: leave the placeholder as written
    fallback = match.group("default")
    if fallback is None:
        fallback = match.group(0)
    return os.environ.get(match.group("name"), fallback)


def _interpolate_env_vars(content: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` placeholders in *content*."""
    return _PLACEHOLDER_RE.sub(_expand_placeholder, content)
