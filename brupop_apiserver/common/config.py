"""
Telemetry configuration for the API server.

Environment variables for configuration:
- LOG_LEVEL: Level of the package loggers (default: "INFO")
- LOGGING_FORMATTER: "json" or "text" (default: "json" inside a cluster, "text" otherwise)
- OTEL_EXPORTER_OTLP_ENDPOINT: OTLP gRPC endpoint for trace export (default: "", export disabled)
- OTEL_SERVICE_NAME: Service name for traces (default: "apiserver")
- OTEL_METRIC_EXPORT_INTERVAL_MS: Metric export interval (default: 5000)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SERVICE_NAME = "apiserver"
LOGGING_FORMATTERS = ("json", "text")


class TelemetryConfigError(Exception):
    """
    Thrown when the telemetry environment variables hold values we can't use.
    """


@dataclass(frozen=True)
class TelemetryConfig:
    """Configuration for logging and OpenTelemetry export."""

    log_level: int = logging.INFO
    logging_formatter: str = "text"
    otlp_endpoint: str = ""
    service_name: str = DEFAULT_SERVICE_NAME
    metric_export_interval_ms: int = 5000

    @property
    def is_export_enabled(self) -> bool:
        """Check if trace export is enabled (endpoint is configured)."""
        return bool(self.otlp_endpoint)

    @property
    def use_json_logs(self) -> bool:
        return self.logging_formatter == "json"

    @property
    def use_insecure_export(self) -> bool:
        return self.otlp_endpoint.startswith("http://")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TelemetryConfig":
        env = os.environ if environ is None else environ
        default_formatter = "json" if env.get("KUBERNETES_SERVICE_HOST") else "text"
        return cls(
            log_level=_parse_log_level(env.get("LOG_LEVEL", "INFO")),
            logging_formatter=_parse_formatter(env.get("LOGGING_FORMATTER", default_formatter)),
            otlp_endpoint=_resolve_otlp_endpoint(env),
            service_name=env.get("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            metric_export_interval_ms=_parse_interval(
                env.get("OTEL_METRIC_EXPORT_INTERVAL_MS", "5000")
            ),
        )


def _parse_log_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise TelemetryConfigError(f"Unknown log level '{value}'")
    return level


def _parse_formatter(value: str) -> str:
    formatter = value.strip().lower()
    if formatter not in LOGGING_FORMATTERS:
        raise TelemetryConfigError(
            f"Unknown logging formatter '{value}', expected one of {', '.join(LOGGING_FORMATTERS)}"
        )
    return formatter


def _parse_interval(value: str) -> int:
    try:
        interval = int(value)
    except ValueError as exc:
        raise TelemetryConfigError(f"Invalid metric export interval '{value}'") from exc
    if interval <= 0:
        raise TelemetryConfigError(f"Metric export interval must be positive, got {interval}")
    return interval


def _resolve_otlp_endpoint(env: Mapping[str, str]) -> str:
    endpoint = env.get("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    if endpoint:
        return endpoint
    # Fallback: construct from DD_AGENT_HOST (Datadog Agent's OTLP receiver)
    dd_agent_host = env.get("DD_AGENT_HOST")
    if not dd_agent_host:
        return ""
    # Handle IPv6 addresses (need brackets)
    if ":" in dd_agent_host and not dd_agent_host.startswith("["):
        return f"http://[{dd_agent_host}]:4317"
    return f"http://{dd_agent_host}:4317"
