import logging

import pytest
from brupop_apiserver.common.config import TelemetryConfig, TelemetryConfigError


def test_defaults_outside_cluster():
    config = TelemetryConfig.from_env({})

    assert config.log_level == logging.INFO
    assert config.logging_formatter == "text"
    assert not config.use_json_logs
    assert config.service_name == "apiserver"
    assert config.metric_export_interval_ms == 5000
    assert not config.is_export_enabled


def test_json_logs_by_default_in_cluster():
    config = TelemetryConfig.from_env({"KUBERNETES_SERVICE_HOST": "10.0.0.1"})

    assert config.use_json_logs


def test_custom_values():
    config = TelemetryConfig.from_env(
        {
            "LOG_LEVEL": "debug",
            "LOGGING_FORMATTER": "JSON",
            "OTEL_EXPORTER_OTLP_ENDPOINT": "http://collector:4317",
            "OTEL_SERVICE_NAME": "brupop-apiserver",
            "OTEL_METRIC_EXPORT_INTERVAL_MS": "1000",
        }
    )

    assert config.log_level == logging.DEBUG
    assert config.use_json_logs
    assert config.is_export_enabled
    assert config.use_insecure_export
    assert config.service_name == "brupop-apiserver"
    assert config.metric_export_interval_ms == 1000


@pytest.mark.parametrize(
    "env",
    [
        {"LOG_LEVEL": "LOUD"},
        {"LOGGING_FORMATTER": "pretty"},
        {"OTEL_METRIC_EXPORT_INTERVAL_MS": "soon"},
        {"OTEL_METRIC_EXPORT_INTERVAL_MS": "0"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(TelemetryConfigError):
        TelemetryConfig.from_env(env)


def test_dd_agent_host_fallback():
    config = TelemetryConfig.from_env({"DD_AGENT_HOST": "10.1.2.3"})
    assert config.otlp_endpoint == "http://10.1.2.3:4317"

    config = TelemetryConfig.from_env({"DD_AGENT_HOST": "fd00::1"})
    assert config.otlp_endpoint == "http://[fd00::1]:4317"


def test_explicit_endpoint_wins_over_dd_agent_host():
    config = TelemetryConfig.from_env(
        {"OTEL_EXPORTER_OTLP_ENDPOINT": "https://collector:4317", "DD_AGENT_HOST": "10.1.2.3"}
    )

    assert config.otlp_endpoint == "https://collector:4317"
    assert not config.use_insecure_export
