"""
Tracing, logging and metrics setup for the API server.

`init_telemetry_from_env` configures logging and installs the global tracer provider,
`init_metrics` installs the global meter provider backed by a Prometheus registry that the
server exposes for scraping. Both hang their providers off a single `TelemetryContext`, which
owns teardown.
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from brupop_apiserver.common.config import TelemetryConfig, TelemetryConfigError
from brupop_apiserver.core.loggers import configure_package_loggers, logger_name, make_logger
from brupop_apiserver.core.startup_errors import MetricsRegistryInitError, StartTelemetryError
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry

logger = make_logger(logger_name())

METRICS_SERVICE_NAME = "apiserver"


@dataclass
class TelemetryContext:
    config: TelemetryConfig
    tracer_provider: TracerProvider
    meter_provider: Optional[MeterProvider] = None
    metrics_registry: Optional[CollectorRegistry] = None
    _shut_down: bool = field(default=False, init=False, repr=False)

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def shutdown(self) -> None:
        """Flushes and shuts down the providers. Only the first call has any effect."""
        if self._shut_down:
            return
        self._shut_down = True
        if self.meter_provider is not None:
            try:
                self.meter_provider.shutdown()
            except Exception:
                logger.exception("Error shutting down meter provider")
        self.tracer_provider.shutdown()
        logger.info("Telemetry shut down")


def shutdown_telemetry(telemetry: Optional[TelemetryContext]) -> None:
    if telemetry is not None:
        telemetry.shutdown()


def init_telemetry_from_env(environ: Optional[Mapping[str, str]] = None) -> TelemetryContext:
    try:
        config = TelemetryConfig.from_env(environ)
    except TelemetryConfigError as exc:
        raise StartTelemetryError(cause=exc) from exc

    configure_package_loggers(config.log_level, config.use_json_logs)

    resource = Resource.create({"service.name": config.service_name})
    tracer_provider = TracerProvider(resource=resource)
    if config.is_export_enabled:
        try:
            exporter = OTLPSpanExporter(
                endpoint=config.otlp_endpoint, insecure=config.use_insecure_export
            )
        except ValueError as exc:
            raise StartTelemetryError(cause=exc) from exc
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info(f"Exporting traces to {config.otlp_endpoint}")
    else:
        logger.info("OTEL_EXPORTER_OTLP_ENDPOINT not set, trace export disabled")
    trace.set_tracer_provider(tracer_provider)

    return TelemetryContext(config=config, tracer_provider=tracer_provider)


def init_metrics(telemetry: TelemetryContext) -> CollectorRegistry:
    """Builds the Prometheus registry and installs the global meter provider that feeds it."""
    registry = CollectorRegistry()
    try:
        prometheus_reader = PrometheusMetricReader()
        # The reader registers its collector with the default registry; scrape ours instead.
        registry.register(prometheus_reader._collector)
    except (AttributeError, ValueError) as exc:
        raise MetricsRegistryInitError(cause=exc) from exc

    readers: List[MetricReader] = [prometheus_reader]
    config = telemetry.config
    if config.is_export_enabled:
        try:
            exporter = OTLPMetricExporter(
                endpoint=config.otlp_endpoint, insecure=config.use_insecure_export
            )
        except ValueError as exc:
            raise MetricsRegistryInitError(cause=exc) from exc
        readers.append(
            PeriodicExportingMetricReader(
                exporter, export_interval_millis=config.metric_export_interval_ms
            )
        )

    meter_provider = MeterProvider(
        resource=Resource.create({"service.name": METRICS_SERVICE_NAME}),
        metric_readers=readers,
    )
    metrics.set_meter_provider(meter_provider)

    telemetry.meter_provider = meter_provider
    telemetry.metrics_registry = registry
    return registry
