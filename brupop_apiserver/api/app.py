from brupop_apiserver.common.settings import APIServerSettings
from brupop_apiserver.core.loggers import logger_name, make_logger
from fastapi import FastAPI, Response
from kubernetes_asyncio import client
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

logger = make_logger(logger_name())

healthcheck_routes = ["/healthcheck", "/healthz", "/readyz"]


def healthcheck() -> Response:
    """Returns 200 if the app is healthy."""
    return Response(status_code=200)


def create_app(
    settings: APIServerSettings,
    api_client: client.ApiClient,
    metrics_registry: CollectorRegistry,
) -> FastAPI:
    app = FastAPI(title="brupop-apiserver", version="1.0.0")
    app.state.settings = settings
    app.state.api_client = api_client
    app.state.metrics_registry = metrics_registry

    for endpoint in healthcheck_routes:
        app.get(endpoint)(healthcheck)

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)

    logger.info(f"Created API server app for namespace {settings.namespace}")
    return app
