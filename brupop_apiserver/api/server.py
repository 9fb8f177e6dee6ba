"""
Runs the API server.

`launch_server` is what startup calls; it awaits `run_server` for the lifetime of the process.
"""

import contextlib
import socket
import ssl
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional

import uvicorn
from brupop_apiserver.api.app import create_app
from brupop_apiserver.common.env_vars import get_tls_paths
from brupop_apiserver.common.settings import APIServerSettings
from brupop_apiserver.core.crypto import get_crypto_provider
from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import StartServerError
from kubernetes_asyncio import client
from prometheus_client import CollectorRegistry

logger = make_logger(logger_name())

SERVER_HOST = "0.0.0.0"

# Same idea as the gunicorn worker: accept bursts, shed load in the app rather than the socket.
CONCURRENCY_LIMIT = 10000

RunServer = Callable[[APIServerSettings, client.ApiClient, CollectorRegistry], Awaitable[None]]


class ServerError(Exception):
    """
    Thrown if the API server could not be started or stopped abnormally.
    """


class APIServerConfig(uvicorn.Config):
    """uvicorn config that serves TLS with a context built by the installed crypto provider.

    uvicorn builds its own context from the cert and key paths, which ignores the provider's
    minimum TLS version, so `load` swaps it for `ssl_context` when one is given.
    """

    def __init__(self, app: Any, ssl_context: Optional[ssl.SSLContext] = None, **kwargs: Any):
        super().__init__(app, **kwargs)
        self.ssl_context = ssl_context

    def load(self) -> None:
        super().load()
        if self.ssl_context is not None:
            self.ssl = self.ssl_context


class APIServer(uvicorn.Server):
    """uvicorn server that returns from `serve` on SIGTERM/SIGINT instead of re-raising the signal.

    Startup owns teardown (client close, telemetry shutdown, exit status), which has to run after
    the server stops. A re-raised SIGTERM would kill the process first.
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        with super().capture_signals():
            try:
                yield
            finally:
                for sig in self._captured_signals:
                    logger.info(f"Received signal {sig}, API server shutting down")
                self._captured_signals.clear()


def bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def _tls_kwargs() -> Dict[str, Any]:
    tls_paths = get_tls_paths()
    if tls_paths is None:
        return {}

    provider = get_crypto_provider()
    if provider is None:
        raise ServerError("TLS is configured but no crypto provider is installed")

    cert_path, key_path = tls_paths
    try:
        # Fail here rather than inside uvicorn, which exits the process on bad key material.
        context = provider.create_server_context(certfile=cert_path, keyfile=key_path)
    except (OSError, ssl.SSLError) as exc:
        raise ServerError(f"Unable to load TLS key material: {exc}") from exc

    logger.info(
        f"Serving TLS with the {provider.name} crypto provider, "
        f"minimum version {provider.minimum_version.name}"
    )
    # The paths stay set so uvicorn reports the https scheme; `ssl_context` is what gets served.
    return {"ssl_certfile": cert_path, "ssl_keyfile": key_path, "ssl_context": context}


async def run_server(
    settings: APIServerSettings,
    api_client: client.ApiClient,
    metrics_registry: CollectorRegistry,
) -> None:
    app = create_app(settings, api_client, metrics_registry)
    config = APIServerConfig(
        app,
        host=SERVER_HOST,
        port=settings.server_port,
        log_config=None,
        limit_concurrency=CONCURRENCY_LIMIT,
        **_tls_kwargs(),
    )

    try:
        sock = bind_socket(SERVER_HOST, settings.server_port)
    except OSError as exc:
        raise ServerError(f"Unable to bind {SERVER_HOST}:{settings.server_port}: {exc}") from exc

    server = APIServer(config)
    try:
        await server.serve(sockets=[sock])
    finally:
        sock.close()

    if not server.started:
        raise ServerError("API server exited before it finished starting")
    logger.info("API server stopped")


async def launch_server(
    settings: APIServerSettings,
    api_client: client.ApiClient,
    metrics_registry: CollectorRegistry,
    run_server: RunServer = run_server,
) -> None:
    try:
        await run_server(settings, api_client, metrics_registry)
    except ServerError as exc:
        raise StartServerError(cause=exc) from exc
