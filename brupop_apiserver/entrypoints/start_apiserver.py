"""
Starts the brupop API server.

You can do this with `start-apiserver`. Startup runs these steps in order and stops at the first
failure:

    install crypto provider -> start telemetry -> resolve k8s client -> assemble settings -> serve

A failed step is logged and written to the termination log. Telemetry is shut down exactly once,
after the server stops or startup fails.
"""

import asyncio
import sys
from enum import Enum
from typing import Callable, Optional

from brupop_apiserver.api.server import launch_server
from brupop_apiserver.common.settings import assemble_settings
from brupop_apiserver.common.telemetry import (
    TelemetryContext,
    init_metrics,
    init_telemetry_from_env,
    shutdown_telemetry,
)
from brupop_apiserver.core.crypto import install_default_crypto_provider
from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import StartupError
from brupop_apiserver.core.termination import write_termination_log
from brupop_apiserver.infra.k8s_client import ResolvedClient, resolve_incluster_client

logger = make_logger(logger_name())


class BootstrapState(str, Enum):
    INIT = "init"
    CRYPTO_INSTALLED = "crypto_installed"
    TELEMETRY_STARTED = "telemetry_started"
    CLIENT_RESOLVED = "client_resolved"
    SETTINGS_ASSEMBLED = "settings_assembled"
    SERVER_RUNNING = "server_running"
    TERMINATED = "terminated"


class Bootstrap:
    """Sequences API server startup. Every collaborator can be swapped out for tests."""

    def __init__(
        self,
        install_crypto_provider: Callable = install_default_crypto_provider,
        init_telemetry: Callable = init_telemetry_from_env,
        init_metrics: Callable = init_metrics,
        resolve_client: Callable = resolve_incluster_client,
        assemble_settings: Callable = assemble_settings,
        launch_server: Callable = launch_server,
        report_termination: Callable = write_termination_log,
        shutdown_telemetry: Callable = shutdown_telemetry,
    ):
        self._install_crypto_provider = install_crypto_provider
        self._init_telemetry = init_telemetry
        self._init_metrics = init_metrics
        self._resolve_client = resolve_client
        self._assemble_settings = assemble_settings
        self._launch_server = launch_server
        self._report_termination = report_termination
        self._shutdown_telemetry = shutdown_telemetry

        self.state = BootstrapState.INIT
        self.error: Optional[StartupError] = None
        self._telemetry: Optional[TelemetryContext] = None

    def _advance(self, state: BootstrapState) -> None:
        logger.debug(f"Startup state {self.state.value} -> {state.value}")
        self.state = state

    async def run(self) -> Optional[StartupError]:
        """Runs startup to completion and returns the error that stopped it, if any.

        Only a failure to write the termination log escapes as an exception.
        """
        try:
            self.error = await self._run_steps()
            if self.error is not None:
                logger.error(
                    f"brupop apiserver failed: {self.error.describe()}",
                    extra={"error_kind": self.error.kind.value, "state": self.state.value},
                )
                self._report_termination(self.error)
            return self.error
        finally:
            self._shutdown_telemetry(self._telemetry)
            self._advance(BootstrapState.TERMINATED)

    async def _run_steps(self) -> Optional[StartupError]:
        resolved: Optional[ResolvedClient] = None
        try:
            self._install_crypto_provider()
            self._advance(BootstrapState.CRYPTO_INSTALLED)

            self._telemetry = self._init_telemetry()
            metrics_registry = self._init_metrics(self._telemetry)
            self._advance(BootstrapState.TELEMETRY_STARTED)

            resolved = await self._resolve_client()
            self._advance(BootstrapState.CLIENT_RESOLVED)

            settings = self._assemble_settings(resolved.api_client, resolved.namespace)
            self._advance(BootstrapState.SETTINGS_ASSEMBLED)

            self._advance(BootstrapState.SERVER_RUNNING)
            await self._launch_server(settings, resolved.api_client, metrics_registry)
        except StartupError as error:
            return error
        finally:
            if resolved is not None:
                await resolved.api_client.close()
        return None


async def main() -> Optional[StartupError]:
    return await Bootstrap().run()


def entrypoint():
    """Entrypoint for starting the API server. Exits non-zero if startup failed."""
    error = asyncio.run(main())
    if error is not None:
        sys.exit(1)


if __name__ == "__main__":
    entrypoint()
