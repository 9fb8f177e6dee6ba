from typing import Any, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from brupop_apiserver.common.settings import APIServerSettings
from brupop_apiserver.core.crypto import reset_crypto_provider
from brupop_apiserver.infra.k8s_client import ResolvedClient
from prometheus_client import CollectorRegistry

FAKE_NAMESPACE = "brupop-bottlerocket-aws"


class FakeStartup:
    """Stand-ins for every startup collaborator. Records the order in which they run."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.failures: dict = {}
        self.api_client = AsyncMock()
        self.telemetry = Mock(name="telemetry")
        self.metrics_registry = CollectorRegistry()
        self.settings: Optional[APIServerSettings] = None
        self.launch_args: Optional[tuple] = None
        self.reported: List[Any] = []
        self.shutdowns: List[Any] = []

    def fail(self, step: str, error: Exception) -> None:
        self.failures[step] = error

    def _record(self, step: str) -> None:
        self.calls.append(step)
        if step in self.failures:
            raise self.failures[step]

    def install_crypto_provider(self):
        self._record("install_crypto_provider")

    def init_telemetry(self):
        self._record("init_telemetry")
        return self.telemetry

    def init_metrics(self, telemetry):
        self._record("init_metrics")
        return self.metrics_registry

    async def resolve_client(self):
        self._record("resolve_client")
        return ResolvedClient(api_client=self.api_client, namespace=FAKE_NAMESPACE)

    def assemble_settings(self, api_client, namespace):
        self._record("assemble_settings")
        self.settings = APIServerSettings(
            node_client=Mock(name="node_client"), server_port=8080, namespace=namespace
        )
        return self.settings

    async def launch_server(self, settings, api_client, metrics_registry):
        self._record("launch_server")
        self.launch_args = (settings, api_client, metrics_registry)

    def report_termination(self, error):
        self.reported.append(error)

    def shutdown_telemetry(self, telemetry):
        self.shutdowns.append(telemetry)

    def bootstrap_kwargs(self) -> dict:
        return dict(
            install_crypto_provider=self.install_crypto_provider,
            init_telemetry=self.init_telemetry,
            init_metrics=self.init_metrics,
            resolve_client=self.resolve_client,
            assemble_settings=self.assemble_settings,
            launch_server=self.launch_server,
            report_termination=self.report_termination,
            shutdown_telemetry=self.shutdown_telemetry,
        )


@pytest.fixture
def fake_startup() -> FakeStartup:
    return FakeStartup()


@pytest.fixture
def clean_crypto_provider():
    reset_crypto_provider()
    yield
    reset_crypto_provider()


@pytest.fixture
def fake_settings() -> APIServerSettings:
    return APIServerSettings(
        node_client=Mock(name="node_client"), server_port=8080, namespace=FAKE_NAMESPACE
    )
