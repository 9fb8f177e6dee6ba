"""Build a kubernetes client from the in-cluster service account."""

from dataclasses import dataclass
from typing import Mapping, Optional

from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import K8sClientConfigError, K8sClientCreateError
from kubernetes_asyncio import client
from kubernetes_asyncio.config import ConfigException
from kubernetes_asyncio.config.incluster_config import (
    SERVICE_CERT_FILENAME,
    SERVICE_HOST_ENV_NAME,
    SERVICE_PORT_ENV_NAME,
    SERVICE_TOKEN_FILENAME,
    InClusterConfigLoader,
)

logger = make_logger(logger_name())

SERVICE_NAMESPACE_FILENAME = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

# The API server is reached through cluster DNS rather than the KUBERNETES_SERVICE_HOST
# address injected by the kubelet.
INCLUSTER_DNS_HOST = "kubernetes.default.svc"
INCLUSTER_DNS_PORT = "443"
_INCLUSTER_DNS_ENVIRON = {
    SERVICE_HOST_ENV_NAME: INCLUSTER_DNS_HOST,
    SERVICE_PORT_ENV_NAME: INCLUSTER_DNS_PORT,
}


@dataclass(frozen=True)
class ResolvedClient:
    api_client: client.ApiClient
    namespace: str


def load_incluster_dns_config(
    token_filename: str = SERVICE_TOKEN_FILENAME,
    cert_filename: str = SERVICE_CERT_FILENAME,
    environ: Optional[Mapping[str, str]] = None,
) -> client.Configuration:
    configuration = client.Configuration()
    loader = InClusterConfigLoader(
        token_filename=token_filename,
        cert_filename=cert_filename,
        environ=environ if environ is not None else _INCLUSTER_DNS_ENVIRON,
    )
    loader.load_and_set(configuration)
    return configuration


def read_default_namespace(namespace_filename: str = SERVICE_NAMESPACE_FILENAME) -> str:
    with open(namespace_filename, "r", encoding="utf-8") as f:
        namespace = f.read().strip()
    if not namespace:
        raise ConfigException(f"Namespace file {namespace_filename} is empty.")
    return namespace


async def resolve_incluster_client(
    token_filename: str = SERVICE_TOKEN_FILENAME,
    cert_filename: str = SERVICE_CERT_FILENAME,
    namespace_filename: str = SERVICE_NAMESPACE_FILENAME,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolvedClient:
    try:
        configuration = load_incluster_dns_config(token_filename, cert_filename, environ)
        # Use the service account mount to infer the current namespace
        namespace = read_default_namespace(namespace_filename)
    except (ConfigException, OSError) as exc:
        raise K8sClientConfigError(cause=exc) from exc

    try:
        api_client = client.ApiClient(configuration=configuration)
    except (OSError, ValueError) as exc:
        raise K8sClientCreateError(cause=exc) from exc

    logger.info(f"Created kubernetes client for {configuration.host} in namespace {namespace}")
    return ResolvedClient(api_client=api_client, namespace=namespace)
