# Runtime settings for the API server, assembled once at startup.

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from brupop_apiserver.common.env_vars import APISERVER_INTERNAL_PORT_ENV_VAR
from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import MissingEnvVariableError, ParsePortError
from brupop_apiserver.infra.node_client import K8SBottlerocketShadowClient
from kubernetes_asyncio import client

logger = make_logger(logger_name())

MIN_PORT = 1
MAX_PORT = 65535

# ASCII digits with an optional sign; no underscores or other Unicode digits.
PORT_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class APIServerSettings:
    node_client: K8SBottlerocketShadowClient
    server_port: int
    namespace: str


def parse_port(value: str) -> int:
    value = value.strip()
    if not PORT_PATTERN.fullmatch(value):
        raise ValueError(f"invalid digit found in {value!r}")
    port = int(value)
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValueError(f"port {port} is out of range {MIN_PORT}-{MAX_PORT}")
    return port


def read_internal_port(environ: Optional[Mapping[str, str]] = None) -> int:
    env = os.environ if environ is None else environ
    try:
        value = env[APISERVER_INTERNAL_PORT_ENV_VAR]
    except KeyError as exc:
        raise MissingEnvVariableError(variable=APISERVER_INTERNAL_PORT_ENV_VAR, cause=exc) from exc

    try:
        return parse_port(value)
    except ValueError as exc:
        raise ParsePortError(cause=exc) from exc


def assemble_settings(
    api_client: client.ApiClient,
    namespace: str,
    environ: Optional[Mapping[str, str]] = None,
) -> APIServerSettings:
    internal_port = read_internal_port(environ)
    logger.info(f"Started API server with port {internal_port}")

    return APIServerSettings(
        node_client=K8SBottlerocketShadowClient(api_client, namespace),
        server_port=internal_port,
        namespace=namespace,
    )
