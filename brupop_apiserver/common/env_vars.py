"""
A place for defining and referencing all environment variables used by the API server.
"""

import os
from typing import Optional, Sequence

__all__: Sequence[str] = (
    "APISERVER_INTERNAL_PORT_ENV_VAR",
    "APISERVER_TLS_CERT_PATH_ENV_VAR",
    "APISERVER_TLS_KEY_PATH_ENV_VAR",
    "DEFAULT_TERMINATION_LOG",
    "TERMINATION_LOG_ENV_VAR",
    "get_termination_log_path",
    "get_tls_paths",
)

TERMINATION_LOG_ENV_VAR = "TERMINATION_LOG"

DEFAULT_TERMINATION_LOG = "/dev/termination-log"
"""Kubernetes reads this file by default to surface termination-causing errors.
"""

APISERVER_INTERNAL_PORT_ENV_VAR = "APISERVER_INTERNAL_PORT"
"""Port the API server binds to. Required.
"""

APISERVER_TLS_CERT_PATH_ENV_VAR = "APISERVER_TLS_CERT_PATH"
APISERVER_TLS_KEY_PATH_ENV_VAR = "APISERVER_TLS_KEY_PATH"
"""When both are set, the API server serves TLS using the installed crypto provider.
"""


def get_termination_log_path() -> str:
    return os.environ.get(TERMINATION_LOG_ENV_VAR, DEFAULT_TERMINATION_LOG)


def get_tls_paths() -> Optional[tuple]:
    """Returns (cert_path, key_path) when TLS serving is configured, otherwise None."""
    cert_path = os.environ.get(APISERVER_TLS_CERT_PATH_ENV_VAR)
    key_path = os.environ.get(APISERVER_TLS_KEY_PATH_ENV_VAR)
    if cert_path and key_path:
        return cert_path, key_path
    return None
