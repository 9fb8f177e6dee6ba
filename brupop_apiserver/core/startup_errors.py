"""
Errors that terminate API server startup.

Each fallible startup step raises exactly one of these, wrapping the original failure as `cause`.
The set is closed: nothing outside this module should subclass `StartupError`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence

__all__: Sequence[str] = (
    "StartupErrorKind",
    "StartupError",
    "CryptoConfigureError",
    "MissingEnvVariableError",
    "K8sClientConfigError",
    "K8sClientCreateError",
    "ParsePortError",
    "StartTelemetryError",
    "StartServerError",
    "MetricsRegistryInitError",
    "STARTUP_ERROR_TYPES",
)


class StartupErrorKind(str, Enum):
    CRYPTO_CONFIGURE = "crypto_configure"
    MISSING_ENV_VARIABLE = "missing_env_variable"
    K8S_CLIENT_CONFIG = "k8s_client_config"
    K8S_CLIENT_CREATE = "k8s_client_create"
    PARSE_PORT = "parse_port"
    START_TELEMETRY = "start_telemetry"
    START_SERVER = "start_server"
    METRICS_REGISTRY_INIT = "metrics_registry_init"


class StartupError(Exception):
    """
    Base class for errors that abort API server startup.
    """

    kind: ClassVar[StartupErrorKind]
    cause: Optional[BaseException]

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


@dataclass
class CryptoConfigureError(StartupError):
    """
    Thrown when the default TLS crypto provider cannot be installed.
    """

    kind: ClassVar[StartupErrorKind] = StartupErrorKind.CRYPTO_CONFIGURE

    provider: str
    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Failed to configure tls to use {self.provider} for crypto: '{self.cause}'"


@dataclass
class MissingEnvVariableError(StartupError):
    """
    Thrown when a required environment variable is not set.
    """

    kind: ClassVar[StartupErrorKind] = StartupErrorKind.MISSING_ENV_VARIABLE

    variable: str
    cause: Optional[BaseException] = None

    def describe(self) -> str:
        reason = "environment variable not found" if isinstance(self.cause, KeyError) else self.cause
        return (
            f"Unable to get environment variable '{self.variable}' for API server due to : "
            f"'{reason}'"
        )


@dataclass
class K8sClientConfigError(StartupError):
    kind: ClassVar[StartupErrorKind] = StartupErrorKind.K8S_CLIENT_CONFIG

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Unable to create kubernetes client config: '{self.cause}'"


@dataclass
class K8sClientCreateError(StartupError):
    kind: ClassVar[StartupErrorKind] = StartupErrorKind.K8S_CLIENT_CREATE

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Unable to create client: '{self.cause}'"


@dataclass
class ParsePortError(StartupError):
    """
    Thrown when the internal port is set but is not a valid TCP port number.
    """

    kind: ClassVar[StartupErrorKind] = StartupErrorKind.PARSE_PORT

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Unable to parse internal port: '{self.cause}'"


@dataclass
class StartTelemetryError(StartupError):
    kind: ClassVar[StartupErrorKind] = StartupErrorKind.START_TELEMETRY

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Unable to start API server telemetry: '{self.cause}'"


@dataclass
class StartServerError(StartupError):
    kind: ClassVar[StartupErrorKind] = StartupErrorKind.START_SERVER

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Unable to start API server: '{self.cause}'"


@dataclass
class MetricsRegistryInitError(StartupError):
    kind: ClassVar[StartupErrorKind] = StartupErrorKind.METRICS_REGISTRY_INIT

    cause: Optional[BaseException] = None

    def describe(self) -> str:
        return f"Error creating prometheus registry: '{self.cause}'"


STARTUP_ERROR_TYPES = (
    CryptoConfigureError,
    MissingEnvVariableError,
    K8sClientConfigError,
    K8sClientCreateError,
    ParsePortError,
    StartTelemetryError,
    StartServerError,
    MetricsRegistryInitError,
)
