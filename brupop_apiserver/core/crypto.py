"""Process-wide TLS crypto provider.

The provider must be installed once, before anything that speaks TLS is constructed.
"""

import ssl
from dataclasses import dataclass
from typing import Optional

from brupop_apiserver.core.loggers import logger_name, make_logger
from brupop_apiserver.core.startup_errors import CryptoConfigureError

logger = make_logger(logger_name())

# Mozilla "intermediate" compatible cipher policy for TLS 1.2; TLS 1.3 suites are not configurable.
DEFAULT_CIPHERS = (
    "ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256:"
    "ECDHE-ECDSA-AES256-GCM-SHA384:ECDHE-RSA-AES256-GCM-SHA384:"
    "ECDHE-ECDSA-CHACHA20-POLY1305:ECDHE-RSA-CHACHA20-POLY1305"
)


class CryptoProviderError(Exception):
    pass


@dataclass(frozen=True)
class CryptoProvider:
    name: str
    minimum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2
    ciphers: str = DEFAULT_CIPHERS

    def create_server_context(
        self, certfile: str, keyfile: str, cafile: Optional[str] = None
    ) -> ssl.SSLContext:
        context = self._new_context(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(certfile=certfile, keyfile=keyfile)
        if cafile:
            context.load_verify_locations(cafile=cafile)
        return context

    def create_client_context(self, cafile: Optional[str] = None) -> ssl.SSLContext:
        context = self._new_context(ssl.PROTOCOL_TLS_CLIENT)
        if cafile:
            context.load_verify_locations(cafile=cafile)
        else:
            context.load_default_certs()
        return context

    def _new_context(self, protocol: int) -> ssl.SSLContext:
        context = ssl.SSLContext(protocol)
        context.minimum_version = self.minimum_version
        context.set_ciphers(self.ciphers)
        return context


DEFAULT_CRYPTO_PROVIDER = CryptoProvider(name="openssl")

_installed_provider: Optional[CryptoProvider] = None


def _check_backend(provider: CryptoProvider) -> None:
    if provider.minimum_version == ssl.TLSVersion.TLSv1_3 and not ssl.HAS_TLSv1_3:
        raise CryptoProviderError(f"{ssl.OPENSSL_VERSION} does not support TLSv1.3")
    if provider.minimum_version == ssl.TLSVersion.TLSv1_2 and not ssl.HAS_TLSv1_2:
        raise CryptoProviderError(f"{ssl.OPENSSL_VERSION} does not support TLSv1.2")
    try:
        # Validates the cipher policy against the linked OpenSSL.
        provider.create_client_context()
    except (ssl.SSLError, ValueError) as exc:
        raise CryptoProviderError(str(exc)) from exc


def install_default_crypto_provider(
    provider: CryptoProvider = DEFAULT_CRYPTO_PROVIDER,
) -> CryptoProvider:
    """Installs `provider` as the process-wide TLS backend.

    Installing the provider that is already installed is a no-op. Installing a different
    one raises `CryptoConfigureError`, as does a backend that cannot honor the provider's policy.
    """
    global _installed_provider
    if _installed_provider is not None:
        if _installed_provider == provider:
            return _installed_provider
        cause = CryptoProviderError(
            f"crypto provider '{_installed_provider.name}' is already installed"
        )
        raise CryptoConfigureError(provider=provider.name, cause=cause) from cause

    try:
        _check_backend(provider)
    except CryptoProviderError as exc:
        raise CryptoConfigureError(provider=provider.name, cause=exc) from exc

    _installed_provider = provider
    logger.info(f"Installed {provider.name} crypto provider ({ssl.OPENSSL_VERSION})")
    return provider


def get_crypto_provider() -> Optional[CryptoProvider]:
    return _installed_provider


def reset_crypto_provider() -> None:
    """Forgets the installed provider. Only meant for tests."""
    global _installed_provider
    _installed_provider = None
