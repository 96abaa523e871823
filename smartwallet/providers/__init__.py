"""External collaborators: identity provider and smart-account service."""

from .base import (
    IdentityProvider,
    Provider,
    ProviderApiError,
    ProviderError,
    ProviderResponseError,
    ProviderTransportError,
    SmartAccountService,
)
from .enclave import (
    EnclaveApiError,
    EnclaveConfig,
    EnclaveError,
    EnclaveProvider,
    EnclaveResponseError,
    EnclaveTransportError,
    get_enclave_provider,
)
from .identity import TokenVerifier

__all__ = [
    "Provider",
    "IdentityProvider",
    "SmartAccountService",
    "ProviderError",
    "ProviderApiError",
    "ProviderTransportError",
    "ProviderResponseError",
    "EnclaveProvider",
    "EnclaveConfig",
    "EnclaveError",
    "EnclaveApiError",
    "EnclaveTransportError",
    "EnclaveResponseError",
    "get_enclave_provider",
    "TokenVerifier",
]
