"""
Enclave provider for smart accounts and relayed cross-chain transactions.

Handles smart account creation, balance queries, transaction assembly and
submission of signed user operations. Signing itself happens elsewhere; this
provider only moves payloads to and from the service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .base import (
    ProviderApiError,
    ProviderError,
    ProviderResponseError,
    ProviderTransportError,
    SmartAccountService,
)
from ..config import settings

logger = logging.getLogger(__name__)


class EnclaveError(ProviderError):
    """Base Enclave provider error."""
    pass


class EnclaveApiError(EnclaveError, ProviderApiError):
    """API request was answered with a rejection."""
    pass


class EnclaveTransportError(EnclaveError, ProviderTransportError):
    """API request got no response."""
    pass


class EnclaveResponseError(EnclaveError, ProviderResponseError):
    """API request succeeded with an unreadable body."""
    pass


@dataclass
class EnclaveConfig:
    """Enclave provider configuration."""
    api_key: str = ""
    base_url: str = "https://api.enclave.money"
    timeout_s: float = 30.0


class EnclaveProvider(SmartAccountService):
    """
    HTTP client for the smart-account transaction service.

    Usage:
        provider = get_enclave_provider()

        account = await provider.create_smart_account("0x...")
        built = await provider.build_transaction(
            call_details=[{"encodedData": "0x...", "targetContractAddress": "0x...", "value": 0}],
            destination_chain_id=10,
            scw_address=account["wallet"]["scw_address"],
            order_data={"amount": "5000000", "type": "AMOUNT_OUT"},
            session_key_info=None,
            sign_mode="ECDSA",
        )
        # ... sign built["messageToSign"] ...
        receipt = await provider.submit_transaction(signature, built["userOp"], 10, scw, "ECDSA")
    """

    name = "enclave"

    CREATE_ACCOUNT_PATH = "/smart-account"
    BALANCE_PATH = "/smart-balance"
    BUILD_PATH = "/transaction/build"
    SUBMIT_PATH = "/transaction/submit"

    def __init__(
        self,
        config: Optional[EnclaveConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or EnclaveConfig(
            api_key=settings.enclave_api_key,
            base_url=settings.enclave_base_url,
            timeout_s=float(settings.request_timeout_seconds),
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {
                "Content-Type": "application/json",
                "User-Agent": "smartwallet/0.1",
            }
            if self._config.api_key:
                headers["Authorization"] = self._config.api_key

            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers=headers,
                timeout=self._config.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def ready(self) -> bool:
        """Check if provider is configured and ready."""
        return settings.enable_enclave and bool(self._config.base_url)

    async def health_check(self) -> Dict[str, Any]:
        """Check Enclave API health."""
        if not await self.ready():
            return {"status": "disabled", "reason": "Enclave not enabled"}

        try:
            client = self._get_client()
            response = await client.get("/health")
            if response.status_code == 200:
                return {"status": "healthy"}
            return {"status": "degraded", "code": response.status_code}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def create_smart_account(self, owner_address: str) -> Dict[str, Any]:
        """
        Create the smart account owned by an EOA.

        The service derives the address deterministically, so asking again for
        the same owner returns the same account.
        """
        return await self._request(
            "POST",
            self.CREATE_ACCOUNT_PATH,
            json={"eoaAddress": owner_address},
            action="create smart account",
        )

    async def get_smart_balance(self, scw_address: str) -> Dict[str, Any]:
        """Get the net stable-asset balance of a smart account (raw units)."""
        return await self._request(
            "GET",
            self.BALANCE_PATH,
            params={"walletAddress": scw_address},
            action="get smart balance",
        )

    async def build_transaction(
        self,
        call_details: List[Dict[str, Any]],
        destination_chain_id: int,
        scw_address: str,
        order_data: Dict[str, Any],
        session_key_info: Optional[Dict[str, Any]],
        sign_mode: str,
    ) -> Dict[str, Any]:
        """
        Assemble a signable user operation.

        Args:
            call_details: Contract calls [{encodedData, targetContractAddress, value}]
            destination_chain_id: Chain ID where the calls execute
            scw_address: Smart account executing the calls
            order_data: Cross-chain order {amount, type}
            session_key_info: Session key metadata when signing with a session key
            sign_mode: Wire value of the expected signature class

        Returns:
            Dict with ``messageToSign`` and the unsigned ``userOp``
        """
        payload: Dict[str, Any] = {
            "transactionDetails": call_details,
            "network": destination_chain_id,
            "walletAddress": scw_address,
            "orderData": order_data,
            "signMode": sign_mode,
        }
        if session_key_info:
            payload["sessionKeyInfo"] = session_key_info

        return await self._request("POST", self.BUILD_PATH, json=payload, action="build transaction")

    async def submit_transaction(
        self,
        signature: str,
        user_op: Dict[str, Any],
        destination_chain_id: int,
        scw_address: str,
        sign_mode: str,
    ) -> Dict[str, Any]:
        """Submit a signed user operation for relayed execution."""
        payload = {
            "signature": signature,
            "userOp": user_op,
            "network": destination_chain_id,
            "walletAddress": scw_address,
            "signMode": sign_mode,
        }
        data = await self._request("POST", self.SUBMIT_PATH, json=payload, action="submit transaction")
        logger.info(f"Transaction submitted for {scw_address} on chain {destination_chain_id}")
        return data

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not await self.ready():
            raise EnclaveError("Enclave provider not enabled")

        try:
            client = self._get_client()
            response = await client.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            logger.error(f"Enclave {action} got no response: {e}")
            raise EnclaveTransportError(f"{action} request failed: {e}") from e

        if response.status_code >= 400:
            error_text = response.text
            logger.error(f"Enclave {action} failed: {response.status_code} - {error_text}")
            raise EnclaveApiError(
                f"{action} failed: {error_text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EnclaveResponseError(
                f"{action} returned a non-JSON body",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise EnclaveResponseError(
                f"{action} returned an unexpected payload",
                status_code=response.status_code,
            )
        return data

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


# Singleton instance
_enclave_provider: Optional[EnclaveProvider] = None


def get_enclave_provider() -> EnclaveProvider:
    """Get the singleton Enclave provider instance."""
    global _enclave_provider
    if _enclave_provider is None:
        _enclave_provider = EnclaveProvider()
    return _enclave_provider
