from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ProviderError(Exception):
    """Base error raised by external collaborators."""
    pass


class ProviderApiError(ProviderError):
    """The collaborator answered and rejected the request."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderTransportError(ProviderError):
    """The request got no response (timeout, dropped connection)."""
    pass


class ProviderResponseError(ProviderError):
    """The request succeeded but the response body could not be read."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class IdentityProvider(Provider):
    """
    Identity/auth provider that links external identities and signs messages.

    ``link_*`` methods run the provider's interactive link flow and return the
    external id of the newly linked identity, or ``None`` if the user cancelled.
    ``unlink_*`` methods return once the provider has confirmed the removal.
    """

    @abstractmethod
    async def authenticated(self) -> bool:
        """Whether the provider holds an authenticated user session"""
        pass

    @abstractmethod
    async def get_linked_identities(self) -> List[Dict[str, str]]:
        """Linked identities as ``[{"kind": ..., "externalId": ...}]``"""
        pass

    @abstractmethod
    async def get_access_token(self) -> Optional[str]:
        """Bearer token for server-side verification"""
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass

    @abstractmethod
    async def sign_message(self, payload: Dict[str, str]) -> Dict[str, str]:
        """Sign ``{"message": ...}`` with the user's wallet, returning ``{"signature": ...}``"""
        pass

    @abstractmethod
    async def link_email(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_email(self, address: str) -> None:
        pass

    @abstractmethod
    async def link_phone(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_phone(self, number: str) -> None:
        pass

    @abstractmethod
    async def link_wallet(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_wallet(self, address: str) -> None:
        pass

    @abstractmethod
    async def link_google(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_google(self, subject: str) -> None:
        pass

    @abstractmethod
    async def link_twitter(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_twitter(self, subject: str) -> None:
        pass

    @abstractmethod
    async def link_discord(self) -> Optional[str]:
        pass

    @abstractmethod
    async def unlink_discord(self, subject: str) -> None:
        pass


class SmartAccountService(Provider):
    """Smart-account provisioning, balance and transaction relay service"""

    @abstractmethod
    async def create_smart_account(self, owner_address: str) -> Dict[str, Any]:
        """Create (or re-derive) the smart account owned by ``owner_address``"""
        pass

    @abstractmethod
    async def get_smart_balance(self, scw_address: str) -> Dict[str, Any]:
        """Return ``{"netBalance": "<raw units>"}`` for a smart account"""
        pass

    @abstractmethod
    async def build_transaction(
        self,
        call_details: List[Dict[str, Any]],
        destination_chain_id: int,
        scw_address: str,
        order_data: Dict[str, Any],
        session_key_info: Optional[Dict[str, Any]],
        sign_mode: str,
    ) -> Dict[str, Any]:
        """Assemble ``{"messageToSign": ..., "userOp": ...}`` for the given calls"""
        pass

    @abstractmethod
    async def submit_transaction(
        self,
        signature: str,
        user_op: Dict[str, Any],
        destination_chain_id: int,
        scw_address: str,
        sign_mode: str,
    ) -> Dict[str, Any]:
        """Relay a signed user operation for execution"""
        pass
