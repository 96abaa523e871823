"""
Shared fakes for the identity provider and the smart-account service.

Both record every external call in ``calls`` so tests can assert on call
counts and ordering. ``errors`` maps a method name to the exception it should
raise and ``gates`` maps a method name to an asyncio.Event the call waits on,
which lets a test hold a call suspended.
"""

from typing import Any, Dict, List, Optional

import pytest

from smartwallet.core.session import Session
from smartwallet.core.wallet import IdentityKind, LinkedIdentity
from smartwallet.providers.base import IdentityProvider, SmartAccountService

OWNER = "0x1111111111111111111111111111111111111111"
SCW = "0x5555555555555555555555555555555555555555"


class _Recording:
    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.gates: Dict[str, Any] = {}

    async def _call(self, method: str, *args: Any, result: Any = None) -> Any:
        self.calls.append((method, *args))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(method)
        if error is not None:
            raise error
        return result

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeIdentityProvider(_Recording, IdentityProvider):
    name = "fake-identity"

    def __init__(self) -> None:
        super().__init__()
        self.is_ready = True
        self.is_authenticated = True
        self.identities: List[Dict[str, str]] = []
        self.access_token: Optional[str] = "access-token"
        self.signature = "0x" + "11" * 65
        self.link_results: Dict[str, Optional[str]] = {
            "link_email": "user@example.com",
            "link_phone": "+15555550100",
            "link_wallet": OWNER,
            "link_google": "google-subject",
            "link_twitter": "twitter-subject",
            "link_discord": "discord-subject",
        }

    async def ready(self) -> bool:
        return self.is_ready

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def authenticated(self) -> bool:
        return self.is_authenticated

    async def get_linked_identities(self) -> List[Dict[str, str]]:
        return list(self.identities)

    async def get_access_token(self) -> Optional[str]:
        return self.access_token

    async def logout(self) -> None:
        await self._call("logout")
        self.is_authenticated = False

    async def sign_message(self, payload: Dict[str, str]) -> Dict[str, str]:
        return await self._call("sign_message", payload["message"], result={"signature": self.signature})

    async def _link(self, method: str) -> Optional[str]:
        return await self._call(method, result=self.link_results.get(method))

    async def link_email(self) -> Optional[str]:
        return await self._link("link_email")

    async def unlink_email(self, address: str) -> None:
        await self._call("unlink_email", address)

    async def link_phone(self) -> Optional[str]:
        return await self._link("link_phone")

    async def unlink_phone(self, number: str) -> None:
        await self._call("unlink_phone", number)

    async def link_wallet(self) -> Optional[str]:
        return await self._link("link_wallet")

    async def unlink_wallet(self, address: str) -> None:
        await self._call("unlink_wallet", address)

    async def link_google(self) -> Optional[str]:
        return await self._link("link_google")

    async def unlink_google(self, subject: str) -> None:
        await self._call("unlink_google", subject)

    async def link_twitter(self) -> Optional[str]:
        return await self._link("link_twitter")

    async def unlink_twitter(self, subject: str) -> None:
        await self._call("unlink_twitter", subject)

    async def link_discord(self) -> Optional[str]:
        return await self._link("link_discord")

    async def unlink_discord(self, subject: str) -> None:
        await self._call("unlink_discord", subject)


class FakeSmartAccountService(_Recording, SmartAccountService):
    name = "fake-enclave"

    def __init__(self) -> None:
        super().__init__()
        self.scw_address = SCW
        self.net_balance: Any = "25000000"
        self.message_to_sign = "0x" + "ab" * 32
        self.receipt: Dict[str, Any] = {"status": "submitted", "userOpHash": "0x" + "cd" * 32}
        self.account_response: Optional[Dict[str, Any]] = None
        self.build_response: Optional[Dict[str, Any]] = None

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

    async def create_smart_account(self, owner_address: str) -> Dict[str, Any]:
        response = self.account_response or {
            "wallet": {"scw_address": self.scw_address, "eoa_address": owner_address},
        }
        return await self._call("create_smart_account", owner_address, result=response)

    async def get_smart_balance(self, scw_address: str) -> Dict[str, Any]:
        return await self._call("get_smart_balance", scw_address, result={"netBalance": self.net_balance})

    async def build_transaction(
        self,
        call_details: List[Dict[str, Any]],
        destination_chain_id: int,
        scw_address: str,
        order_data: Dict[str, Any],
        session_key_info: Optional[Dict[str, Any]],
        sign_mode: str,
    ) -> Dict[str, Any]:
        response = self.build_response or {
            "messageToSign": self.message_to_sign,
            "userOp": {"sender": scw_address, "nonce": "0x1", "callData": call_details[0]["encodedData"]},
        }
        return await self._call(
            "build_transaction",
            call_details,
            destination_chain_id,
            scw_address,
            order_data,
            session_key_info,
            sign_mode,
            result=response,
        )

    async def submit_transaction(
        self,
        signature: str,
        user_op: Dict[str, Any],
        destination_chain_id: int,
        scw_address: str,
        sign_mode: str,
    ) -> Dict[str, Any]:
        return await self._call(
            "submit_transaction",
            signature,
            user_op,
            destination_chain_id,
            scw_address,
            sign_mode,
            result=self.receipt,
        )


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def account_service() -> FakeSmartAccountService:
    return FakeSmartAccountService()


@pytest.fixture
def session() -> Session:
    """Authenticated session with a wallet and an email linked."""
    session = Session()
    session.authenticate([
        LinkedIdentity(IdentityKind.WALLET, OWNER),
        LinkedIdentity(IdentityKind.EMAIL, "user@example.com"),
    ])
    return session


@pytest.fixture
def session_key_signer() -> FakeIdentityProvider:
    signer = FakeIdentityProvider()
    signer.name = "fake-session-key"
    signer.signature = "0x" + "22" * 65
    return signer
