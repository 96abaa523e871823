"""
Account session service.

Owns the Session and wires every component to it. Identity changes are
turned into discrete events: establishing a primary address provisions the
smart account and then reads its balance; logout tears everything down and
invalidates whatever is still in flight.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config import settings
from ..core.execution import (
    SigningCoordinator,
    SignMode,
    SubmissionClient,
    SubmissionReceipt,
    TransactionIntentBuilder,
    TransferPipeline,
    TransferRequest,
)
from ..core.session import Session, SessionEvent
from ..core.wallet import (
    Balance,
    BalanceReader,
    IdentityKind,
    IdentityLinkRegistry,
    LinkedIdentity,
    SmartAccount,
    SmartAccountProvisioner,
)
from ..errors import NotAuthenticated, OrchestratorError, Stage
from ..providers.base import IdentityProvider, SmartAccountService
from ..providers.identity import TokenVerifier

logger = logging.getLogger(__name__)


class AccountSessionService:
    """
    Usage:
        service = AccountSessionService(identity_provider, get_enclave_provider())
        await service.start()

        await service.link(IdentityKind.WALLET)     # provisions the smart account
        receipt = await service.transfer("5", "0x...")
        await service.logout()
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        smart_account_service: SmartAccountService,
        session: Optional[Session] = None,
        token_verifier: Optional[TokenVerifier] = None,
    ) -> None:
        self.session = session or Session()
        self._identity = identity_provider
        self.identities = IdentityLinkRegistry(self.session, identity_provider)
        self.provisioner = SmartAccountProvisioner(self.session, smart_account_service)
        self.balances = BalanceReader(self.session, smart_account_service)
        self.signer = SigningCoordinator(self.session, identity_provider)
        self.pipeline = TransferPipeline(
            self.session,
            TransactionIntentBuilder(smart_account_service),
            self.signer,
            SubmissionClient(self.session, smart_account_service),
        )
        self._verifier = token_verifier or TokenVerifier(identity_provider)

    @property
    def smart_account(self) -> Optional[SmartAccount]:
        return self.session.smart_account

    @property
    def balance(self) -> Optional[Balance]:
        return self.balances.current

    async def start(self) -> Session:
        """Adopt the provider's authenticated user, if any, as this process's session."""
        if not await self._identity.ready():
            logger.info("Identity provider not ready; session not started")
            return self.session
        if not await self._identity.authenticated():
            return self.session

        records = await self._identity.get_linked_identities()
        self.session.authenticate(LinkedIdentity.from_dict(record) for record in records)
        if self.session.primary_address is not None:
            await self.handle_event(SessionEvent.PRIMARY_ADDRESS_ESTABLISHED)
        return self.session

    async def sync_authentication(self) -> bool:
        """Tear the session down once the provider reports it logged out. Returns whether still authenticated."""
        if not await self._identity.ready():
            return self.session.authenticated
        if self.session.authenticated and not await self._identity.authenticated():
            logger.info("Identity provider session ended")
            await self.handle_event(SessionEvent.SESSION_TORN_DOWN)
        return self.session.authenticated

    async def handle_event(self, event: SessionEvent) -> None:
        """Drive smart account and balance state from a session event."""
        if event == SessionEvent.PRIMARY_ADDRESS_ESTABLISHED:
            owner = self.session.primary_address
            if owner is None:
                return
            account = await self.provisioner.ensure_account(owner)
            if self.session.smart_account is account:
                await self.balances.refresh(account.scw_address)
        elif event == SessionEvent.PRIMARY_ADDRESS_CLEARED:
            logger.info("Primary address cleared; smart account detached")
        elif event == SessionEvent.SESSION_TORN_DOWN:
            self.session.tear_down()
            self.provisioner.reset()
            self.balances.reset()

    async def link(self, kind: IdentityKind) -> Optional[LinkedIdentity]:
        """
        Link an identity, then provision and read the balance if the primary
        address changed.

        The link is committed before provisioning starts. When the follow-up
        fails (ProvisioningError, BalanceError, ...) the identity stays linked
        and is attached to the raised error as ``context.details["linked_identity"]``.
        """
        before = self.session.primary_address
        identity = await self.identities.link(kind)
        await self._follow_identity_change(before, identity)
        return identity

    async def unlink(self, kind: IdentityKind, external_id: str) -> LinkedIdentity:
        """Unlink an identity; follow-up failures carry it as ``context.details["unlinked_identity"]``."""
        before = self.session.primary_address
        identity = await self.identities.unlink(kind, external_id)
        await self._follow_identity_change(before, identity, key="unlinked_identity")
        return identity

    def can_remove_identity(self) -> bool:
        return self.identities.can_remove()

    async def refresh_balance(self) -> Optional[Balance]:
        account = self.session.smart_account
        if account is None:
            raise NotAuthenticated("No smart account to read a balance for", stage=Stage.BALANCE)
        return await self.balances.refresh(account.scw_address)

    async def sign_message(self, message: str) -> bytes:
        return await self.signer.sign_message(message)

    async def transfer(
        self,
        amount: str,
        recipient: str,
        destination_chain_id: Optional[int] = None,
        sign_mode: Optional[SignMode] = None,
    ) -> SubmissionReceipt:
        return await self.pipeline.execute(
            TransferRequest(amount=amount, recipient=recipient),
            destination_chain_id=destination_chain_id,
            sign_mode=sign_mode or SignMode(settings.default_sign_mode),
        )

    async def verify_token(self) -> Any:
        return await self._verifier.verify()

    async def logout(self) -> None:
        """Log out at the provider; the local session is torn down either way."""
        try:
            await self._identity.logout()
        finally:
            await self.handle_event(SessionEvent.SESSION_TORN_DOWN)

    async def _follow_identity_change(
        self,
        before: Optional[str],
        identity: Optional[LinkedIdentity],
        key: str = "linked_identity",
    ) -> None:
        try:
            await self._primary_address_changed(before)
        except OrchestratorError as e:
            e.context.details.setdefault(key, identity)
            raise

    async def _primary_address_changed(self, before: Optional[str]) -> None:
        after = self.session.primary_address
        if after == before:
            return
        if after is None:
            await self.handle_event(SessionEvent.PRIMARY_ADDRESS_CLEARED)
        else:
            await self.handle_event(SessionEvent.PRIMARY_ADDRESS_ESTABLISHED)
