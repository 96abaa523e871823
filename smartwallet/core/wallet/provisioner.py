"""
Smart account provisioner.

Derives and caches one smart account per owner address. Concurrent callers
asking for the same owner share a single outstanding provisioning request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Optional, Set

from pydantic import ValidationError as PayloadValidationError

from ...errors import ProvisioningError, Stage
from ...providers.base import ProviderError, SmartAccountService
from ...services.address import address_key, is_valid_evm_address
from .models import ProvisioningState, SmartAccount, SmartAccountPayload

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class SmartAccountProvisioner:
    """
    Per-owner state machine:

        UNINITIALIZED -> PROVISIONING -> READY
        UNINITIALIZED -> PROVISIONING -> FAILED -> UNINITIALIZED

    A FAILED owner is reset to UNINITIALIZED by the next ``ensure_account``
    call. Nothing retries automatically; the service may have partially
    succeeded, so the caller decides.
    """

    TRANSITIONS: Dict[ProvisioningState, Set[ProvisioningState]] = {
        ProvisioningState.UNINITIALIZED: {ProvisioningState.PROVISIONING},
        ProvisioningState.PROVISIONING: {
            ProvisioningState.READY,
            ProvisioningState.FAILED,
            ProvisioningState.UNINITIALIZED,  # discarded after teardown
        },
        ProvisioningState.FAILED: {ProvisioningState.UNINITIALIZED},
        ProvisioningState.READY: set(),
    }

    def __init__(self, session: Session, service: SmartAccountService) -> None:
        self._session = session
        self._service = service
        self._accounts: Dict[str, SmartAccount] = {}
        self._states: Dict[str, ProvisioningState] = {}
        self._in_flight: Dict[str, "asyncio.Future[SmartAccount]"] = {}

    def state(self, owner_address: str) -> ProvisioningState:
        return self._states.get(address_key(owner_address), ProvisioningState.UNINITIALIZED)

    def cached(self, owner_address: str) -> Optional[SmartAccount]:
        return self._accounts.get(address_key(owner_address))

    async def ensure_account(self, owner_address: str) -> SmartAccount:
        """
        Return the smart account for ``owner_address``, provisioning it once.

        Raises:
            ProvisioningError: Invalid owner address or service failure
            NotAuthenticated / SessionTornDown: No session, or it ended mid-call
        """
        epoch = self._session.require_authenticated(Stage.PROVISIONING)
        if not is_valid_evm_address(owner_address):
            raise ProvisioningError(f"Invalid owner address: {owner_address!r}")

        key = address_key(owner_address)
        account = self._accounts.get(key)
        if account is not None:
            self._session.attach_smart_account(account)
            return account

        pending = self._in_flight.get(key)
        if pending is None:
            if self.state(owner_address) == ProvisioningState.FAILED:
                self._transition(key, ProvisioningState.UNINITIALIZED)
            self._transition(key, ProvisioningState.PROVISIONING)
            pending = asyncio.ensure_future(self._provision(key, owner_address, epoch))
            self._in_flight[key] = pending
        else:
            logger.debug(f"Joining in-flight provisioning for {owner_address}")

        # A cancelled waiter must not cancel the shared request
        return await asyncio.shield(pending)

    async def _provision(self, key: str, owner_address: str, epoch: int) -> SmartAccount:
        task = asyncio.current_task()
        try:
            return await self._create(key, owner_address, epoch, task)
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    async def _create(
        self,
        key: str,
        owner_address: str,
        epoch: int,
        task: Optional["asyncio.Task[SmartAccount]"],
    ) -> SmartAccount:
        try:
            data = await self._service.create_smart_account(owner_address)
            payload = SmartAccountPayload.model_validate(data)
        except ProviderError as e:
            self._settle(key, task, ProvisioningState.FAILED)
            self._session.ensure_current(epoch, Stage.PROVISIONING)
            logger.error(f"Smart account provisioning failed for {owner_address}: {e}")
            raise ProvisioningError(
                f"Smart account provisioning failed: {e}",
                provider=self._service.name,
                status_code=getattr(e, "status_code", None),
            ) from e
        except PayloadValidationError as e:
            self._settle(key, task, ProvisioningState.FAILED)
            self._session.ensure_current(epoch, Stage.PROVISIONING)
            logger.error(f"Malformed smart account response for {owner_address}: {e}")
            raise ProvisioningError(
                f"Malformed smart account response: {e}",
                provider=self._service.name,
            ) from e

        if not self._session.is_current(epoch):
            self._settle(key, task, ProvisioningState.UNINITIALIZED)
            self._session.ensure_current(epoch, Stage.PROVISIONING)

        account = SmartAccount(
            owner_address=owner_address,
            scw_address=payload.wallet.scw_address,
            raw=data,
        )
        self._accounts[key] = account
        self._settle(key, task, ProvisioningState.READY)
        self._session.attach_smart_account(account)
        logger.info(f"Smart account {account.scw_address} ready for {owner_address}")
        return account

    def reset(self) -> None:
        """Forget cached accounts and detach in-flight requests (session teardown)."""
        self._accounts.clear()
        self._states.clear()
        self._in_flight.clear()

    def _settle(self, key: str, task: Optional["asyncio.Task[SmartAccount]"], target: ProvisioningState) -> None:
        # After a reset the per-owner state no longer belongs to this request
        if self._in_flight.get(key) is task:
            self._transition(key, target)

    def _transition(self, key: str, target: ProvisioningState) -> None:
        current = self._states.get(key, ProvisioningState.UNINITIALIZED)
        if target not in self.TRANSITIONS[current]:
            raise RuntimeError(f"Invalid provisioning transition {current.value} -> {target.value}")
        self._states[key] = target
