"""
Smart account balance reader.

Keeps the last successfully read balance per smart account. A failed or
pending refresh never clears it.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Optional

from pydantic import ValidationError as PayloadValidationError

from ...errors import BalanceError, Stage
from ...providers.base import ProviderError, SmartAccountService
from ...services.address import address_key
from .models import Balance, BalancePayload

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class BalanceReader:
    def __init__(self, session: Session, service: SmartAccountService) -> None:
        self._session = session
        self._service = service
        self._balances: Dict[str, Balance] = {}
        self._in_flight: Dict[str, "asyncio.Future[Optional[Balance]]"] = {}

    def cached(self, scw_address: str) -> Optional[Balance]:
        return self._balances.get(address_key(scw_address))

    @property
    def current(self) -> Optional[Balance]:
        """Balance of the session's current smart account, if ever read."""
        account = self._session.smart_account
        if account is None:
            return None
        return self.cached(account.scw_address)

    def is_refreshing(self, scw_address: str) -> bool:
        return address_key(scw_address) in self._in_flight

    def display_amount(self, decimals: int = 6) -> Decimal:
        """Current balance in whole asset units; zero before the first read."""
        balance = self.current
        if balance is None:
            return Decimal(0).scaleb(-decimals)
        return balance.display_amount(decimals)

    async def refresh(self, scw_address: str) -> Optional[Balance]:
        """
        Fetch and cache the balance of ``scw_address``.

        A second refresh for the same address while one is in flight waits on
        the first instead of issuing another fetch.

        Returns:
            The new Balance, or None when the address stopped being the
            session's smart account while the fetch was in flight (the result
            is discarded).

        Raises:
            BalanceError: Fetch failed; the cached balance is left untouched
            NotAuthenticated / SessionTornDown: No session, or it ended mid-fetch
        """
        epoch = self._session.require_authenticated(Stage.BALANCE)
        key = address_key(scw_address)

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(key, scw_address, epoch))
            self._in_flight[key] = pending
        else:
            logger.debug(f"Joining in-flight balance refresh for {scw_address}")

        return await asyncio.shield(pending)

    async def _fetch(self, key: str, scw_address: str, epoch: int) -> Optional[Balance]:
        task = asyncio.current_task()
        try:
            try:
                data = await self._service.get_smart_balance(scw_address)
                payload = BalancePayload.model_validate(data)
            except ProviderError as e:
                self._session.ensure_current(epoch, Stage.BALANCE)
                logger.warning(f"Balance refresh failed for {scw_address}, keeping cached value: {e}")
                raise BalanceError(
                    f"Balance fetch failed: {e}",
                    provider=self._service.name,
                    status_code=getattr(e, "status_code", None),
                ) from e
            except PayloadValidationError as e:
                self._session.ensure_current(epoch, Stage.BALANCE)
                raise BalanceError(
                    f"Malformed balance response: {e}",
                    provider=self._service.name,
                ) from e

            self._session.ensure_current(epoch, Stage.BALANCE)
            account = self._session.smart_account
            if account is None or address_key(account.scw_address) != key:
                logger.info(f"Discarding balance for {scw_address}: no longer the current smart account")
                return None

            balance = Balance(amount=payload.net_balance)
            self._balances[key] = balance
            return balance
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    def reset(self) -> None:
        """Drop cached balances and detach in-flight fetches (session teardown)."""
        self._balances.clear()
        self._in_flight.clear()
