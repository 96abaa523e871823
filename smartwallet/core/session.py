"""
Session context for the single authenticated user of this process.

The Session owns the linked identity set, the primary (key-holding) address
and the current smart account reference. Every component holds the same
Session instance. Tearing it down bumps ``epoch``; an operation captures the
epoch before it suspends and checks it again on resolution, so results that
arrive after logout are discarded instead of being applied.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, List, Optional, Set

from ..errors import NotAuthenticated, SessionTornDown, Stage
from ..services.address import address_key
from .wallet.models import IdentityKind, LinkedIdentity, SmartAccount

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    """Discrete events that drive smart account and balance state."""
    PRIMARY_ADDRESS_ESTABLISHED = "primary_address_established"
    PRIMARY_ADDRESS_CLEARED = "primary_address_cleared"
    SESSION_TORN_DOWN = "session_torn_down"


class Session:
    def __init__(self) -> None:
        self.authenticated: bool = False
        self.primary_address: Optional[str] = None
        self.linked_identities: Set[LinkedIdentity] = set()
        self.smart_account: Optional[SmartAccount] = None
        self.epoch: int = 0

    def authenticate(self, identities: Iterable[LinkedIdentity]) -> None:
        """Start a session with the identities the provider reports as linked."""
        self.authenticated = True
        self.linked_identities = set(identities)
        self.smart_account = None
        self.primary_address = self._pick_primary_address()
        logger.info(f"Session authenticated with {len(self.linked_identities)} linked identities")

    def tear_down(self) -> None:
        """Destroy the session and invalidate every suspended operation."""
        self.authenticated = False
        self.primary_address = None
        self.linked_identities = set()
        self.smart_account = None
        self.epoch += 1
        logger.info(f"Session torn down (epoch {self.epoch})")

    def require_authenticated(self, stage: Stage = Stage.SESSION) -> int:
        """Return the current epoch, or raise if nobody is logged in."""
        if not self.authenticated:
            raise NotAuthenticated("No authenticated session", stage=stage)
        return self.epoch

    def is_current(self, epoch: int) -> bool:
        return self.authenticated and self.epoch == epoch

    def ensure_current(self, epoch: int, stage: Stage = Stage.SESSION) -> None:
        """Raise SessionTornDown if the session ended since ``epoch`` was captured."""
        if not self.is_current(epoch):
            raise SessionTornDown(
                "Session ended while the operation was in flight; result discarded",
                stage=stage,
            )

    def can_remove_identity(self) -> bool:
        return len(self.linked_identities) > 1

    def add_identity(self, identity: LinkedIdentity) -> None:
        self.linked_identities.add(identity)
        self._refresh_primary_address()

    def remove_identity(self, identity: LinkedIdentity) -> None:
        self.linked_identities.discard(identity)
        self._refresh_primary_address()

    def attach_smart_account(self, account: SmartAccount) -> bool:
        """Adopt ``account`` if it belongs to the current primary address."""
        if self.primary_address is None:
            return False
        if address_key(account.owner_address) != address_key(self.primary_address):
            return False
        self.smart_account = account
        return True

    def wallet_addresses(self) -> List[str]:
        return sorted(
            identity.external_id
            for identity in self.linked_identities
            if identity.kind == IdentityKind.WALLET
        )

    def _pick_primary_address(self) -> Optional[str]:
        wallets = self.wallet_addresses()
        return wallets[0] if wallets else None

    def _refresh_primary_address(self) -> None:
        # Keep the current primary while its wallet stays linked
        if self.primary_address is not None and self.primary_address in self.wallet_addresses():
            return
        self.primary_address = self._pick_primary_address()
        if self.smart_account is not None and (
            self.primary_address is None
            or address_key(self.smart_account.owner_address) != address_key(self.primary_address)
        ):
            self.smart_account = None
