"""
Linked identity registry.

Tracks which external identities are linked to the session. Local state only
ever changes after the identity provider confirms a link or unlink, and the
last remaining identity can never be removed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, Tuple

from ...errors import (
    IdentityLinkError,
    IdentityNotLinked,
    InvariantViolation,
    Stage,
)
from ...providers.base import IdentityProvider, ProviderError
from .models import IdentityKind, LinkedIdentity

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


# IdentityKind -> (link method, unlink method) on the identity provider
_PROVIDER_METHODS: Dict[IdentityKind, Tuple[str, str]] = {
    IdentityKind.EMAIL: ("link_email", "unlink_email"),
    IdentityKind.PHONE: ("link_phone", "unlink_phone"),
    IdentityKind.WALLET: ("link_wallet", "unlink_wallet"),
    IdentityKind.GOOGLE: ("link_google", "unlink_google"),
    IdentityKind.TWITTER: ("link_twitter", "unlink_twitter"),
    IdentityKind.DISCORD: ("link_discord", "unlink_discord"),
}


class IdentityLinkRegistry:
    """
    Link and unlink external identities through one polymorphic operation.

    Usage:
        registry = IdentityLinkRegistry(session, identity_provider)

        identity = await registry.link(IdentityKind.GOOGLE)
        if registry.can_remove():
            await registry.unlink(IdentityKind.EMAIL, "user@example.com")
    """

    def __init__(self, session: Session, provider: IdentityProvider) -> None:
        self._session = session
        self._provider = provider

    def can_remove(self) -> bool:
        return self._session.can_remove_identity()

    def linked(self, kind: Optional[IdentityKind] = None) -> list[LinkedIdentity]:
        identities = self._session.linked_identities
        if kind is not None:
            identities = {i for i in identities if i.kind == kind}
        return sorted(identities, key=lambda i: (i.kind.value, i.external_id))

    async def link(self, kind: IdentityKind) -> Optional[LinkedIdentity]:
        """
        Run the provider's link flow for ``kind``.

        Returns the new identity, or None if the user cancelled the flow (the
        session is left unchanged).

        Raises:
            NotAuthenticated: No session to link into
            IdentityLinkError: Provider failed the request
            SessionTornDown: Session ended while the flow was open
        """
        epoch = self._session.require_authenticated(Stage.IDENTITY)
        link_method = self._provider_method(kind, unlink=False)

        try:
            external_id = await link_method()
        except ProviderError as e:
            raise IdentityLinkError(
                f"Linking {kind.value} failed: {e}",
                provider=self._provider.name,
                status_code=getattr(e, "status_code", None),
            ) from e

        self._session.ensure_current(epoch, Stage.IDENTITY)

        if not external_id:
            logger.info(f"Link flow for {kind.value} cancelled")
            return None

        identity = LinkedIdentity(kind=kind, external_id=external_id)
        self._session.add_identity(identity)
        logger.info(f"Linked {kind.value} identity")
        return identity

    async def unlink(self, kind: IdentityKind, external_id: str) -> LinkedIdentity:
        """
        Remove a linked identity once the provider confirms.

        Raises:
            InvariantViolation: It is the last linked identity (no provider call made)
            IdentityNotLinked: No such identity in the session (no provider call made)
            IdentityLinkError: Provider failed the request
            SessionTornDown: Session ended while the request was in flight
        """
        epoch = self._session.require_authenticated(Stage.IDENTITY)
        identity = LinkedIdentity(kind=kind, external_id=external_id)

        if not self.can_remove():
            raise InvariantViolation(
                "At least one identity must remain linked",
                details={"kind": kind.value},
            )
        if identity not in self._session.linked_identities:
            raise IdentityNotLinked(
                f"No linked {kind.value} identity {external_id!r}",
                details={"kind": kind.value},
            )

        unlink_method = self._provider_method(kind, unlink=True)
        try:
            await unlink_method(external_id)
        except ProviderError as e:
            raise IdentityLinkError(
                f"Unlinking {kind.value} failed: {e}",
                provider=self._provider.name,
                status_code=getattr(e, "status_code", None),
            ) from e

        self._session.ensure_current(epoch, Stage.IDENTITY)
        self._session.remove_identity(identity)
        logger.info(f"Unlinked {kind.value} identity")
        return identity

    def _provider_method(self, kind: IdentityKind, *, unlink: bool) -> Callable[..., Awaitable[Optional[str]]]:
        link_name, unlink_name = _PROVIDER_METHODS[kind]
        return getattr(self._provider, unlink_name if unlink else link_name)
