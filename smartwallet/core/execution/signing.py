"""
Signing coordinator.

Delegates signatures to the external signer bound to the session's primary
wallet. Signing is a single suspension point with no local retry; a rejected
signature aborts the transfer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Set

from eth_utils import decode_hex

from ...errors import PayloadReused, SigningRejected, Stage
from ...providers.base import IdentityProvider, ProviderError
from .models import SignedPayload, SignMode, TransactionIntent

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class SigningCoordinator:
    """
    Usage:
        signer = SigningCoordinator(session, identity_provider)
        signature = await signer.sign_message("Hello")
        payload = await signer.sign_intent(intent)
    """

    def __init__(
        self,
        session: Session,
        signer: IdentityProvider,
        session_key_signer: Optional[IdentityProvider] = None,
    ) -> None:
        self._session = session
        self._signer = signer
        self._session_key_signer = session_key_signer
        self._consumed: Set[str] = set()

    async def sign_message(self, raw_message: str, sign_mode: SignMode = SignMode.ECDSA) -> bytes:
        """
        Sign ``raw_message`` and return the raw signature bytes.

        Raises:
            SigningRejected: No wallet linked, signer declined or unavailable
            NotAuthenticated / SessionTornDown: No session, or it ended mid-request
        """
        epoch = self._session.require_authenticated(Stage.SIGN)
        if self._session.primary_address is None:
            raise SigningRejected("No wallet linked to sign with")

        signer = self._signer_for(sign_mode)
        try:
            result = await signer.sign_message({"message": raw_message})
        except ProviderError as e:
            logger.warning(f"Signer declined: {e}")
            raise SigningRejected(
                f"Signature rejected: {e}",
                provider=signer.name,
            ) from e

        self._session.ensure_current(epoch, Stage.SIGN)
        return self._decode_signature(result)

    async def sign_intent(self, intent: TransactionIntent) -> SignedPayload:
        """
        Sign an intent's message; the signature is bound to that intent only.

        An intent is consumed by its first signing attempt, successful or not.

        Raises:
            PayloadReused: The intent was already presented for signing
            SigningRejected: Signer declined or unavailable
        """
        if intent.intent_id in self._consumed:
            raise PayloadReused(
                f"Intent {intent.intent_id} was already signed",
                stage=Stage.SIGN,
            )
        if not intent.message_to_sign:
            raise SigningRejected(f"Intent {intent.intent_id} has no message to sign")
        self._consumed.add(intent.intent_id)

        signature = await self.sign_message(intent.message_to_sign, intent.sign_mode)
        logger.info(f"Signed intent {intent.intent_id}")
        return SignedPayload(
            intent_id=intent.intent_id,
            signature=signature,
            user_operation=intent.user_operation,
            destination_chain_id=intent.destination_chain_id,
            scw_address=intent.scw_address,
            sign_mode=intent.sign_mode,
        )

    def _signer_for(self, sign_mode: SignMode) -> IdentityProvider:
        if sign_mode == SignMode.SESSION_KEY:
            if self._session_key_signer is None:
                raise SigningRejected("No session key signer configured")
            return self._session_key_signer
        return self._signer

    @staticmethod
    def _decode_signature(result: object) -> bytes:
        signature = result.get("signature") if isinstance(result, dict) else None
        if not isinstance(signature, str) or not signature:
            raise SigningRejected("Signer returned no signature")
        try:
            decoded = decode_hex(signature)
        except (ValueError, TypeError) as e:
            raise SigningRejected(f"Signer returned a malformed signature: {e}") from e
        if not decoded:
            raise SigningRejected("Signer returned an empty signature")
        return decoded
