"""
Submission client.

Hands a signed user operation to the execution backend. Submission is not
idempotent from here (that depends on the backend's nonce handling), so it
is never retried. A request that got no response, or a success status with
a body that cannot be read, is reported as UnknownOutcome rather than as a
failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Set

from eth_utils import encode_hex

from ...errors import PayloadReused, Stage, SubmissionError, UnknownOutcome
from ...providers.base import (
    ProviderApiError,
    ProviderError,
    ProviderResponseError,
    ProviderTransportError,
    SmartAccountService,
)
from .models import SignedPayload, SignMode, SubmissionReceipt

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class SubmissionClient:
    def __init__(self, session: Session, service: SmartAccountService) -> None:
        self._session = session
        self._service = service
        self._submitted: Set[str] = set()

    async def submit(
        self,
        signature: bytes,
        user_operation: Dict[str, Any],
        destination_chain_id: int,
        scw_address: str,
        sign_mode: SignMode,
    ) -> SubmissionReceipt:
        """
        Send a signed user operation to the backend.

        Raises:
            SubmissionError: Backend rejected the operation
            UnknownOutcome: No response, or an unreadable one; the operation may have been accepted
            NotAuthenticated: No session
        """
        self._session.require_authenticated(Stage.SUBMIT)

        try:
            data = await self._service.submit_transaction(
                signature=encode_hex(signature),
                user_op=user_operation,
                destination_chain_id=destination_chain_id,
                scw_address=scw_address,
                sign_mode=sign_mode.value,
            )
        except ProviderTransportError as e:
            logger.error(f"Submission for {scw_address} got no response, outcome unknown: {e}")
            raise UnknownOutcome(
                f"No response from execution backend: {e}",
                provider=self._service.name,
            ) from e
        except ProviderResponseError as e:
            logger.error(f"Submission for {scw_address} was answered unreadably, outcome unknown: {e}")
            raise UnknownOutcome(
                f"Unreadable response from execution backend: {e}",
                provider=self._service.name,
                status_code=e.status_code,
            ) from e
        except ProviderApiError as e:
            raise SubmissionError(
                f"Execution backend rejected the operation: {e}",
                provider=self._service.name,
                status_code=e.status_code,
            ) from e
        except ProviderError as e:
            raise SubmissionError(
                f"Submission failed: {e}",
                provider=self._service.name,
            ) from e

        return SubmissionReceipt(data=data)

    async def submit_payload(self, payload: SignedPayload) -> SubmissionReceipt:
        """
        Submit a SignedPayload. Each payload is accepted for submission once,
        whatever the outcome of that attempt.

        Raises:
            PayloadReused: The payload was already submitted
        """
        if payload.intent_id in self._submitted:
            raise PayloadReused(
                f"Signed payload for intent {payload.intent_id} was already submitted",
                stage=Stage.SUBMIT,
            )
        self._submitted.add(payload.intent_id)

        receipt = await self.submit(
            payload.signature,
            payload.user_operation,
            payload.destination_chain_id,
            payload.scw_address,
            payload.sign_mode,
        )
        logger.info(f"Submitted intent {payload.intent_id}")
        return SubmissionReceipt(data=receipt.data, intent_id=payload.intent_id, submitted_at=receipt.submitted_at)
