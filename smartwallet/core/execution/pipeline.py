"""
End-to-end transfer pipeline: build -> sign -> submit.

Stages run strictly in order and the first failure aborts the rest. Nothing
is on-chain before submission succeeds, so there is nothing to roll back;
the built intent and signature are simply dropped. Successive transfers are
not queued against each other.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Deque, Optional

from ...config import settings
from ...errors import NotAuthenticated, OrchestratorError, Stage, UnknownOutcome
from ...logging_config import transfer_context
from .intent_builder import TransactionIntentBuilder
from .models import (
    SignMode,
    SubmissionReceipt,
    TransferAttempt,
    TransferRequest,
    TransferStatus,
)
from .signing import SigningCoordinator
from .submission import SubmissionClient

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

# Stage an attempt was in when it stopped without an orchestrator error
_STATUS_STAGES = {
    TransferStatus.BUILDING: Stage.BUILD,
    TransferStatus.SIGNING: Stage.SIGN,
    TransferStatus.SUBMITTING: Stage.SUBMIT,
}


class TransferPipeline:
    def __init__(
        self,
        session: Session,
        builder: TransactionIntentBuilder,
        signer: SigningCoordinator,
        submitter: SubmissionClient,
        history_size: Optional[int] = None,
    ) -> None:
        self._session = session
        self._builder = builder
        self._signer = signer
        self._submitter = submitter
        self.attempts: Deque[TransferAttempt] = deque(maxlen=history_size or settings.transfer_history_size)

    async def execute(
        self,
        request: TransferRequest,
        destination_chain_id: Optional[int] = None,
        sign_mode: SignMode = SignMode.ECDSA,
    ) -> SubmissionReceipt:
        """
        Run one transfer through build, sign and submit.

        Raises:
            The first stage error: InvalidAmount, InvalidRecipient, BuildError,
            SigningRejected, SubmissionError, UnknownOutcome, SessionTornDown, ...

        A transfer cancelled or interrupted by an unexpected error is still
        closed out in ``attempts``: UNKNOWN_OUTCOME if it was submitting,
        FAILED otherwise.
        """
        chain_id = destination_chain_id or settings.default_destination_chain_id
        attempt = TransferAttempt(
            transfer_id=TransferAttempt.generate_transfer_id(),
            amount=request.amount,
            recipient=request.recipient,
            destination_chain_id=chain_id,
        )
        self.attempts.append(attempt)

        with transfer_context(attempt.transfer_id, destination_chain_id=chain_id):
            try:
                receipt = await self._run(request, chain_id, sign_mode, attempt)
            except UnknownOutcome as e:
                self._finish(attempt, TransferStatus.UNKNOWN_OUTCOME, e)
                logger.warning("Transfer outcome unknown; not resubmitting")
                raise
            except OrchestratorError as e:
                self._finish(attempt, TransferStatus.FAILED, e)
                logger.error(f"Transfer failed at {e.stage.value}: {e.message}")
                raise
            except BaseException as e:
                # Cancelled or unexpected; a payload already handed to the backend may have landed
                status = (
                    TransferStatus.UNKNOWN_OUTCOME
                    if attempt.status == TransferStatus.SUBMITTING
                    else TransferStatus.FAILED
                )
                self._finish(attempt, status, e)
                logger.error(f"Transfer interrupted at {attempt.failed_stage.value}: {e!r}")
                raise

            attempt.receipt = receipt
            self._finish(attempt, TransferStatus.SUBMITTED)
            logger.info("Transfer submitted")
            return receipt

    async def _run(
        self,
        request: TransferRequest,
        chain_id: int,
        sign_mode: SignMode,
        attempt: TransferAttempt,
    ) -> SubmissionReceipt:
        epoch = self._session.require_authenticated(Stage.BUILD)
        account = self._session.smart_account
        if account is None:
            raise NotAuthenticated("No smart account for this session", stage=Stage.BUILD)

        intent = await self._builder.build(request, account, chain_id, sign_mode=sign_mode)
        self._session.ensure_current(epoch, Stage.BUILD)
        attempt.intent_id = intent.intent_id
        attempt.order_amount = intent.order_amount

        attempt.status = TransferStatus.SIGNING
        payload = await self._signer.sign_intent(intent)
        self._session.ensure_current(epoch, Stage.SIGN)

        attempt.status = TransferStatus.SUBMITTING
        return await self._submitter.submit_payload(payload)

    @staticmethod
    def _finish(
        attempt: TransferAttempt,
        status: TransferStatus,
        error: Optional[BaseException] = None,
    ) -> None:
        if isinstance(error, OrchestratorError):
            attempt.failed_stage = error.stage
            attempt.error = error.message
        elif error is not None:
            attempt.failed_stage = _STATUS_STAGES[attempt.status]
            attempt.error = repr(error)
        attempt.status = status
        attempt.finished_at = datetime.now(timezone.utc)
