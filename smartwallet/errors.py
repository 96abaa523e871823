"""
Error taxonomy for the session and transfer orchestrator.

Every error carries an ErrorContext naming the stage that failed so callers
can tell a provisioning failure from a build, sign or submit failure.
Validation errors are always raised before any external call is made.
Nothing in this package retries on its own; ``retry_safe`` only tells the
caller whether repeating the operation is harmless.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Stage(str, Enum):
    """Where in the orchestrator an error originated."""

    SESSION = "session"
    IDENTITY = "identity"
    PROVISIONING = "provisioning"
    BALANCE = "balance"
    BUILD = "build"
    SIGN = "sign"
    SUBMIT = "submit"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    stage: Stage = Stage.SESSION
    retry_safe: bool = False
    provider: Optional[str] = None
    status_code: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""

    stage: Stage = Stage.SESSION
    retry_safe: bool = False

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[Stage] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        self.context = ErrorContext(
            stage=self.stage,
            retry_safe=self.retry_safe,
            provider=provider,
            status_code=status_code,
            details=details or {},
        )


# Validation errors: detected locally, no external call made
class ValidationError(OrchestratorError):
    """Input rejected before any external call."""

    retry_safe = True


class InvariantViolation(ValidationError):
    """Removing this identity would leave the session with none linked."""

    stage = Stage.IDENTITY


class IdentityNotLinked(ValidationError):
    """The identity to remove is not linked to this session."""

    stage = Stage.IDENTITY


class InvalidAmount(ValidationError):
    """Amount string is empty, malformed or overflows the asset's range."""

    stage = Stage.BUILD


class InvalidRecipient(ValidationError):
    """Recipient is not a well-formed chain address."""

    stage = Stage.BUILD


class UnsupportedChain(ValidationError):
    """No transfer asset is known for the destination chain."""

    stage = Stage.BUILD


# Session lifecycle
class SessionError(OrchestratorError):
    """Session lifecycle error."""

    stage = Stage.SESSION


class NotAuthenticated(SessionError):
    """Operation requires an authenticated session."""
    pass


class SessionTornDown(SessionError):
    """The session ended while the operation was suspended; its result was discarded."""
    pass


# Stage errors
class IdentityLinkError(OrchestratorError):
    """Identity provider failed a link or unlink request."""

    stage = Stage.IDENTITY


class ProvisioningError(OrchestratorError):
    """Smart account provisioning failed."""

    stage = Stage.PROVISIONING


class BalanceError(OrchestratorError):
    """Balance fetch failed; the previously cached balance was kept."""

    stage = Stage.BALANCE
    retry_safe = True


class BuildError(OrchestratorError):
    """The transaction service rejected or could not assemble the intent."""

    stage = Stage.BUILD
    retry_safe = True


class SigningRejected(OrchestratorError):
    """The signer declined or is unavailable."""

    stage = Stage.SIGN


class SubmissionError(OrchestratorError):
    """The execution backend rejected the signed payload."""

    stage = Stage.SUBMIT


class UnknownOutcome(OrchestratorError):
    """
    The submission got no response from the backend.

    The operation may or may not have been accepted. Do not resubmit blindly.
    """

    stage = Stage.SUBMIT


class PayloadReused(OrchestratorError):
    """An intent or signed payload was presented for a second time."""
    pass


__all__ = [
    "Stage",
    "ErrorContext",
    "OrchestratorError",
    "ValidationError",
    "InvariantViolation",
    "IdentityNotLinked",
    "InvalidAmount",
    "InvalidRecipient",
    "UnsupportedChain",
    "SessionError",
    "NotAuthenticated",
    "SessionTornDown",
    "IdentityLinkError",
    "ProvisioningError",
    "BalanceError",
    "BuildError",
    "SigningRejected",
    "SubmissionError",
    "UnknownOutcome",
    "PayloadReused",
]
