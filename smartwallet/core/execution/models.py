"""
Transfer pipeline models.

A TransferRequest becomes a TransactionIntent (build), then a SignedPayload
(sign), then a SubmissionReceipt (submit). Intents and signed payloads are
single-use and never outlive the transfer that produced them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from eth_utils import encode_hex
from pydantic import BaseModel, ConfigDict, Field

from ...errors import Stage


class OrderType(str, Enum):
    """How the order amount is interpreted across chains."""
    AMOUNT_OUT = "AMOUNT_OUT"  # exact amount the recipient receives on the destination chain
    AMOUNT_IN = "AMOUNT_IN"  # exact amount spent on the source side


class SignMode(str, Enum):
    """Which key class signs the payload."""
    ECDSA = "ECDSA"  # the session's primary owner key
    SESSION_KEY = "SimpleSessionKey"  # a delegated session key


class TransferStatus(str, Enum):
    BUILDING = "building"
    SIGNING = "signing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"
    UNKNOWN_OUTCOME = "unknown_outcome"


@dataclass(frozen=True)
class TransferRequest:
    amount: str  # decimal string in whole asset units, e.g. "10.5"
    recipient: str


@dataclass(frozen=True)
class TransactionIntent:
    """
    An encoded token transfer plus its cross-chain order, ready to sign.

    ``message_to_sign`` and ``user_operation`` are filled in by the
    transaction service; the rest is computed locally.
    """
    encoded_call: str
    target_contract: str
    order_amount: int
    destination_chain_id: int
    scw_address: str
    native_value: int = 0
    order_type: OrderType = OrderType.AMOUNT_OUT
    sign_mode: SignMode = SignMode.ECDSA
    message_to_sign: str = ""
    user_operation: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    intent_id: str = field(default_factory=lambda: f"intent_{uuid.uuid4().hex}")

    def call_details(self) -> List[Dict[str, Any]]:
        return [
            {
                "encodedData": self.encoded_call,
                "targetContractAddress": self.target_contract,
                "value": self.native_value,
            }
        ]

    def order_data(self) -> Dict[str, Any]:
        return {
            "amount": str(self.order_amount),
            "type": self.order_type.value,
        }


@dataclass(frozen=True)
class SignedPayload:
    """A signature bound to exactly one intent's user operation."""
    intent_id: str
    signature: bytes
    user_operation: Dict[str, Any] = field(compare=False, hash=False)
    destination_chain_id: int
    scw_address: str
    sign_mode: SignMode = SignMode.ECDSA

    @property
    def signature_hex(self) -> str:
        return encode_hex(self.signature)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Backend acknowledgment; opaque, kept for observability."""
    data: Dict[str, Any]
    intent_id: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class TransferAttempt:
    """What happened to one transfer. Never holds the intent or signature."""
    transfer_id: str
    amount: str
    recipient: str
    destination_chain_id: int
    status: TransferStatus = TransferStatus.BUILDING
    intent_id: Optional[str] = None
    order_amount: Optional[int] = None
    failed_stage: Optional[Stage] = None
    error: Optional[str] = None
    receipt: Optional[SubmissionReceipt] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @staticmethod
    def generate_transfer_id() -> str:
        return f"xfer_{uuid.uuid4().hex[:16]}"


class BuiltTransaction(BaseModel):
    """``buildTransaction`` response."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message_to_sign: str = Field(alias="messageToSign", min_length=1)
    user_op: Dict[str, Any] = Field(alias="userOp")
