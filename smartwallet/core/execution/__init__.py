"""
Transfer execution: build -> sign -> submit.

- TransactionIntentBuilder: validates and encodes a transfer, assembles the user operation
- SigningCoordinator: obtains the signature from the external signer
- SubmissionClient: relays the signed user operation
- TransferPipeline: runs the three stages in order, aborting on the first failure

Usage:
    from smartwallet.core.execution import TransferPipeline, TransferRequest

    receipt = await pipeline.execute(
        TransferRequest(amount="5", recipient="0x..."),
        destination_chain_id=10,
    )
"""

from .models import (
    BuiltTransaction,
    OrderType,
    SignedPayload,
    SignMode,
    SubmissionReceipt,
    TransactionIntent,
    TransferAttempt,
    TransferRequest,
    TransferStatus,
)
from .calldata import (
    USDC_ADDRESSES,
    asset_address_for_chain,
    build_transfer_call_data,
    selector_from_signature,
)
from .intent_builder import TransactionIntentBuilder, scale_amount
from .signing import SigningCoordinator
from .submission import SubmissionClient
from .pipeline import TransferPipeline

__all__ = [
    # Models
    "BuiltTransaction",
    "OrderType",
    "SignedPayload",
    "SignMode",
    "SubmissionReceipt",
    "TransactionIntent",
    "TransferAttempt",
    "TransferRequest",
    "TransferStatus",
    # Encoding
    "USDC_ADDRESSES",
    "asset_address_for_chain",
    "build_transfer_call_data",
    "selector_from_signature",
    # Stages
    "TransactionIntentBuilder",
    "scale_amount",
    "SigningCoordinator",
    "SubmissionClient",
    "TransferPipeline",
]
