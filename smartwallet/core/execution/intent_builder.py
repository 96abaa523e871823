"""
Transaction intent builder.

Turns an (amount, recipient) transfer request into an encoded token transfer
and an AMOUNT_OUT cross-chain order, then asks the transaction service to
assemble the signable user operation. Nothing is signed or submitted here,
so a build can be repeated freely.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Dict, Optional

from pydantic import ValidationError as PayloadValidationError

from ...config import settings
from ...errors import BuildError, InvalidAmount, InvalidRecipient, UnsupportedChain
from ...providers.base import ProviderError, SmartAccountService
from ...services.address import is_valid_evm_address, normalize_address
from ..wallet.models import SmartAccount
from .calldata import MAX_UINT256, asset_address_for_chain, build_transfer_call_data
from .models import (
    BuiltTransaction,
    OrderType,
    SignMode,
    TransactionIntent,
    TransferRequest,
)

logger = logging.getLogger(__name__)

AMOUNT_PATTERN = re.compile(r"\d*\.?\d*", re.ASCII)
UINT256_DIGITS = len(str(MAX_UINT256))


def scale_amount(amount: str, decimals: int) -> int:
    """
    Convert a decimal string to integer base units, truncating extra digits.

    ``"10.5"`` with 6 decimals is ``10500000``.

    Raises:
        InvalidAmount: Empty, malformed, or larger than uint256
    """
    if not isinstance(amount, str) or not amount:
        raise InvalidAmount("Amount is required")
    if not AMOUNT_PATTERN.fullmatch(amount):
        raise InvalidAmount(f"Amount must be a non-negative decimal: {amount!r}")

    whole, _, fraction = amount.partition(".")
    if not whole and not fraction:
        raise InvalidAmount(f"Amount has no digits: {amount!r}")

    # Anything over 78 significant digits is above uint256; checked before int()
    whole = whole.lstrip("0")
    if len(whole) > UINT256_DIGITS:
        raise InvalidAmount(
            f"Amount overflows uint256: {whole[:16]}... ({len(whole)} digits)",
            details={"decimals": decimals},
        )

    fraction = fraction[:decimals].ljust(decimals, "0")
    scaled = int(whole or "0") * 10**decimals + int(fraction or "0")
    if scaled > MAX_UINT256:
        raise InvalidAmount(
            f"Amount overflows uint256: {amount!r}",
            details={"decimals": decimals},
        )
    return scaled


class TransactionIntentBuilder:
    """
    Usage:
        builder = TransactionIntentBuilder(service)
        intent = await builder.build(
            TransferRequest(amount="5", recipient="0x..."),
            smart_account,
            destination_chain_id=10,
        )
    """

    def __init__(
        self,
        service: SmartAccountService,
        decimals: Optional[int] = None,
        asset_address: Optional[str] = None,
    ) -> None:
        self._service = service
        self._decimals = settings.transfer_asset_decimals if decimals is None else decimals
        self._asset_override = asset_address if asset_address is not None else settings.transfer_asset_address

    async def build(
        self,
        request: TransferRequest,
        smart_account: SmartAccount,
        destination_chain_id: int,
        sign_mode: SignMode = SignMode.ECDSA,
        session_key_info: Optional[Dict[str, Any]] = None,
    ) -> TransactionIntent:
        """
        Validate, encode and assemble a transfer intent.

        Raises:
            InvalidAmount / InvalidRecipient / UnsupportedChain: Rejected locally, no service call
            BuildError: The service rejected the transaction or answered malformed
        """
        order_amount = scale_amount(request.amount, self._decimals)

        if not is_valid_evm_address(request.recipient):
            raise InvalidRecipient(f"Recipient is not a valid address: {request.recipient!r}")
        recipient = normalize_address(request.recipient)

        asset = asset_address_for_chain(destination_chain_id, self._asset_override)
        if asset is None:
            raise UnsupportedChain(
                f"No transfer asset configured for chain {destination_chain_id}",
                details={"chain_id": destination_chain_id},
            )

        draft = TransactionIntent(
            encoded_call=build_transfer_call_data(recipient, order_amount),
            target_contract=asset,
            order_amount=order_amount,
            destination_chain_id=destination_chain_id,
            scw_address=smart_account.scw_address,
            native_value=0,
            order_type=OrderType.AMOUNT_OUT,
            sign_mode=sign_mode,
        )

        try:
            data = await self._service.build_transaction(
                call_details=draft.call_details(),
                destination_chain_id=destination_chain_id,
                scw_address=smart_account.scw_address,
                order_data=draft.order_data(),
                session_key_info=session_key_info,
                sign_mode=sign_mode.value,
            )
            built = BuiltTransaction.model_validate(data)
        except ProviderError as e:
            logger.error(f"Transaction build rejected: {e}")
            raise BuildError(
                f"Transaction build failed: {e}",
                provider=self._service.name,
                status_code=getattr(e, "status_code", None),
            ) from e
        except PayloadValidationError as e:
            raise BuildError(
                f"Malformed build response: {e}",
                provider=self._service.name,
            ) from e

        intent = replace(draft, message_to_sign=built.message_to_sign, user_operation=built.user_op)
        logger.info(
            f"Built intent {intent.intent_id}: {order_amount} base units to {recipient} "
            f"on chain {destination_chain_id}"
        )
        return intent
