"""
Tests for amount scaling and TransactionIntentBuilder.
"""

import pytest

from smartwallet.core.execution import (
    OrderType,
    SignMode,
    TransactionIntentBuilder,
    TransferRequest,
    USDC_ADDRESSES,
    scale_amount,
)
from smartwallet.core.execution.calldata import MAX_UINT256
from smartwallet.core.wallet import SmartAccount
from smartwallet.errors import (
    BuildError,
    InvalidAmount,
    InvalidRecipient,
    Stage,
    UnsupportedChain,
)
from smartwallet.providers.base import ProviderApiError

OWNER = "0x1111111111111111111111111111111111111111"
SCW = "0x5555555555555555555555555555555555555555"
RECIPIENT = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def smart_account() -> SmartAccount:
    return SmartAccount(owner_address=OWNER, scw_address=SCW)


@pytest.fixture
def builder(account_service) -> TransactionIntentBuilder:
    return TransactionIntentBuilder(account_service, decimals=6)


# =============================================================================
# Amount scaling
# =============================================================================

@pytest.mark.parametrize(
    "amount,expected",
    [
        ("10.5", 10_500_000),
        ("5", 5_000_000),
        (".5", 500_000),
        ("1.", 1_000_000),
        ("0", 0),
        ("0.1234567", 123_456),  # extra digits are truncated
        ("007.000001", 7_000_001),
        ("0" * 5000 + "1", 1_000_000),
    ],
)
def test_scale_amount(amount, expected):
    assert scale_amount(amount, 6) == expected


@pytest.mark.parametrize("amount", ["", ".", "-1", "1e5", "1.2.3", "abc", " 1", "1,5", "１"])
def test_scale_amount_rejects_malformed(amount):
    with pytest.raises(InvalidAmount) as exc_info:
        scale_amount(amount, 6)
    assert exc_info.value.stage == Stage.BUILD


def test_scale_amount_rejects_uint256_overflow():
    with pytest.raises(InvalidAmount):
        scale_amount(str(MAX_UINT256), 6)
    assert scale_amount(str(MAX_UINT256), 0) == MAX_UINT256


@pytest.mark.parametrize("amount", ["9" * 5000, "1" + "0" * 78, "9" * 5000 + ".5"])
def test_scale_amount_rejects_huge_amounts(amount):
    with pytest.raises(InvalidAmount) as exc_info:
        scale_amount(amount, 6)
    assert exc_info.value.context.retry_safe is True


# =============================================================================
# Building
# =============================================================================

class TestTransactionIntentBuilder:
    @pytest.mark.asyncio
    async def test_build_encodes_transfer_and_order(self, builder, smart_account, account_service):
        intent = await builder.build(TransferRequest(amount="10.5", recipient=RECIPIENT), smart_account, 10)

        assert intent.order_amount == 10_500_000
        assert intent.order_type == OrderType.AMOUNT_OUT
        assert intent.native_value == 0
        assert intent.target_contract == USDC_ADDRESSES[10]
        assert intent.scw_address == SCW
        assert intent.message_to_sign == account_service.message_to_sign
        assert intent.user_operation["sender"] == SCW
        assert intent.encoded_call.startswith("0xa9059cbb")

        method, call_details, chain_id, scw, order_data, session_key_info, sign_mode = account_service.calls[0]
        assert method == "build_transaction"
        assert call_details == [
            {"encodedData": intent.encoded_call, "targetContractAddress": USDC_ADDRESSES[10], "value": 0}
        ]
        assert chain_id == 10
        assert scw == SCW
        assert order_data == {"amount": "10500000", "type": "AMOUNT_OUT"}
        assert session_key_info is None
        assert sign_mode == "ECDSA"

    @pytest.mark.asyncio
    async def test_each_build_gets_a_fresh_intent_id(self, builder, smart_account):
        request = TransferRequest(amount="1", recipient=RECIPIENT)
        first = await builder.build(request, smart_account, 10)
        second = await builder.build(request, smart_account, 10)

        assert first.intent_id != second.intent_id

    @pytest.mark.asyncio
    async def test_session_key_mode_is_forwarded(self, builder, smart_account, account_service):
        info = {"sessionKey": "0xabc"}
        intent = await builder.build(
            TransferRequest(amount="1", recipient=RECIPIENT),
            smart_account,
            10,
            sign_mode=SignMode.SESSION_KEY,
            session_key_info=info,
        )

        assert intent.sign_mode == SignMode.SESSION_KEY
        assert account_service.calls[0][5] == info
        assert account_service.calls[0][6] == "SimpleSessionKey"

    @pytest.mark.asyncio
    async def test_invalid_amount_makes_no_call(self, builder, smart_account, account_service):
        with pytest.raises(InvalidAmount):
            await builder.build(TransferRequest(amount="1.2.3", recipient=RECIPIENT), smart_account, 10)
        assert account_service.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipient", ["", "0x1234", "not-an-address", "0x" + "g" * 40])
    async def test_invalid_recipient_makes_no_call(self, builder, smart_account, account_service, recipient):
        with pytest.raises(InvalidRecipient):
            await builder.build(TransferRequest(amount="1", recipient=recipient), smart_account, 10)
        assert account_service.calls == []

    @pytest.mark.asyncio
    async def test_unknown_chain(self, builder, smart_account, account_service):
        with pytest.raises(UnsupportedChain):
            await builder.build(TransferRequest(amount="1", recipient=RECIPIENT), smart_account, 999)
        assert account_service.calls == []

    @pytest.mark.asyncio
    async def test_asset_override(self, account_service, smart_account):
        asset = "0x3333333333333333333333333333333333333333"
        builder = TransactionIntentBuilder(account_service, decimals=18, asset_address=asset)

        intent = await builder.build(TransferRequest(amount="1", recipient=RECIPIENT), smart_account, 999)

        assert intent.target_contract == asset
        assert intent.order_amount == 10**18

    @pytest.mark.asyncio
    async def test_service_rejection_is_build_error(self, builder, smart_account, account_service):
        account_service.errors["build_transaction"] = ProviderApiError("insufficient balance", status_code=400)

        with pytest.raises(BuildError) as exc_info:
            await builder.build(TransferRequest(amount="1", recipient=RECIPIENT), smart_account, 10)
        assert exc_info.value.context.status_code == 400
        assert exc_info.value.context.retry_safe is True

    @pytest.mark.asyncio
    async def test_malformed_build_response(self, builder, smart_account, account_service):
        account_service.build_response = {"userOp": {}}

        with pytest.raises(BuildError):
            await builder.build(TransferRequest(amount="1", recipient=RECIPIENT), smart_account, 10)
