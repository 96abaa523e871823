"""
Tests for SigningCoordinator.
"""

import asyncio

import pytest

from smartwallet.core.execution import SigningCoordinator, SignMode, TransactionIntent
from smartwallet.core.session import Session
from smartwallet.core.wallet import IdentityKind, LinkedIdentity
from smartwallet.errors import PayloadReused, SessionTornDown, SigningRejected, Stage
from smartwallet.providers.base import ProviderError

SCW = "0x5555555555555555555555555555555555555555"


def make_intent(**overrides) -> TransactionIntent:
    fields = dict(
        encoded_call="0xa9059cbb",
        target_contract="0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        order_amount=5_000_000,
        destination_chain_id=10,
        scw_address=SCW,
        message_to_sign="0x" + "ab" * 32,
        user_operation={"sender": SCW, "nonce": "0x1"},
    )
    fields.update(overrides)
    return TransactionIntent(**fields)


@pytest.fixture
def signer(session, identity_provider) -> SigningCoordinator:
    return SigningCoordinator(session, identity_provider)


@pytest.mark.asyncio
async def test_sign_message_returns_signature_bytes(signer, identity_provider):
    signature = await signer.sign_message("Hello")

    assert signature == bytes.fromhex("11" * 65)
    assert identity_provider.calls == [("sign_message", "Hello")]


@pytest.mark.asyncio
async def test_sign_message_without_wallet(identity_provider):
    session = Session()
    session.authenticate([LinkedIdentity(IdentityKind.EMAIL, "user@example.com")])
    signer = SigningCoordinator(session, identity_provider)

    with pytest.raises(SigningRejected) as exc_info:
        await signer.sign_message("Hello")
    assert exc_info.value.stage == Stage.SIGN
    assert identity_provider.calls == []


@pytest.mark.asyncio
async def test_signer_decline_is_rejection(signer, identity_provider):
    identity_provider.errors["sign_message"] = ProviderError("user closed the prompt")

    with pytest.raises(SigningRejected):
        await signer.sign_message("Hello")


@pytest.mark.asyncio
@pytest.mark.parametrize("signature", ["", "0x", "0xzz"])
async def test_malformed_signature_is_rejection(signer, identity_provider, signature):
    identity_provider.signature = signature

    with pytest.raises(SigningRejected):
        await signer.sign_message("Hello")


@pytest.mark.asyncio
async def test_sign_intent_binds_payload_to_intent(signer, identity_provider):
    intent = make_intent()

    payload = await signer.sign_intent(intent)

    assert payload.intent_id == intent.intent_id
    assert payload.user_operation == intent.user_operation
    assert payload.destination_chain_id == 10
    assert payload.scw_address == SCW
    assert payload.signature_hex == "0x" + "11" * 65
    assert identity_provider.calls == [("sign_message", intent.message_to_sign)]


@pytest.mark.asyncio
async def test_intent_cannot_be_signed_twice(signer, identity_provider):
    intent = make_intent()
    await signer.sign_intent(intent)

    with pytest.raises(PayloadReused) as exc_info:
        await signer.sign_intent(intent)
    assert exc_info.value.stage == Stage.SIGN
    assert len(identity_provider.calls) == 1


@pytest.mark.asyncio
async def test_intent_without_message_is_rejected(signer, identity_provider):
    with pytest.raises(SigningRejected):
        await signer.sign_intent(make_intent(message_to_sign=""))
    assert identity_provider.calls == []


@pytest.mark.asyncio
async def test_session_key_mode_needs_a_session_key_signer(signer, identity_provider):
    with pytest.raises(SigningRejected):
        await signer.sign_intent(make_intent(sign_mode=SignMode.SESSION_KEY))
    assert identity_provider.calls == []


@pytest.mark.asyncio
async def test_session_key_mode_uses_session_key_signer(session, identity_provider, session_key_signer):
    signer = SigningCoordinator(session, identity_provider, session_key_signer=session_key_signer)

    payload = await signer.sign_intent(make_intent(sign_mode=SignMode.SESSION_KEY))

    assert payload.sign_mode == SignMode.SESSION_KEY
    assert payload.signature == bytes.fromhex("22" * 65)
    assert identity_provider.calls == []
    assert len(session_key_signer.calls) == 1


@pytest.mark.asyncio
async def test_signature_after_logout_is_discarded(signer, session, identity_provider):
    gate = asyncio.Event()
    identity_provider.gates["sign_message"] = gate

    task = asyncio.create_task(signer.sign_message("Hello"))
    await asyncio.sleep(0)
    session.tear_down()
    gate.set()

    with pytest.raises(SessionTornDown):
        await task
