"""
Tests for BalanceReader caching and refresh coalescing.
"""

import asyncio
from decimal import Decimal

import pytest
from pydantic import ValidationError

from smartwallet.core.wallet import BalancePayload, BalanceReader, SmartAccount
from smartwallet.errors import BalanceError, SessionTornDown
from smartwallet.providers.base import ProviderTransportError

OWNER = "0x1111111111111111111111111111111111111111"
SCW = "0x5555555555555555555555555555555555555555"


@pytest.fixture
def reader(session, account_service) -> BalanceReader:
    session.attach_smart_account(SmartAccount(owner_address=OWNER, scw_address=SCW))
    return BalanceReader(session, account_service)


@pytest.mark.asyncio
async def test_refresh_caches_balance(reader, account_service):
    balance = await reader.refresh(SCW)

    assert balance.amount == "25000000"
    assert reader.cached(SCW) is balance
    assert reader.current is balance
    assert reader.display_amount() == Decimal("25")
    assert account_service.calls == [("get_smart_balance", SCW)]


def test_display_amount_before_first_read(reader):
    assert reader.current is None
    assert reader.display_amount() == 0


@pytest.mark.asyncio
async def test_failed_refresh_keeps_stale_balance(reader, account_service):
    first = await reader.refresh(SCW)
    account_service.errors["get_smart_balance"] = ProviderTransportError("timeout")

    with pytest.raises(BalanceError) as exc_info:
        await reader.refresh(SCW)

    assert exc_info.value.context.retry_safe is True
    assert reader.cached(SCW) is first


@pytest.mark.asyncio
async def test_malformed_balance_is_an_error(reader, account_service):
    account_service.net_balance = "lots"

    with pytest.raises(BalanceError):
        await reader.refresh(SCW)
    assert reader.cached(SCW) is None


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_fetch(reader, account_service):
    gate = asyncio.Event()
    account_service.gates["get_smart_balance"] = gate

    first = asyncio.create_task(reader.refresh(SCW))
    second = asyncio.create_task(reader.refresh(SCW))
    await asyncio.sleep(0)
    assert reader.is_refreshing(SCW)
    gate.set()
    results = await asyncio.gather(first, second)

    assert results[0] is results[1]
    assert len(account_service.calls) == 1
    assert not reader.is_refreshing(SCW)


@pytest.mark.asyncio
async def test_balance_for_replaced_account_is_discarded(reader, session, account_service):
    gate = asyncio.Event()
    account_service.gates["get_smart_balance"] = gate

    task = asyncio.create_task(reader.refresh(SCW))
    await asyncio.sleep(0)
    session.smart_account = None
    gate.set()

    assert await task is None
    assert reader.cached(SCW) is None


@pytest.mark.asyncio
async def test_balance_after_logout_is_discarded(reader, session, account_service):
    gate = asyncio.Event()
    account_service.gates["get_smart_balance"] = gate

    task = asyncio.create_task(reader.refresh(SCW))
    await asyncio.sleep(0)
    session.tear_down()
    reader.reset()
    gate.set()

    with pytest.raises(SessionTornDown):
        await task
    assert reader.cached(SCW) is None


class TestBalancePayload:
    def test_numeric_balance_is_coerced_to_string(self):
        assert BalancePayload.model_validate({"netBalance": 1500000}).net_balance == "1500000"

    @pytest.mark.parametrize("value", [True, "-1", "NaN", "abc"])
    def test_rejects_non_amounts(self, value):
        with pytest.raises(ValidationError):
            BalancePayload.model_validate({"netBalance": value})
