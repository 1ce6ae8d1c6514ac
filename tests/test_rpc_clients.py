"""
Tests for the JSON-RPC based collaborators: balance reader and wallet client.
"""

import httpx
import pytest

from basesplit.services.balance import BalanceReader, encode_balance_of
from basesplit.services.rpc import JsonRpcClient, RpcError
from basesplit.services.wallet import (
    CALLS_FAILURE,
    CALLS_PENDING,
    CALLS_SUCCESS,
    WalletClient,
    _parse_status,
    encode_transfer,
)

from conftest import ALICE, BOB, TX_HASH, USDC


def test_encode_balance_of_pads_lowercase_address():
    data = encode_balance_of(ALICE)
    assert data.startswith("0x70a08231")
    assert len(data) == 10 + 64
    assert data.endswith(ALICE.lower()[2:])


def test_encode_transfer():
    data = encode_transfer(BOB, 10_000_000)
    assert data.startswith("0xa9059cbb")
    assert data[10:74] == "0" * 24 + "b" * 40
    assert int(data[74:], 16) == 10_000_000
    with pytest.raises(ValueError):
        encode_transfer(BOB, -1)


async def test_rpc_error_object_raises(provider):
    provider.fail_methods["eth_call"] = (-32000, "execution reverted")
    rpc = JsonRpcClient("http://chain.test", client=provider.client())
    with pytest.raises(RpcError) as exc:
        await rpc.call("eth_call", [])
    assert exc.value.code == -32000
    assert "execution reverted" in str(exc.value)
    await rpc.aclose()


async def test_balance_fetch_and_format(provider, balance_reader):
    provider.balance = 12_345_678
    assert await balance_reader.fetch(ALICE) == 12_345_678

    await balance_reader.set_address(ALICE)
    assert balance_reader.address == ALICE.lower()
    assert balance_reader.balance.raw == 12_345_678
    assert balance_reader.balance.formatted == "12.35"

    call = provider.params("eth_call")[-1]
    assert call[0]["to"] == USDC
    assert call[1] == "latest"


async def test_balance_unknown_until_read(balance_reader):
    assert balance_reader.balance.raw is None
    assert balance_reader.balance.formatted == "0.00"


async def test_balance_refetch_keeps_last_value_on_error(provider, balance_reader):
    provider.balance = 5_000_000
    await balance_reader.set_address(ALICE)
    provider.fail_methods["eth_call"] = (-32000, "node down")

    balance = await balance_reader.refetch()
    assert balance.raw == 5_000_000


async def test_balance_clearing_address_stops_polling(balance_reader):
    await balance_reader.set_address(ALICE)
    assert balance_reader._task is not None
    await balance_reader.set_address(None)
    assert balance_reader._task is None
    assert balance_reader.address is None


def test_balance_reader_rejects_non_positive_interval():
    rpc = JsonRpcClient("http://chain.test", client=httpx.AsyncClient())
    with pytest.raises(ValueError):
        BalanceReader(rpc, USDC, poll_interval_sec=0)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ({"status": 100}, CALLS_PENDING),
        ({"status": 200, "receipts": [{"status": "0x1", "transactionHash": TX_HASH}]}, CALLS_SUCCESS),
        ({"status": 200, "receipts": [{"status": "0x0", "transactionHash": TX_HASH}]}, CALLS_FAILURE),
        ({"status": 500}, CALLS_FAILURE),
        ({"status": "PENDING"}, CALLS_PENDING),
        ({"status": "CONFIRMED", "receipts": [{"status": "0x1", "transactionHash": TX_HASH}]}, CALLS_SUCCESS),
        (None, CALLS_PENDING),
    ],
)
def test_parse_calls_status(raw, expected):
    assert _parse_status(raw).status == expected


async def test_capabilities_empty_without_paymaster(provider, wallet):
    assert await wallet.get_capabilities(ALICE) == {}
    assert "wallet_getCapabilities" not in provider.methods()


async def test_capabilities_with_supported_paymaster(provider):
    provider.paymaster_supported = True
    rpc = JsonRpcClient("http://wallet.test", client=provider.client())
    wallet = WalletClient(rpc, 8453, USDC, paymaster_url="https://paymaster.test")

    capabilities = await wallet.get_capabilities(ALICE)
    assert capabilities == {"paymasterService": {"url": "https://paymaster.test"}}
    assert provider.params("wallet_getCapabilities") == [[ALICE, ["0x2105"]]]
    await rpc.aclose()


async def test_send_and_wait_for_calls(provider, wallet):
    calls_id = await wallet.send_calls(ALICE, [wallet.build_transfer(BOB, 1_000_000)], {})
    assert calls_id == "calls-1"

    sent = provider.params("wallet_sendCalls")[0][0]
    assert sent["chainId"] == "0x2105"
    assert sent["from"] == ALICE
    assert sent["calls"][0]["to"] == USDC
    assert "capabilities" not in sent

    status = await wallet.wait_for_calls(calls_id)
    assert status.status == CALLS_SUCCESS
    assert status.tx_hash == TX_HASH
    assert status.calls_id == "calls-1"
