"""
Pytest fixtures for BaseSplit tests.

Each test gets a fresh SQLite file database under tmp_path, a cache
directory of its own and a fake EIP-5792 wallet provider served through
httpx.MockTransport, so the real RPC, wallet and query code runs end to end.
"""

from __future__ import annotations

import json

import httpx
import pytest

from basesplit.core.database import create_engine_and_sessionmaker, init_models
from basesplit.schemas.common import QueryResult
from basesplit.services.balance import BalanceReader
from basesplit.services.cache import LocalCache
from basesplit.services.contacts import ContactService
from basesplit.services.payment_requests import PaymentRequestService
from basesplit.services.queries import QueryService
from basesplit.services.rpc import JsonRpcClient
from basesplit.services.wallet import WalletClient

USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
ALICE = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
BOB = "0x" + "b" * 40
CAROL = "0x" + "c" * 40
TX_HASH = "0x" + "ab" * 32


class FakeWalletProvider:
    """JSON-RPC endpoint standing in for both the chain node and the wallet."""

    def __init__(self, calls_status=200, balance=0, paymaster_supported=False):
        self.calls_status = calls_status
        self.balance = balance
        self.paymaster_supported = paymaster_supported
        self.tx_hash = TX_HASH
        self.fail_methods = {}
        self.requests = []
        self._calls = 0

    def methods(self) -> list:
        return [method for method, _ in self.requests]

    def params(self, method: str) -> list:
        return [params for m, params in self.requests if m == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.requests.append((method, body["params"]))

        if method in self.fail_methods:
            code, message = self.fail_methods[method]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": code, "message": message}})

        if method == "eth_call":
            result = hex(self.balance)
        elif method == "wallet_getCapabilities":
            result = {"0x2105": {"paymasterService": {"supported": self.paymaster_supported}}}
        elif method == "wallet_sendCalls":
            self._calls += 1
            result = {"id": f"calls-{self._calls}"}
        elif method == "wallet_getCallsStatus":
            receipts = []
            if self.calls_status == 200:
                receipts = [{"status": "0x1", "transactionHash": self.tx_hash}]
            result = {"status": self.calls_status, "receipts": receipts}
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "Method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class QuerySpy:
    """Wraps a QueryService, recording every call and optionally failing chosen methods."""

    def __init__(self, inner: QueryService):
        self._inner = inner
        self.calls = []
        self.failures = {}

    def fail(self, method: str, error: str = "connection refused", error_code: str = "database_error") -> None:
        self.failures[method] = QueryResult(error=error, error_code=error_code)

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        async def wrapper(*args, **kwargs):
            self.calls.append(name)
            if name in self.failures:
                return self.failures[name]
            return await attr(*args, **kwargs)

        return wrapper


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'basesplit.db'}"


@pytest.fixture
async def session_factory(database_url):
    engine, factory = create_engine_and_sessionmaker(database_url)
    await init_models(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def queries(session_factory):
    return QueryService(session_factory)


@pytest.fixture
def spy(queries):
    return QuerySpy(queries)


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache")


@pytest.fixture
def provider():
    return FakeWalletProvider()


@pytest.fixture
async def wallet(provider):
    rpc = JsonRpcClient("http://wallet.test", client=provider.client())
    yield WalletClient(rpc, chain_id=8453, token_address=USDC, status_poll_interval_sec=0)
    await rpc.aclose()


@pytest.fixture
async def balance_reader(provider):
    rpc = JsonRpcClient("http://chain.test", client=provider.client())
    reader = BalanceReader(rpc, USDC, poll_interval_sec=60)
    yield reader
    await reader.stop()
    await rpc.aclose()


@pytest.fixture
def make_services(spy, cache, wallet):
    """Build (contacts, requests) orchestrators for a wallet over the spied query layer."""

    def _make(address: str):
        contacts = ContactService(spy, cache, address)
        requests = PaymentRequestService(spy, cache, wallet, contacts, address)
        return contacts, requests

    return _make
