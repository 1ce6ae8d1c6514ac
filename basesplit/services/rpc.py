"""
Minimal JSON-RPC 2.0 client over httpx, shared by the balance reader
(chain RPC) and the wallet client (EIP-5792 provider).
"""

import itertools
from typing import Any, Optional

import httpx

from basesplit.core.logging import get_logger

logger = get_logger(__name__)


class RpcError(Exception):
    """Raised when the endpoint answers with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class JsonRpcClient:
    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

    async def call(self, method: str, params: list) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        resp = await self._client.post(self._url, json=body)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            err = data["error"] or {}
            logger.warning("rpc_error", method=method, code=err.get("code"), error=err.get("message"))
            raise RpcError(err.get("message", "RPC error"), err.get("code"), err.get("data"))
        return data.get("result")

    async def aclose(self) -> None:
        await self._client.aclose()
