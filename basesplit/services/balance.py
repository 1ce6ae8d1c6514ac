"""
USDC balance reader.

Reads ERC-20 balanceOf(address) through eth_call and keeps the result fresh
by polling on a fixed interval while an address is set. Polling stops when
the address is cleared. refetch() forces an immediate read, e.g. right after
a confirmed send.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx

from basesplit.core.logging import get_logger
from basesplit.core.validation import format_usdc
from basesplit.services.rpc import JsonRpcClient, RpcError

logger = get_logger(__name__)

BALANCE_OF_SELECTOR = "0x70a08231"


def encode_balance_of(address: str) -> str:
    """ABI-encode balanceOf(address) call data."""
    return BALANCE_OF_SELECTOR + address.lower().removeprefix("0x").rjust(64, "0")


@dataclass(frozen=True)
class Balance:
    raw: Optional[int]
    formatted: str


class BalanceReader:
    def __init__(
        self,
        rpc: JsonRpcClient,
        token_address: str,
        poll_interval_sec: float = 10.0,
    ) -> None:
        if poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        self._rpc = rpc
        self._token_address = token_address
        self._poll_interval_sec = poll_interval_sec
        self._address: Optional[str] = None
        self._raw: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def balance(self) -> Balance:
        return Balance(raw=self._raw, formatted=format_usdc(self._raw))

    async def fetch(self, address: str) -> int:
        """One read-only balanceOf call; raises on transport or RPC errors."""
        result = await self._rpc.call(
            "eth_call",
            [{"to": self._token_address, "data": encode_balance_of(address)}, "latest"],
        )
        return int(result, 16) if result and result != "0x" else 0

    async def refetch(self) -> Balance:
        """Read the balance now for the current address; keeps the last value on failure."""
        if not self._address:
            return self.balance
        try:
            self._raw = await self.fetch(self._address)
        except (httpx.HTTPError, RpcError, ValueError) as e:
            logger.warning("balance_fetch_failed", wallet=self._address, error=str(e))
        return self.balance

    async def set_address(self, address: Optional[str]) -> None:
        """Retarget the reader; polling runs only while an address is present."""
        normalized = address.lower() if address else None
        if normalized == self._address and (self._task or not normalized):
            return
        await self.stop()
        self._address = normalized
        self._raw = None
        if normalized:
            await self.refetch()
            self._stop_event = asyncio.Event()
            self._task = asyncio.create_task(self._poll_forever())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_forever(self) -> None:
        logger.info("balance_polling_started", wallet=self._address, interval=self._poll_interval_sec)
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_sec)
            except asyncio.TimeoutError:
                await self.refetch()
        logger.info("balance_polling_stopped", wallet=self._address)
