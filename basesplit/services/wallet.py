"""
Wallet client for submitting token transfers through an EIP-5792 provider.

The wallet signs and broadcasts; this module only builds the ERC-20
transfer call, asks for gas sponsorship where the provider supports it,
submits the batch and tracks its status until it is terminal.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from basesplit.core.logging import get_logger
from basesplit.services.rpc import JsonRpcClient

logger = get_logger(__name__)

TRANSFER_SELECTOR = "0xa9059cbb"

CALLS_PENDING = "pending"
CALLS_SUCCESS = "success"
CALLS_FAILURE = "failure"


def encode_transfer(to_address: str, amount: int) -> str:
    """ABI-encode transfer(address,uint256) call data."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    to_word = to_address.lower().removeprefix("0x").rjust(64, "0")
    amount_word = format(amount, "x").rjust(64, "0")
    return TRANSFER_SELECTOR + to_word + amount_word


@dataclass(frozen=True)
class ContractCall:
    to: str
    data: str
    value: str = "0x0"

    def to_rpc(self) -> dict:
        return {"to": self.to, "data": self.data, "value": self.value}


@dataclass
class CallsStatus:
    status: str
    tx_hash: Optional[str] = None
    receipts: list = field(default_factory=list)
    calls_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (CALLS_SUCCESS, CALLS_FAILURE)


def _parse_status(result: Any) -> CallsStatus:
    result = result or {}
    raw = result.get("status")
    receipts = result.get("receipts") or []

    if isinstance(raw, int):
        # EIP-5792 v2 numeric codes: 1xx pending, 2xx confirmed, 4xx/5xx/6xx failed
        if raw < 200:
            status = CALLS_PENDING
        elif raw < 300:
            status = CALLS_SUCCESS
        else:
            status = CALLS_FAILURE
    else:
        text = str(raw or "").upper()
        if text == "CONFIRMED":
            status = CALLS_SUCCESS
        elif text in ("PENDING", ""):
            status = CALLS_PENDING
        else:
            status = CALLS_FAILURE

    if status == CALLS_SUCCESS and receipts:
        # A mined-but-reverted receipt is a failure
        receipt_status = str(receipts[0].get("status", "0x1")).lower()
        if receipt_status in ("0x0", "reverted"):
            status = CALLS_FAILURE

    tx_hash = receipts[0].get("transactionHash") if receipts else None
    return CallsStatus(status=status, tx_hash=tx_hash, receipts=receipts)


class WalletClient:
    def __init__(
        self,
        rpc: JsonRpcClient,
        chain_id: int,
        token_address: str,
        paymaster_url: Optional[str] = None,
        status_poll_interval_sec: float = 1.0,
    ) -> None:
        self._rpc = rpc
        self.chain_id = chain_id
        self.token_address = token_address
        self._paymaster_url = paymaster_url
        self._status_poll_interval_sec = status_poll_interval_sec

    async def get_capabilities(self, address: str) -> dict:
        """
        Capabilities to attach to a send for this account.

        Returns a paymasterService capability when the provider reports
        sponsorship support on the active chain and a paymaster URL is
        configured, otherwise an empty dict.
        """
        if not self._paymaster_url:
            return {}
        chain_hex = hex(self.chain_id)
        result = await self._rpc.call("wallet_getCapabilities", [address, [chain_hex]])
        for_chain = (result or {}).get(chain_hex) or (result or {}).get(str(self.chain_id)) or {}
        paymaster = for_chain.get("paymasterService") or {}
        if paymaster.get("supported"):
            return {"paymasterService": {"url": self._paymaster_url}}
        return {}

    def build_transfer(self, to_address: str, amount: int) -> ContractCall:
        return ContractCall(to=self.token_address, data=encode_transfer(to_address, amount))

    async def send_calls(
        self,
        from_address: str,
        calls: list[ContractCall],
        capabilities: Optional[dict] = None,
    ) -> str:
        """Submit a batch of calls; returns the provider's calls id."""
        params = {
            "version": "2.0.0",
            "chainId": hex(self.chain_id),
            "from": from_address,
            "atomicRequired": True,
            "calls": [c.to_rpc() for c in calls],
        }
        if capabilities:
            params["capabilities"] = capabilities
        result = await self._rpc.call("wallet_sendCalls", [params])
        calls_id = result.get("id") if isinstance(result, dict) else result
        logger.info("wallet_calls_submitted", calls_id=calls_id, call_count=len(calls), sponsored=bool(capabilities))
        return calls_id

    async def get_calls_status(self, calls_id: str) -> CallsStatus:
        result = await self._rpc.call("wallet_getCallsStatus", [calls_id])
        status = _parse_status(result)
        status.calls_id = calls_id
        return status

    async def wait_for_calls(self, calls_id: str) -> CallsStatus:
        """Poll the calls status until it is success or failure."""
        while True:
            status = await self.get_calls_status(calls_id)
            if status.is_terminal:
                logger.info("wallet_calls_settled", calls_id=calls_id, status=status.status, tx_hash=status.tx_hash)
                return status
            await asyncio.sleep(self._status_poll_interval_sec)
