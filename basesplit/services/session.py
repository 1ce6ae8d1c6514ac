"""
Wallet session: sign-in, sign-out and smart/EOA switching.

Signing in upserts the wallet's profile, builds the per-wallet contacts and
payment-request services, hydrates them from the local cache, loads fresh
data and starts the background refreshers. Signing out stops everything and
clears every cached list.
"""

from typing import List, Optional
from uuid import UUID

import httpx

from basesplit.core.config import Settings, settings as default_settings
from basesplit.core.errors import AppErrors, get_error_message
from basesplit.core.logging import get_logger
from basesplit.core.validation import format_usdc, is_valid_ethereum_address
from basesplit.schemas.profile import BalanceResponse, ProfileResponse
from basesplit.services.balance import BalanceReader
from basesplit.services.cache import LocalCache
from basesplit.services.contacts import ContactService
from basesplit.services.payment_requests import PaymentRequestService
from basesplit.services.queries import QueryService
from basesplit.services.rpc import RpcError
from basesplit.services.wallet import WalletClient

logger = get_logger(__name__)

WALLET_TYPE_SMART = "smart"
WALLET_TYPE_EOA = "eoa"
WALLET_TYPES = (WALLET_TYPE_SMART, WALLET_TYPE_EOA)


class SessionManager:
    def __init__(
        self,
        queries: QueryService,
        cache: LocalCache,
        balance_reader: BalanceReader,
        wallet: WalletClient,
        config: Settings = default_settings,
    ) -> None:
        self.queries = queries
        self.cache = cache
        self.balance_reader = balance_reader
        self.wallet = wallet
        self.config = config
        self._reset()

    def _reset(self) -> None:
        self.wallet_address: Optional[str] = None
        self.wallet_type: Optional[str] = None
        self.smart_account_address: Optional[str] = None
        self.eoa_address: Optional[str] = None
        self.user_id: Optional[UUID] = None
        self.profile: Optional[ProfileResponse] = None
        self.contacts: Optional[ContactService] = None
        self.requests: Optional[PaymentRequestService] = None
        self.error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.profile is not None and self.requests is not None

    async def sign_in(
        self,
        wallet_address: str,
        user_id: Optional[UUID] = None,
        smart_account_address: Optional[str] = None,
        eoa_address: Optional[str] = None,
    ) -> bool:
        """Open a session for the given wallet; returns False with self.error set on failure."""
        address = (wallet_address or "").strip()
        if not is_valid_ethereum_address(address):
            self.error = get_error_message(AppErrors.INVALID_ADDRESS)
            return False
        if self.is_authenticated:
            await self._stop_services()

        self.smart_account_address = smart_account_address.lower() if smart_account_address else None
        self.eoa_address = eoa_address.lower() if eoa_address else None
        self.user_id = user_id
        return await self._activate(address.lower(), user_id)

    async def _activate(self, address: str, user_id: Optional[UUID] = None) -> bool:
        # user_id belongs to the wallet the auth collaborator signed in with
        self.error = None
        result = await self.queries.upsert_profile(address, user_id)
        if result.error:
            logger.error("sign_in_failed", wallet=address, error=result.error)
            self.error = f"Failed to sign in: {result.error}"
            self.profile = None
            return False

        self.wallet_address = address
        self.wallet_type = WALLET_TYPE_SMART if address == self.smart_account_address else WALLET_TYPE_EOA
        self.profile = result.data

        self.contacts = ContactService(self.queries, self.cache, address)
        self.requests = PaymentRequestService(
            self.queries,
            self.cache,
            self.wallet,
            self.contacts,
            address,
            config=self.config,
            on_balance_change=self.balance_reader.refetch,
        )
        self.requests.history_filter = self.profile.history_filter_default

        self.contacts.hydrate_from_cache()
        self.requests.hydrate_from_cache()
        await self.contacts.load()
        await self.requests.load()

        self.requests.start_periodic_refresh()
        await self.balance_reader.set_address(address)
        logger.info("signed_in", wallet=address, wallet_type=self.wallet_type)
        return True

    async def _stop_services(self) -> None:
        if self.requests is not None:
            await self.requests.stop_periodic_refresh()
        await self.balance_reader.set_address(None)

    async def close(self) -> None:
        """Stop background work for a process shutdown; the cache is kept for the next sign-in."""
        await self._stop_services()
        logger.info("session_closed", wallet=self.wallet_address)

    async def sign_out(self) -> None:
        wallet = self.wallet_address
        await self._stop_services()
        removed = self.cache.clear_all()
        self._reset()
        logger.info("signed_out", wallet=wallet, cache_entries_removed=removed)

    async def switch_wallet_type(self, wallet_type: str) -> bool:
        """Re-target the session at the smart account or the EOA."""
        if wallet_type not in WALLET_TYPES:
            self.error = f"Unknown wallet type: {wallet_type}"
            return False
        if not self.is_authenticated:
            self.error = get_error_message(AppErrors.WALLET_NOT_CONNECTED)
            return False

        target = self.smart_account_address if wallet_type == WALLET_TYPE_SMART else self.eoa_address
        if not target:
            self.error = f"No {wallet_type} wallet available"
            return False
        if target == self.wallet_address:
            return True

        previous = self.wallet_address
        await self._stop_services()
        if await self._activate(target):
            return True
        # Fall back to the wallet that was working
        error = self.error
        await self._activate(previous)
        self.error = error
        return False

    async def balances(self) -> List[BalanceResponse]:
        """Balance of the active wallet plus the other linked wallet, if any."""
        active = self.balance_reader.balance
        result = [
            BalanceResponse(
                address=self.balance_reader.address,
                balance=active.raw,
                formatted_balance=active.formatted,
            )
        ]
        for other in (self.smart_account_address, self.eoa_address):
            if not other or other == self.wallet_address:
                continue
            try:
                raw = await self.balance_reader.fetch(other)
            except (httpx.HTTPError, RpcError, ValueError) as e:
                logger.warning("balance_fetch_failed", wallet=other, error=str(e))
                raw = None
            result.append(BalanceResponse(address=other, balance=raw, formatted_balance=format_usdc(raw)))
        return result
