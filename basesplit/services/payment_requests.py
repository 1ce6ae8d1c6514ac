"""
Payment request and transfer orchestrator for one signed-in wallet.

Combines the query layer, the local cache and the wallet client:

- two-phase reads: hydrate_from_cache() fills state instantly, load()
  replaces it with the store's answer once it arrives;
- create / cancel / reject requests, with client-side guards that mirror
  the store's row-level policy;
- pay requests and send direct or batched transfers through the wallet,
  recording the confirmed transaction exactly once per request id (or
  calls id).

Errors never propagate out of the public actions: they land in
``self.error`` (or ``self.create_error`` for form validation) as the
user-readable string the view shows. ``self.record_error`` is set when
the wallet confirmed but the store could not be updated.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
from uuid import UUID

import httpx

from basesplit.core.config import Settings, settings as default_settings
from basesplit.core.errors import ErrorKind
from basesplit.core.logging import bind_wallet
from basesplit.core.validation import (
    is_valid_ethereum_address,
    to_micro_units,
    validate_usdc_amount,
)
from basesplit.models.payment_request import PaymentRequestStatus
from basesplit.models.profile import HistoryFilter
from basesplit.schemas.payment_request import (
    HistoryEntry,
    MultiSendRecipient,
    PaymentRequestResponse,
    SplitMode,
    SplitParticipant,
    SplitType,
)
from basesplit.services.cache import LocalCache
from basesplit.services.contacts import PROFILE_NOT_FOUND, ContactService
from basesplit.services.history import build_history, pending_requests
from basesplit.services.queries import QueryService
from basesplit.services.rpc import RpcError
from basesplit.services.splits import SplitError, SplitShare, compute_multi_send, compute_split
from basesplit.services.wallet import CALLS_SUCCESS, CallsStatus, WalletClient

SENT_LOAD_ERROR = "Failed to load sent requests"
HISTORY_SAVE_ERROR = "Transfer sent, but it could not be saved to history"


@dataclass
class BatchTransferResult:
    status: CallsStatus
    transfers: List[PaymentRequestResponse] = field(default_factory=list)


class PaymentRequestService:
    def __init__(
        self,
        queries: QueryService,
        cache: LocalCache,
        wallet: WalletClient,
        contacts: ContactService,
        wallet_address: str,
        config: Settings = default_settings,
        on_balance_change: Optional[Callable[[], Awaitable[object]]] = None,
    ) -> None:
        self.queries = queries
        self.cache = cache
        self.wallet = wallet
        self.contacts = contacts
        self.wallet_address = wallet_address.lower()
        self.config = config
        self.on_balance_change = on_balance_change
        self.logger = bind_wallet(__name__, self.wallet_address)

        self.incoming: List[PaymentRequestResponse] = []
        self.sent: List[PaymentRequestResponse] = []
        self.history_filter = HistoryFilter.all

        self.error: Optional[str] = None
        self.create_error: Optional[str] = None
        # Funds moved but the store was not updated
        self.record_error: Optional[str] = None
        self.error_kind: Optional[str] = None
        self.is_refreshing = False
        self.is_creating = False
        self.is_sending = False
        self.is_confirming = False
        self.paying_request_id: Optional[UUID] = None

        self._processed_payments: set = set()
        self._processed_transfers: set = set()
        self._refresh_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def _record_failed(self, message: str) -> None:
        self.record_error = message
        self._fail(ErrorKind.REMOTE, message)

    def _fail(self, kind: str, message: str, create: bool = False) -> None:
        self.error_kind = kind
        if create:
            self.create_error = message
        else:
            self.error = message

    # Reads

    def hydrate_from_cache(self) -> bool:
        """Phase one: populate incoming/sent from the local cache. Returns True on a hit."""
        cached = self.cache.read_requests(self.wallet_address)
        if cached is None:
            return False
        self.incoming, self.sent = cached
        return True

    async def load(self, show_refresh_indicator: bool = False) -> None:
        """
        Phase two: fetch incoming and sent requests from the store.

        A failed half keeps its previous (possibly cached) list and adds its
        message to ``self.error``; the successful half is still applied.
        """
        if show_refresh_indicator:
            self.is_refreshing = True
        self.error = None
        errors = []
        fetched = False
        try:
            incoming_result = await self.queries.get_incoming_payment_requests(self.wallet_address)
            if incoming_result.error:
                errors.append(incoming_result.error)
            else:
                self.incoming = incoming_result.data or []
                fetched = True

            profile_result = await self.queries.get_profile_id_by_wallet(self.wallet_address)
            if profile_result.error:
                self.logger.error("profile_load_failed", error=profile_result.error)
                errors.append(SENT_LOAD_ERROR)
            elif profile_result.data:
                sent_result = await self.queries.get_sent_payment_requests(profile_result.data.id)
                if sent_result.error:
                    errors.append(SENT_LOAD_ERROR)
                else:
                    self.sent = sent_result.data or []
                    fetched = True
            else:
                self.sent = []
        finally:
            if show_refresh_indicator:
                self.is_refreshing = False

        self.error = "; ".join(errors) if errors else None
        if errors:
            self.error_kind = ErrorKind.REMOTE
        if fetched:
            self.cache.write_requests(self.wallet_address, self.incoming, self.sent)

    async def refresh(self) -> None:
        """Manual refresh with the visible in-progress flag."""
        await self.load(show_refresh_indicator=True)

    @property
    def pending_incoming(self) -> List[PaymentRequestResponse]:
        return pending_requests(self.incoming)

    @property
    def pending_sent(self) -> List[PaymentRequestResponse]:
        return pending_requests(self.sent)

    def find(self, request_id: UUID) -> Optional[PaymentRequestResponse]:
        return next((r for r in [*self.incoming, *self.sent] if r.id == request_id), None)

    def history(self, history_filter: Optional[HistoryFilter] = None) -> List[HistoryEntry]:
        return build_history(
            self.incoming,
            self.sent,
            history_filter or self.history_filter,
            [c.contact_wallet_address for c in self.contacts.contacts],
        )

    async def load_history_filter(self) -> HistoryFilter:
        result = await self.queries.get_profile_by_wallet(self.wallet_address)
        if result.data:
            self.history_filter = result.data.history_filter_default
        return self.history_filter

    async def set_history_filter(self, new_filter: HistoryFilter) -> bool:
        """Apply the filter immediately; revert if the preference cannot be saved."""
        previous = self.history_filter
        self.history_filter = HistoryFilter(new_filter)
        result = await self.queries.update_history_filter_preference(self.wallet_address, self.history_filter)
        if result.error:
            self.history_filter = previous
            self.logger.error("history_filter_save_failed", error=result.error)
            self._fail(ErrorKind.REMOTE, f"Failed to save filter preference: {result.error}")
            return False
        return True

    # Periodic refresh

    def start_periodic_refresh(self) -> None:
        if self._refresh_task is not None:
            return
        self._stop_event = asyncio.Event()
        self._refresh_task = asyncio.create_task(self._refresh_forever())

    async def stop_periodic_refresh(self) -> None:
        self._stop_event.set()
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None

    async def _refresh_forever(self) -> None:
        interval = self.config.REQUESTS_REFRESH_SECONDS
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                if not self.is_refreshing:
                    await self.load()

    # Creating requests

    def _validate_amount(self, amount_str: str) -> Optional[float]:
        validation = validate_usdc_amount(amount_str, self.config.MIN_AMOUNT, self.config.MAX_AMOUNT)
        if not validation.is_valid:
            self._fail(ErrorKind.VALIDATION, validation.error, create=True)
            return None
        return validation.amount

    async def _profile_id(self) -> Optional[UUID]:
        result = await self.queries.get_profile_id_by_wallet(self.wallet_address)
        if result.error:
            raise RuntimeError(result.error)
        return result.data.id if result.data else None

    async def _maybe_save_contact(self, address: str, save_as_contact: bool, label: Optional[str]) -> None:
        label = (label or "").strip()
        if not save_as_contact or not label or self.contacts.is_contact(address):
            return
        saved = await self.contacts.add_contact(address, label)
        if saved is None:
            self.logger.warning("contact_save_failed", contact=address.lower(), error=self.contacts.error)

    async def create_request(
        self,
        payer_wallet_address: str,
        amount_str: str,
        memo: Optional[str] = None,
        save_as_contact: bool = False,
        contact_label: Optional[str] = None,
    ) -> Optional[PaymentRequestResponse]:
        self.create_error = None
        payer = (payer_wallet_address or "").strip()
        if not is_valid_ethereum_address(payer):
            self._fail(ErrorKind.VALIDATION, "Invalid wallet address", create=True)
            return None
        amount = self._validate_amount(amount_str)
        if amount is None:
            return None

        self.is_creating = True
        try:
            requester_id = await self._profile_id()
            if requester_id is None:
                self._fail(ErrorKind.AUTHORIZATION, PROFILE_NOT_FOUND, create=True)
                return None

            result = await self.queries.create_payment_request(
                requester_id=requester_id,
                payer_wallet_address=payer,
                amount=to_micro_units(amount),
                memo=memo or None,
            )
            if result.error:
                self._fail(ErrorKind.REMOTE, result.error, create=True)
                return None

            await self._maybe_save_contact(payer, save_as_contact, contact_label)
            await self.load()
            return result.data
        except RuntimeError as e:
            self.logger.error("payment_request_create_failed", error=str(e))
            self._fail(ErrorKind.REMOTE, str(e), create=True)
            return None
        finally:
            self.is_creating = False

    async def create_split_requests(
        self,
        participants: Sequence[SplitParticipant],
        total_str: str,
        memo: Optional[str] = None,
        include_self: bool = False,
        mode: SplitMode = SplitMode.split,
        split_type: SplitType = SplitType.equal,
    ) -> List[PaymentRequestResponse]:
        """Create one pending request per participant of a split bill."""
        self.create_error = None
        try:
            shares = compute_split(
                participants,
                total_str,
                own_address=self.wallet_address,
                include_self=include_self,
                mode=mode,
                min_amount=self.config.MIN_AMOUNT,
                max_total=self.config.MAX_SPLIT_TOTAL,
                split_type=split_type,
            )
        except SplitError as e:
            self._fail(ErrorKind.VALIDATION, str(e), create=True)
            return []

        self.is_creating = True
        created = []
        try:
            requester_id = await self._profile_id()
            if requester_id is None:
                self._fail(ErrorKind.AUTHORIZATION, PROFILE_NOT_FOUND, create=True)
                return []

            failures = []
            for share in shares:
                result = await self.queries.create_payment_request(
                    requester_id=requester_id,
                    payer_wallet_address=share.address,
                    amount=to_micro_units(share.amount),
                    memo=memo or None,
                )
                if result.error:
                    failures.append(f"{share.address}: {result.error}")
                else:
                    created.append(result.data)
            if failures:
                self._fail(ErrorKind.REMOTE, "Failed to create some requests: " + "; ".join(failures), create=True)
            await self.load()
            return created
        except RuntimeError as e:
            self.logger.error("split_requests_create_failed", error=str(e))
            self._fail(ErrorKind.REMOTE, str(e), create=True)
            return created
        finally:
            self.is_creating = False

    # Cancel / reject

    async def cancel_request(self, request_id: UUID) -> bool:
        return await self._close_request(request_id, "cancel")

    async def reject_request(self, request_id: UUID) -> bool:
        return await self._close_request(request_id, "reject")

    async def _close_request(self, request_id: UUID, action: str) -> bool:
        self.error = None
        request = self.find(request_id)
        if request is None:
            self._fail(ErrorKind.NOT_FOUND, "Request not found")
            return False

        if action == "reject" and request.payer_wallet_address != self.wallet_address:
            self._fail(ErrorKind.AUTHORIZATION, "You can only reject requests sent to you")
            return False
        if action == "cancel" and not any(r.id == request_id for r in self.sent):
            self._fail(ErrorKind.AUTHORIZATION, "You can only cancel requests you created")
            return False
        if request.status != PaymentRequestStatus.pending:
            self._fail(ErrorKind.VALIDATION, "Request is no longer pending")
            return False

        status = PaymentRequestStatus.rejected if action == "reject" else PaymentRequestStatus.cancelled
        result = await self.queries.update_payment_request_status(request_id, status)
        if result.error:
            self._fail(ErrorKind.REMOTE, f"Failed to {action} request: {result.error}")
            return False

        self.logger.info("payment_request_closed", request_id=str(request_id), status=status.value)
        await self.load()
        return True

    # Paying requests

    async def _capabilities(self) -> dict:
        try:
            return await self.wallet.get_capabilities(self.wallet_address)
        except (httpx.HTTPError, RpcError) as e:
            # Unsponsored send still works
            self.logger.warning("capabilities_query_failed", error=str(e))
            return {}

    async def _submit_transfer(self, to_address: str, amount: int) -> CallsStatus:
        return await self._submit_calls([(to_address, amount)])

    async def _submit_calls(self, transfers: List[Tuple[str, int]]) -> CallsStatus:
        """Send one USDC transfer call per (address, micro-units) pair as a single batch."""
        self.is_sending = True
        try:
            capabilities = await self._capabilities()
            calls_id = await self.wallet.send_calls(
                self.wallet_address,
                [self.wallet.build_transfer(to, amount) for to, amount in transfers],
                capabilities,
            )
        finally:
            self.is_sending = False

        self.is_confirming = True
        try:
            return await self.wallet.wait_for_calls(calls_id)
        finally:
            self.is_confirming = False

    async def pay_request(self, request_id: UUID) -> Optional[CallsStatus]:
        """Send the requested amount to the requester and mark the request paid on success."""
        self.error = None
        self.record_error = None
        request = self.find(request_id)
        if request is None:
            self._fail(ErrorKind.NOT_FOUND, "Request not found")
            return None
        if request.payer_wallet_address != self.wallet_address:
            self._fail(ErrorKind.AUTHORIZATION, "You can only pay requests sent to you")
            return None
        if request.status != PaymentRequestStatus.pending:
            self._fail(ErrorKind.VALIDATION, "Request is no longer pending")
            return None
        if not request.requester_wallet_address:
            self.logger.error("requester_wallet_missing", request_id=str(request_id))
            self._fail(ErrorKind.REMOTE, "No requester wallet found")
            return None

        self.paying_request_id = request.id
        try:
            status = await self._submit_transfer(request.requester_wallet_address, request.amount)
            if status.status == CALLS_SUCCESS and status.tx_hash:
                await self.confirm_payment(request.id, status.tx_hash)
            else:
                self._fail(ErrorKind.SIGNING, "Transaction failed")
            return status
        except (httpx.HTTPError, RpcError, ValueError) as e:
            self.logger.warning("payment_send_failed", request_id=str(request_id), error=str(e))
            self._fail(ErrorKind.SIGNING, f"Failed to send payment: {e}")
            return None
        finally:
            self.paying_request_id = None

    async def confirm_payment(self, request_id: UUID, tx_hash: str) -> bool:
        """
        Record a confirmed payment. Idempotent per request id: a second
        confirmation for the same request issues no status update.
        """
        if request_id in self._processed_payments:
            self.logger.info("payment_confirmation_duplicate", request_id=str(request_id))
            return False
        self._processed_payments.add(request_id)
        self.record_error = None

        result = await self.queries.update_payment_request_status(
            request_id, PaymentRequestStatus.paid, tx_hash
        )
        if result.error:
            # Allow a later confirmation to try again
            self._processed_payments.discard(request_id)
            self._record_failed(f"Failed to mark request as paid: {result.error}")
            return False

        self.logger.info("payment_confirmed", request_id=str(request_id), tx_hash=tx_hash)
        await self.load()
        await self._balance_changed()
        return True

    # Direct transfers

    async def send_direct_transfer(
        self,
        recipient_wallet_address: str,
        amount_str: str,
        memo: Optional[str] = None,
        save_as_contact: bool = False,
        contact_label: Optional[str] = None,
    ) -> Optional[CallsStatus]:
        self.create_error = None
        self.error = None
        self.record_error = None
        recipient = (recipient_wallet_address or "").strip()
        if not is_valid_ethereum_address(recipient):
            self._fail(ErrorKind.VALIDATION, "Invalid wallet address", create=True)
            return None
        amount = self._validate_amount(amount_str)
        if amount is None:
            return None
        micro_units = to_micro_units(amount)

        try:
            status = await self._submit_transfer(recipient, micro_units)
        except (httpx.HTTPError, RpcError, ValueError) as e:
            self.logger.warning("transfer_send_failed", recipient=recipient.lower(), error=str(e))
            self._fail(ErrorKind.SIGNING, f"Failed to send payment: {e}")
            return None

        if status.status != CALLS_SUCCESS or not status.tx_hash:
            self._fail(ErrorKind.SIGNING, "Transaction failed")
            return status

        await self.record_transfer(status.calls_id, recipient, micro_units, status.tx_hash, memo)
        await self._maybe_save_contact(recipient, save_as_contact, contact_label)
        await self._balance_changed()
        return status

    async def record_transfer(
        self,
        calls_id: str,
        recipient_wallet_address: str,
        amount: int,
        tx_hash: str,
        memo: Optional[str] = None,
    ) -> Optional[PaymentRequestResponse]:
        """Write the history entry for a confirmed transfer, once per calls id."""
        if calls_id in self._processed_transfers:
            self.logger.info("transfer_confirmation_duplicate", calls_id=calls_id)
            return None
        self._processed_transfers.add(calls_id)
        self.record_error = None

        try:
            sender_id = await self._profile_id()
        except RuntimeError as e:
            sender_id = None
            self.logger.error("profile_load_failed", error=str(e))
        if sender_id is None:
            # The funds moved; only the history entry is missing
            self._processed_transfers.discard(calls_id)
            self._record_failed(HISTORY_SAVE_ERROR)
            return None

        result = await self.queries.create_direct_transfer(
            sender_id, recipient_wallet_address, amount, tx_hash, memo or None
        )
        if result.error:
            self._processed_transfers.discard(calls_id)
            self._record_failed(f"{HISTORY_SAVE_ERROR}: {result.error}")
            return None

        await self.load()
        return result.data

    async def send_multi_transfer(
        self,
        recipients: Sequence[MultiSendRecipient],
        amount_str: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> Optional[BatchTransferResult]:
        """
        Pay several recipients in one wallet batch.

        With amount_str every recipient gets that amount, otherwise each
        recipient's own amount. One transfer call per recipient goes into a
        single wallet_sendCalls, and once the batch confirms one transfer
        record per recipient is written.
        """
        self.create_error = None
        self.error = None
        self.record_error = None
        try:
            shares = compute_multi_send(
                recipients,
                amount_str,
                min_amount=self.config.MIN_AMOUNT,
                max_amount=self.config.MAX_AMOUNT,
            )
        except SplitError as e:
            self._fail(ErrorKind.VALIDATION, str(e), create=True)
            return None

        try:
            status = await self._submit_calls([(s.address, to_micro_units(s.amount)) for s in shares])
        except (httpx.HTTPError, RpcError, ValueError) as e:
            self.logger.warning("multi_transfer_send_failed", recipients=len(shares), error=str(e))
            self._fail(ErrorKind.SIGNING, f"Failed to send transfers: {e}")
            return None

        if status.status != CALLS_SUCCESS or not status.tx_hash:
            self._fail(ErrorKind.SIGNING, "Transaction failed")
            return BatchTransferResult(status)

        transfers = await self.record_batch_transfer(status.calls_id, shares, status.tx_hash, memo)
        await self._balance_changed()
        return BatchTransferResult(status, transfers)

    async def record_batch_transfer(
        self,
        calls_id: str,
        shares: Sequence[SplitShare],
        tx_hash: str,
        memo: Optional[str] = None,
    ) -> List[PaymentRequestResponse]:
        """
        Write one history entry per recipient of a confirmed batch. Each
        (calls id, recipient) pair is recorded at most once, so a retry after a
        partial failure only writes the entries that are still missing.
        """
        pending = [s for s in shares if (calls_id, s.address) not in self._processed_transfers]
        if not pending:
            self.logger.info("transfer_confirmation_duplicate", calls_id=calls_id)
            return []
        keys = {(calls_id, s.address) for s in pending}
        self._processed_transfers.update(keys)
        self.record_error = None

        try:
            sender_id = await self._profile_id()
        except RuntimeError as e:
            sender_id = None
            self.logger.error("profile_load_failed", error=str(e))
        if sender_id is None:
            self._processed_transfers.difference_update(keys)
            self._record_failed(HISTORY_SAVE_ERROR)
            return []

        recorded, failures = [], []
        for share in pending:
            result = await self.queries.create_direct_transfer(
                sender_id, share.address, to_micro_units(share.amount), tx_hash, memo or None
            )
            if result.error:
                self._processed_transfers.discard((calls_id, share.address))
                failures.append(f"{share.address}: {result.error}")
            else:
                recorded.append(result.data)
        self.logger.info("batch_transfer_recorded", calls_id=calls_id, recorded=len(recorded), failed=len(failures))
        await self.load()
        if failures:
            self._record_failed(f"{HISTORY_SAVE_ERROR}: " + "; ".join(failures))
        return recorded

    async def _balance_changed(self) -> None:
        if self.on_balance_change is not None:
            await self.on_balance_change()
