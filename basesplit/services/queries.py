"""
Query layer over the relational store.

Every function maps to one CRUD call against profiles, contacts or
payment_requests and returns a QueryResult instead of raising. Wallet
addresses are lowercased before they are written or compared. Callers
decide whether to surface, retry or ignore an error; nothing here retries.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from basesplit.core.database import utcnow
from basesplit.core.errors import (
    AppErrors,
    PostgrestErrors,
    error_code_from_exception,
    get_error_message,
    is_unique_violation,
)
from basesplit.core.logging import get_logger
from basesplit.models.contact import Contact
from basesplit.models.payment_request import (
    PaymentRequest,
    PaymentRequestStatus,
    PaymentRequestType,
)
from basesplit.models.profile import HistoryFilter, Profile
from basesplit.schemas.common import QueryResult
from basesplit.schemas.contact import ContactResponse
from basesplit.schemas.payment_request import PaymentRequestResponse
from basesplit.schemas.profile import ProfileId, ProfileResponse

logger = get_logger(__name__)

SETTABLE_STATUSES = (
    PaymentRequestStatus.paid,
    PaymentRequestStatus.cancelled,
    PaymentRequestStatus.rejected,
)


def _failure(operation: str, exc: Exception) -> QueryResult:
    code = error_code_from_exception(exc)
    message = str(getattr(exc, "orig", None) or exc)
    logger.warning("query_failed", operation=operation, error_code=code, error=message)
    return QueryResult(error=message, error_code=code)


def _with_requester():
    return select(PaymentRequest).options(selectinload(PaymentRequest.requester))


class QueryService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # Profile queries

    async def get_profile_by_wallet(self, wallet_address: str) -> QueryResult[ProfileResponse]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Profile).where(Profile.wallet_address == wallet_address.lower())
                )
                profile = result.scalar_one_or_none()
                # No rows is expected for new users
                if profile is None:
                    return QueryResult()
                return QueryResult(data=ProfileResponse.model_validate(profile))
        except SQLAlchemyError as e:
            return _failure("get_profile_by_wallet", e)

    async def get_profile_id_by_wallet(self, wallet_address: str) -> QueryResult[ProfileId]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Profile.id).where(Profile.wallet_address == wallet_address.lower())
                )
                profile_id = result.scalar_one_or_none()
                if profile_id is None:
                    return QueryResult()
                return QueryResult(data=ProfileId(id=profile_id))
        except SQLAlchemyError as e:
            return _failure("get_profile_id_by_wallet", e)

    async def upsert_profile(
        self, wallet_address: str, user_id: Optional[UUID] = None
    ) -> QueryResult[ProfileResponse]:
        """Insert the profile for a wallet; if it already exists, refresh last_seen_at."""
        normalized = wallet_address.lower()
        now = utcnow()
        try:
            async with self._session_factory() as db:
                profile = Profile(wallet_address=normalized, last_seen_at=now)
                if user_id is not None:
                    profile.id = user_id
                db.add(profile)
                try:
                    await db.commit()
                    logger.info("profile_created", wallet=normalized)
                except SQLAlchemyError as e:
                    await db.rollback()
                    if not is_unique_violation(error_code_from_exception(e)):
                        raise
                    await db.execute(
                        update(Profile)
                        .where(Profile.wallet_address == normalized)
                        .values(last_seen_at=now)
                    )
                    await db.commit()

                result = await db.execute(select(Profile).where(Profile.wallet_address == normalized))
                return QueryResult(data=ProfileResponse.model_validate(result.scalar_one()))
        except SQLAlchemyError as e:
            return _failure("upsert_profile", e)

    async def update_history_filter_preference(
        self, wallet_address: str, filter_type: HistoryFilter
    ) -> QueryResult[ProfileResponse]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Profile).where(Profile.wallet_address == wallet_address.lower())
                )
                profile = result.scalar_one_or_none()
                if profile is None:
                    return QueryResult(
                        error=get_error_message(PostgrestErrors.NO_ROWS_RETURNED),
                        error_code=PostgrestErrors.NO_ROWS_RETURNED,
                    )
                profile.history_filter_default = HistoryFilter(filter_type)
                await db.commit()
                await db.refresh(profile)
                return QueryResult(data=ProfileResponse.model_validate(profile))
        except SQLAlchemyError as e:
            return _failure("update_history_filter_preference", e)

    # Contact queries

    async def get_contacts_by_owner_id(self, owner_id: UUID) -> QueryResult[List[ContactResponse]]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Contact)
                    .where(Contact.owner_id == owner_id)
                    .order_by(Contact.created_at.desc())
                )
                contacts = [ContactResponse.model_validate(c) for c in result.scalars().all()]
                return QueryResult(data=contacts)
        except SQLAlchemyError as e:
            return _failure("get_contacts_by_owner_id", e)

    async def create_contact(
        self,
        owner_id: UUID,
        contact_wallet_address: str,
        label: str,
        note: Optional[str] = None,
    ) -> QueryResult[ContactResponse]:
        try:
            async with self._session_factory() as db:
                contact = Contact(
                    owner_id=owner_id,
                    contact_wallet_address=contact_wallet_address.lower(),
                    label=label,
                    note=note or None,
                )
                db.add(contact)
                await db.commit()
                await db.refresh(contact)
                return QueryResult(data=ContactResponse.model_validate(contact))
        except SQLAlchemyError as e:
            return _failure("create_contact", e)

    async def update_contact(
        self,
        contact_id: UUID,
        label: Optional[str] = None,
        note: Optional[str] = None,
    ) -> QueryResult[ContactResponse]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Contact).where(Contact.id == contact_id))
                contact = result.scalar_one_or_none()
                if contact is None:
                    return QueryResult(
                        error=get_error_message(PostgrestErrors.NO_ROWS_RETURNED),
                        error_code=PostgrestErrors.NO_ROWS_RETURNED,
                    )
                if label is not None:
                    contact.label = label
                if note is not None:
                    contact.note = note or None
                contact.updated_at = utcnow()
                await db.commit()
                await db.refresh(contact)
                return QueryResult(data=ContactResponse.model_validate(contact))
        except SQLAlchemyError as e:
            return _failure("update_contact", e)

    async def delete_contact(self, contact_id: UUID) -> QueryResult[bool]:
        # Ownership is enforced by the store's row-level policy
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Contact).where(Contact.id == contact_id))
                contact = result.scalar_one_or_none()
                if contact is None:
                    return QueryResult(
                        error=get_error_message(PostgrestErrors.NO_ROWS_RETURNED),
                        error_code=PostgrestErrors.NO_ROWS_RETURNED,
                    )
                await db.delete(contact)
                await db.commit()
                return QueryResult(data=True)
        except SQLAlchemyError as e:
            return _failure("delete_contact", e)

    # Payment request queries

    async def get_incoming_payment_requests(
        self, payer_wallet_address: str
    ) -> QueryResult[List[PaymentRequestResponse]]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    _with_requester()
                    .where(PaymentRequest.payer_wallet_address == payer_wallet_address.lower())
                    .order_by(PaymentRequest.created_at.desc())
                )
                requests = [PaymentRequestResponse.model_validate(r) for r in result.scalars().all()]
                return QueryResult(data=requests)
        except SQLAlchemyError as e:
            return _failure("get_incoming_payment_requests", e)

    async def get_sent_payment_requests(
        self, requester_id: UUID
    ) -> QueryResult[List[PaymentRequestResponse]]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    _with_requester()
                    .where(PaymentRequest.requester_id == requester_id)
                    .order_by(PaymentRequest.created_at.desc())
                )
                requests = [PaymentRequestResponse.model_validate(r) for r in result.scalars().all()]
                return QueryResult(data=requests)
        except SQLAlchemyError as e:
            return _failure("get_sent_payment_requests", e)

    async def get_payment_request(self, request_id: UUID) -> QueryResult[PaymentRequestResponse]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(_with_requester().where(PaymentRequest.id == request_id))
                request = result.scalar_one_or_none()
                if request is None:
                    return QueryResult(
                        error=get_error_message(PostgrestErrors.NO_ROWS_RETURNED),
                        error_code=PostgrestErrors.NO_ROWS_RETURNED,
                    )
                return QueryResult(data=PaymentRequestResponse.model_validate(request))
        except SQLAlchemyError as e:
            return _failure("get_payment_request", e)

    async def _insert_request(self, db: AsyncSession, request: PaymentRequest) -> PaymentRequestResponse:
        db.add(request)
        await db.commit()
        result = await db.execute(
            _with_requester()
            .where(PaymentRequest.id == request.id)
            .execution_options(populate_existing=True)
        )
        return PaymentRequestResponse.model_validate(result.scalar_one())

    async def create_payment_request(
        self,
        requester_id: UUID,
        payer_wallet_address: str,
        amount: int,
        memo: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> QueryResult[PaymentRequestResponse]:
        """Insert a pending request; amount is in USDC micro-units."""
        try:
            async with self._session_factory() as db:
                request = PaymentRequest(
                    requester_id=requester_id,
                    type=PaymentRequestType.request,
                    payer_wallet_address=payer_wallet_address.lower(),
                    amount=amount,
                    memo=memo or None,
                    status=PaymentRequestStatus.pending,
                    expires_at=expires_at,
                )
                created = await self._insert_request(db, request)
                logger.info("payment_request_created", request_id=str(created.id), amount=amount)
                return QueryResult(data=created)
        except SQLAlchemyError as e:
            return _failure("create_payment_request", e)

    async def update_payment_request_status(
        self,
        request_id: UUID,
        status: PaymentRequestStatus,
        tx_hash: Optional[str] = None,
    ) -> QueryResult[PaymentRequestResponse]:
        """
        Move a pending request to paid, cancelled or rejected.

        When status is paid and tx_hash is given, tx_hash and paid_at are set
        together; updated_at is always refreshed. Requests that already left
        pending, and transfer records, are not touched. The pending check and
        the write are one conditional UPDATE, so of two concurrent transitions
        only the first to commit wins.
        """
        try:
            status = PaymentRequestStatus(status)
        except ValueError:
            return QueryResult(
                error=f"Cannot set status to {status}",
                error_code=AppErrors.INVALID_STATUS_TRANSITION,
            )
        if status not in SETTABLE_STATUSES:
            return QueryResult(
                error=f"Cannot set status to {status.value}",
                error_code=AppErrors.INVALID_STATUS_TRANSITION,
            )

        now = utcnow()
        values = {"status": status, "updated_at": now}
        if status == PaymentRequestStatus.paid and tx_hash:
            values.update(tx_hash=tx_hash, paid_at=now)

        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(PaymentRequest)
                    .where(
                        PaymentRequest.id == request_id,
                        PaymentRequest.status == PaymentRequestStatus.pending,
                        PaymentRequest.type == PaymentRequestType.request,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                updated = result.rowcount
                await db.commit()

                row = await db.execute(
                    _with_requester()
                    .where(PaymentRequest.id == request_id)
                    .execution_options(populate_existing=True)
                )
                request = row.scalar_one_or_none()
                if request is None:
                    return QueryResult(
                        error=get_error_message(PostgrestErrors.NO_ROWS_RETURNED),
                        error_code=PostgrestErrors.NO_ROWS_RETURNED,
                    )
                if updated == 0:
                    return QueryResult(
                        error=get_error_message(AppErrors.INVALID_STATUS_TRANSITION),
                        error_code=AppErrors.INVALID_STATUS_TRANSITION,
                    )

                logger.info(
                    "payment_request_status_updated",
                    request_id=str(request_id),
                    status=status.value,
                    tx_hash=tx_hash,
                )
                return QueryResult(data=PaymentRequestResponse.model_validate(request))
        except SQLAlchemyError as e:
            return _failure("update_payment_request_status", e)

    async def create_direct_transfer(
        self,
        sender_id: UUID,
        recipient_wallet_address: str,
        amount: int,
        tx_hash: str,
        memo: Optional[str] = None,
    ) -> QueryResult[PaymentRequestResponse]:
        """Record a confirmed direct transfer as a paid history entry."""
        now = utcnow()
        try:
            async with self._session_factory() as db:
                transfer = PaymentRequest(
                    requester_id=sender_id,
                    type=PaymentRequestType.transfer,
                    payer_wallet_address=recipient_wallet_address.lower(),
                    amount=amount,
                    memo=memo or None,
                    status=PaymentRequestStatus.paid,
                    tx_hash=tx_hash,
                    paid_at=now,
                )
                created = await self._insert_request(db, transfer)
                logger.info("direct_transfer_recorded", request_id=str(created.id), tx_hash=tx_hash)
                return QueryResult(data=created)
        except SQLAlchemyError as e:
            return _failure("create_direct_transfer", e)
