from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from basesplit.api.deps import error_response, get_signed_in_session
from basesplit.core.errors import ErrorKind
from basesplit.models.profile import HistoryFilter
from basesplit.schemas.payment_request import (
    DirectTransferCreate,
    HistoryEntryResponse,
    HistoryResponse,
    MultiTransferCreate,
    MultiTransferResponse,
    PaymentRequestCreate,
    PaymentRequestResponse,
    PaymentResultResponse,
    RequestsResponse,
    SplitRequestCreate,
)
from basesplit.services.payment_requests import PaymentRequestService
from basesplit.services.session import SessionManager
from basesplit.services.wallet import CALLS_SUCCESS

router = APIRouter(prefix="/requests", tags=["Payment Requests"])


def get_requests_service(session: SessionManager = Depends(get_signed_in_session)) -> PaymentRequestService:
    return session.requests


def _requests_response(service: PaymentRequestService) -> RequestsResponse:
    return RequestsResponse(
        pending_incoming=service.pending_incoming,
        pending_sent=service.pending_sent,
        error=service.error,
        is_refreshing=service.is_refreshing,
        is_creating=service.is_creating,
        is_sending=service.is_sending,
        is_confirming=service.is_confirming,
        paying_request_id=service.paying_request_id,
    )


@router.get("", response_model=RequestsResponse)
async def list_requests(service: PaymentRequestService = Depends(get_requests_service)):
    return _requests_response(service)


@router.post("/refresh", response_model=RequestsResponse)
async def refresh_requests(service: PaymentRequestService = Depends(get_requests_service)):
    await service.refresh()
    return _requests_response(service)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    filter: Optional[HistoryFilter] = Query(None),
    service: PaymentRequestService = Depends(get_requests_service),
):
    history_filter = filter or service.history_filter
    entries = [
        HistoryEntryResponse(
            request=e.request,
            direction=e.direction,
            counterparty=e.counterparty,
            balance_change=e.balance_change,
        )
        for e in service.history(history_filter)
    ]
    return HistoryResponse(history_filter=history_filter, entries=entries)


@router.post("", response_model=PaymentRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: PaymentRequestCreate,
    service: PaymentRequestService = Depends(get_requests_service),
):
    created = await service.create_request(
        body.payer_wallet_address,
        body.amount,
        memo=body.memo,
        save_as_contact=body.save_as_contact,
        contact_label=body.contact_label,
    )
    if created is None:
        raise error_response(service.error_kind, service.create_error)
    return created


@router.post("/split", response_model=List[PaymentRequestResponse], status_code=status.HTTP_201_CREATED)
async def create_split_requests(
    body: SplitRequestCreate,
    service: PaymentRequestService = Depends(get_requests_service),
):
    created = await service.create_split_requests(
        body.participants,
        body.total_amount,
        memo=body.memo,
        include_self=body.include_self,
        mode=body.mode,
        split_type=body.split_type,
    )
    if service.create_error and not created:
        raise error_response(service.error_kind, service.create_error)
    return created


@router.post("/transfers", response_model=PaymentResultResponse, status_code=status.HTTP_201_CREATED)
async def send_direct_transfer(
    body: DirectTransferCreate,
    service: PaymentRequestService = Depends(get_requests_service),
):
    result = await service.send_direct_transfer(
        body.recipient_wallet_address,
        body.amount,
        memo=body.memo,
        save_as_contact=body.save_as_contact,
        contact_label=body.contact_label,
    )
    if result is None:
        if service.create_error:
            raise error_response(service.error_kind, service.create_error)
        raise error_response(service.error_kind, service.error)
    if result.status != CALLS_SUCCESS:
        raise error_response(ErrorKind.SIGNING, service.error)
    if service.record_error:
        raise error_response(ErrorKind.REMOTE, service.record_error)
    return PaymentResultResponse(status=result.status, tx_hash=result.tx_hash)


@router.post("/transfers/batch", response_model=MultiTransferResponse, status_code=status.HTTP_201_CREATED)
async def send_multi_transfer(
    body: MultiTransferCreate,
    service: PaymentRequestService = Depends(get_requests_service),
):
    result = await service.send_multi_transfer(body.recipients, body.amount, memo=body.memo)
    if result is None:
        if service.create_error:
            raise error_response(service.error_kind, service.create_error)
        raise error_response(service.error_kind, service.error)
    if result.status.status != CALLS_SUCCESS:
        raise error_response(ErrorKind.SIGNING, service.error)
    if service.record_error:
        raise error_response(ErrorKind.REMOTE, service.record_error)
    return MultiTransferResponse(
        status=result.status.status,
        tx_hash=result.status.tx_hash,
        transfers=result.transfers,
    )


@router.post("/{request_id}/pay", response_model=PaymentResultResponse)
async def pay_request(
    request_id: UUID,
    service: PaymentRequestService = Depends(get_requests_service),
):
    result = await service.pay_request(request_id)
    if result is None:
        raise error_response(service.error_kind, service.error)
    if result.status != CALLS_SUCCESS:
        raise error_response(ErrorKind.SIGNING, service.error)
    if service.record_error:
        raise error_response(ErrorKind.REMOTE, service.record_error)
    return PaymentResultResponse(
        status=result.status,
        tx_hash=result.tx_hash,
        request=service.find(request_id),
    )


@router.post("/{request_id}/cancel", response_model=RequestsResponse)
async def cancel_request(
    request_id: UUID,
    service: PaymentRequestService = Depends(get_requests_service),
):
    if not await service.cancel_request(request_id):
        raise error_response(service.error_kind, service.error)
    return _requests_response(service)


@router.post("/{request_id}/reject", response_model=RequestsResponse)
async def reject_request(
    request_id: UUID,
    service: PaymentRequestService = Depends(get_requests_service),
):
    if not await service.reject_request(request_id):
        raise error_response(service.error_kind, service.error)
    return _requests_response(service)
