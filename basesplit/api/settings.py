from fastapi import APIRouter, Depends

from basesplit.api.deps import error_response, get_signed_in_session
from basesplit.schemas.profile import BalanceResponse, HistoryFilterUpdate, SettingsResponse
from basesplit.services.session import SessionManager

router = APIRouter(prefix="/settings", tags=["Settings"])


async def _settings_response(session: SessionManager) -> SettingsResponse:
    return SettingsResponse(
        wallet_type=session.wallet_type,
        smart_account_address=session.smart_account_address,
        eoa_address=session.eoa_address,
        balances=await session.balances(),
        history_filter=session.requests.history_filter,
    )


@router.get("", response_model=SettingsResponse)
async def get_settings(session: SessionManager = Depends(get_signed_in_session)):
    return await _settings_response(session)


@router.put("/history-filter", response_model=SettingsResponse)
async def update_history_filter(
    body: HistoryFilterUpdate,
    session: SessionManager = Depends(get_signed_in_session),
):
    service = session.requests
    if not await service.set_history_filter(body.filter_type):
        raise error_response(service.error_kind, service.error)
    return await _settings_response(session)


@router.post("/balance/refresh", response_model=BalanceResponse)
async def refresh_balance(session: SessionManager = Depends(get_signed_in_session)):
    balance = await session.balance_reader.refetch()
    return BalanceResponse(
        address=session.balance_reader.address,
        balance=balance.raw,
        formatted_balance=balance.formatted,
    )
