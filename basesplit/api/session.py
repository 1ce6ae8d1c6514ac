from fastapi import APIRouter, Depends, HTTPException, status

from basesplit.api.deps import get_session, get_signed_in_session
from basesplit.core.validation import is_valid_ethereum_address
from basesplit.schemas.profile import SessionResponse, SignInRequest, WalletTypeUpdate
from basesplit.services.session import SessionManager

router = APIRouter(prefix="/session", tags=["Session"])


def _session_response(session: SessionManager) -> SessionResponse:
    return SessionResponse(
        is_authenticated=session.is_authenticated,
        wallet_address=session.wallet_address,
        wallet_type=session.wallet_type,
        smart_account_address=session.smart_account_address,
        eoa_address=session.eoa_address,
        profile=session.profile,
        error=session.error,
    )


@router.get("", response_model=SessionResponse)
async def get_session_status(session: SessionManager = Depends(get_session)):
    return _session_response(session)


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(body: SignInRequest, session: SessionManager = Depends(get_session)):
    signed_in = await session.sign_in(
        body.wallet_address,
        user_id=body.user_id,
        smart_account_address=body.smart_account_address,
        eoa_address=body.eoa_address,
    )
    if not signed_in:
        code = status.HTTP_502_BAD_GATEWAY
        if not is_valid_ethereum_address(body.wallet_address.strip()):
            code = status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=session.error)
    return _session_response(session)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(session: SessionManager = Depends(get_session)):
    await session.sign_out()


@router.post("/wallet-type", response_model=SessionResponse)
async def switch_wallet_type(
    body: WalletTypeUpdate,
    session: SessionManager = Depends(get_signed_in_session),
):
    if not await session.switch_wallet_type(body.wallet_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=session.error)
    return _session_response(session)
