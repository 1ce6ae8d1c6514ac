from typing import Optional

from fastapi import HTTPException, Request, status

from basesplit.core.errors import AppErrors, ErrorKind, get_error_message
from basesplit.services.container import ServiceContainer
from basesplit.services.session import SessionManager

ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHORIZATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.REMOTE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.SIGNING: status.HTTP_502_BAD_GATEWAY,
}


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_session(request: Request) -> SessionManager:
    return get_container(request).session


def get_signed_in_session(request: Request) -> SessionManager:
    session = get_session(request)
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=get_error_message(AppErrors.WALLET_NOT_CONNECTED),
        )
    return session


def error_response(kind: Optional[str], message: Optional[str]) -> HTTPException:
    """HTTPException for a service error, keeping the service's message as detail."""
    return HTTPException(
        status_code=ERROR_STATUS_CODES.get(kind, status.HTTP_400_BAD_REQUEST),
        detail=message or get_error_message(None),
    )
