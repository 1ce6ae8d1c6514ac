from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

from basesplit.models.profile import HistoryFilter


class ProfileResponse(BaseModel):
    id: UUID
    wallet_address: str
    created_at: datetime
    last_seen_at: datetime
    history_filter_default: HistoryFilter

    class Config:
        from_attributes = True


class ProfileId(BaseModel):
    id: UUID

    class Config:
        from_attributes = True


class HistoryFilterUpdate(BaseModel):
    filter_type: HistoryFilter


class SignInRequest(BaseModel):
    wallet_address: str
    user_id: Optional[UUID] = None
    smart_account_address: Optional[str] = None
    eoa_address: Optional[str] = None


class WalletTypeUpdate(BaseModel):
    wallet_type: str  # smart, eoa


class SessionResponse(BaseModel):
    is_authenticated: bool
    wallet_address: Optional[str] = None
    wallet_type: Optional[str] = None
    smart_account_address: Optional[str] = None
    eoa_address: Optional[str] = None
    profile: Optional[ProfileResponse] = None
    error: Optional[str] = None


class BalanceResponse(BaseModel):
    address: Optional[str] = None
    balance: Optional[int] = None
    formatted_balance: str = "0.00"


class SettingsResponse(BaseModel):
    wallet_type: Optional[str] = None
    smart_account_address: Optional[str] = None
    eoa_address: Optional[str] = None
    balances: list[BalanceResponse] = []
    history_filter: HistoryFilter = HistoryFilter.all
