from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class ContactBase(BaseModel):
    contact_wallet_address: str
    label: str
    note: Optional[str] = None


class ContactCreate(ContactBase):
    pass


class ContactUpdate(BaseModel):
    label: Optional[str] = None
    note: Optional[str] = None


class ContactResponse(ContactBase):
    id: UUID
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContactListResponse(BaseModel):
    contacts: List[ContactResponse]
    total: int
    error: Optional[str] = None
