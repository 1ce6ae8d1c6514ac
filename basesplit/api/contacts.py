from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from uuid import UUID

from basesplit.api.deps import error_response, get_signed_in_session
from basesplit.schemas.contact import ContactCreate, ContactUpdate, ContactResponse, ContactListResponse
from basesplit.services.contacts import ContactService
from basesplit.services.session import SessionManager

router = APIRouter(prefix="/contacts", tags=["Contacts"])


def get_contact_service(session: SessionManager = Depends(get_signed_in_session)) -> ContactService:
    return session.contacts


def _ensure_owned(service: ContactService, contact_id: UUID) -> None:
    # Only contacts in the signed-in wallet's address book are addressable
    if not any(c.id == contact_id for c in service.contacts):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    search: Optional[str] = None,
    service: ContactService = Depends(get_contact_service),
):
    contacts = service.search(search) if search else service.contacts
    return ContactListResponse(contacts=contacts, total=len(contacts), error=service.error)


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    contact_data: ContactCreate,
    service: ContactService = Depends(get_contact_service),
):
    contact = await service.add_contact(
        contact_data.contact_wallet_address,
        contact_data.label,
        contact_data.note,
    )
    if contact is None:
        raise error_response(service.error_kind, service.error)
    return contact


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: UUID,
    contact_update: ContactUpdate,
    service: ContactService = Depends(get_contact_service),
):
    _ensure_owned(service, contact_id)
    update_data = contact_update.model_dump(exclude_unset=True)
    contact = await service.update_contact(contact_id, **update_data)
    if contact is None:
        raise error_response(service.error_kind, service.error)
    return contact


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: UUID,
    service: ContactService = Depends(get_contact_service),
):
    _ensure_owned(service, contact_id)
    if not await service.delete_contact(contact_id):
        raise error_response(service.error_kind, service.error)
