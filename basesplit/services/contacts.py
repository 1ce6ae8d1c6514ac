"""
Contacts orchestrator: the address book of one signed-in wallet.
"""

from typing import List, Optional
from uuid import UUID

from basesplit.core.errors import ErrorKind, get_error_message, is_no_rows_error, is_unique_violation
from basesplit.core.logging import bind_wallet
from basesplit.core.validation import is_valid_ethereum_address
from basesplit.schemas.contact import ContactResponse
from basesplit.services.cache import LocalCache
from basesplit.services.queries import QueryService

PROFILE_NOT_FOUND = "Profile not found. Please sign in again."


class ContactService:
    def __init__(self, queries: QueryService, cache: LocalCache, wallet_address: str):
        self.queries = queries
        self.cache = cache
        self.wallet_address = wallet_address.lower()
        self.logger = bind_wallet(__name__, self.wallet_address)

        self.contacts: List[ContactResponse] = []
        self.error: Optional[str] = None
        self.error_kind: Optional[str] = None
        self.is_adding = False

    def _fail(self, kind: str, message: str) -> None:
        self.error_kind = kind
        self.error = message

    def hydrate_from_cache(self) -> bool:
        """Populate contacts from the local cache; returns True on a hit."""
        cached = self.cache.read_contacts(self.wallet_address)
        if cached is None:
            return False
        self.contacts = cached
        return True

    async def load(self) -> List[ContactResponse]:
        """Fetch contacts from the store; on failure the previous list stays visible."""
        self.error = None
        profile_result = await self.queries.get_profile_id_by_wallet(self.wallet_address)
        if profile_result.error:
            self._fail(ErrorKind.REMOTE, profile_result.error)
            return self.contacts
        if not profile_result.data:
            self.contacts = []
            return self.contacts

        result = await self.queries.get_contacts_by_owner_id(profile_result.data.id)
        if result.error:
            self._fail(ErrorKind.REMOTE, result.error)
            return self.contacts

        self.contacts = result.data or []
        self.cache.write_contacts(self.wallet_address, self.contacts)
        return self.contacts

    def is_contact(self, address: Optional[str]) -> bool:
        if not address:
            return False
        address = address.lower()
        return any(c.contact_wallet_address == address for c in self.contacts)

    def find(self, address: Optional[str]) -> Optional[ContactResponse]:
        if not address:
            return None
        address = address.lower()
        return next((c for c in self.contacts if c.contact_wallet_address == address), None)

    def search(self, query: str) -> List[ContactResponse]:
        q = (query or "").strip().lower()
        if not q:
            return list(self.contacts)
        return [
            c for c in self.contacts
            if q in c.label.lower() or q in c.contact_wallet_address
        ]

    async def add_contact(
        self, contact_wallet_address: str, label: str, note: Optional[str] = None
    ) -> Optional[ContactResponse]:
        address = (contact_wallet_address or "").strip()
        label = (label or "").strip()
        if not is_valid_ethereum_address(address):
            self._fail(ErrorKind.VALIDATION, "Invalid wallet address")
            return None
        if not label:
            self._fail(ErrorKind.VALIDATION, "Please enter a label")
            return None

        self.is_adding = True
        self.error = None
        try:
            profile_result = await self.queries.get_profile_id_by_wallet(self.wallet_address)
            if profile_result.error:
                self._fail(ErrorKind.REMOTE, profile_result.error)
                return None
            if not profile_result.data:
                self._fail(ErrorKind.AUTHORIZATION, PROFILE_NOT_FOUND)
                return None

            result = await self.queries.create_contact(profile_result.data.id, address, label, note)
            if result.error:
                if is_unique_violation(result.error_code):
                    self._fail(ErrorKind.VALIDATION, get_error_message(result.error_code))
                else:
                    self._fail(ErrorKind.REMOTE, result.error)
                return None

            self.logger.info("contact_added", contact=result.data.contact_wallet_address)
            await self.load()
            return result.data
        finally:
            self.is_adding = False

    async def update_contact(
        self, contact_id: UUID, label: Optional[str] = None, note: Optional[str] = None
    ) -> Optional[ContactResponse]:
        if label is not None and not label.strip():
            self._fail(ErrorKind.VALIDATION, "Please enter a label")
            return None
        self.error = None
        result = await self.queries.update_contact(
            contact_id, label.strip() if label is not None else None, note
        )
        if result.error:
            kind = ErrorKind.NOT_FOUND if is_no_rows_error(result.error_code) else ErrorKind.REMOTE
            self._fail(kind, result.error)
            return None
        await self.load()
        return result.data

    async def delete_contact(self, contact_id: UUID) -> bool:
        self.error = None
        result = await self.queries.delete_contact(contact_id)
        if result.error:
            kind = ErrorKind.NOT_FOUND if is_no_rows_error(result.error_code) else ErrorKind.REMOTE
            self._fail(kind, f"Failed to delete contact: {result.error}")
            return False
        self.logger.info("contact_deleted", contact_id=str(contact_id))
        await self.load()
        return True
