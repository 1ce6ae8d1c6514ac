"""
Per-wallet local cache of the last fetched contacts and payment requests.

Entries live as JSON files under a cache directory, one per key, the same
way the web client keeps them in browser storage. The cache is advisory:
read failures are a miss, write failures are logged and dropped, and
nothing here ever raises into the caller.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, TypeAdapter, ValidationError

from basesplit.core.logging import get_logger
from basesplit.schemas.contact import ContactResponse
from basesplit.schemas.payment_request import PaymentRequestResponse

logger = get_logger(__name__)

CONTACTS_CACHE_KEY = "basesplit-contacts"
REQUESTS_CACHE_KEY = "basesplit-requests"
MAX_CACHED_ITEMS = 20

_contacts_adapter = TypeAdapter(List[ContactResponse])


class CachedRequests(BaseModel):
    incoming: List[PaymentRequestResponse] = []
    sent: List[PaymentRequestResponse] = []


def limit_cache_size(items: list, max_items: int = MAX_CACHED_ITEMS) -> list:
    """Limit a newest-first list to the most recent max_items entries."""
    return list(items[:max_items])


class LocalCache:
    def __init__(self, cache_dir: str | Path, max_items: int = MAX_CACHED_ITEMS):
        self.cache_dir = Path(cache_dir)
        self.max_items = max_items

    def _path(self, prefix: str, wallet_address: str) -> Path:
        return self.cache_dir / f"{prefix}-{wallet_address.lower()}.json"

    def _read(self, path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("cache_read_failed", path=str(path), error=str(e))
            return None

    def _write(self, path: Path, payload: bytes) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_bytes(payload)
            tmp.replace(path)
        except OSError as e:
            logger.warning("cache_write_failed", path=str(path), error=str(e))

    def read_contacts(self, wallet_address: str) -> Optional[List[ContactResponse]]:
        raw = self._read(self._path(CONTACTS_CACHE_KEY, wallet_address))
        if raw is None:
            return None
        try:
            return _contacts_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("cache_entry_corrupt", key=CONTACTS_CACHE_KEY, wallet=wallet_address.lower())
            return None

    def write_contacts(self, wallet_address: str, contacts: List[ContactResponse]) -> None:
        limited = limit_cache_size(contacts, self.max_items)
        self._write(self._path(CONTACTS_CACHE_KEY, wallet_address), _contacts_adapter.dump_json(limited))

    def read_requests(
        self, wallet_address: str
    ) -> Optional[Tuple[List[PaymentRequestResponse], List[PaymentRequestResponse]]]:
        """Return cached (incoming, sent) lists, or None on a miss."""
        raw = self._read(self._path(REQUESTS_CACHE_KEY, wallet_address))
        if raw is None:
            return None
        try:
            cached = CachedRequests.model_validate_json(raw)
        except ValidationError:
            logger.warning("cache_entry_corrupt", key=REQUESTS_CACHE_KEY, wallet=wallet_address.lower())
            return None
        return cached.incoming, cached.sent

    def write_requests(
        self,
        wallet_address: str,
        incoming: List[PaymentRequestResponse],
        sent: List[PaymentRequestResponse],
    ) -> None:
        cached = CachedRequests(
            incoming=limit_cache_size(incoming, self.max_items),
            sent=limit_cache_size(sent, self.max_items),
        )
        self._write(self._path(REQUESTS_CACHE_KEY, wallet_address), cached.model_dump_json().encode())

    def clear_wallet(self, wallet_address: str) -> None:
        for prefix in (CONTACTS_CACHE_KEY, REQUESTS_CACHE_KEY):
            path = self._path(prefix, wallet_address)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("cache_clear_failed", path=str(path), error=str(e))

    def clear_all(self) -> int:
        """Remove every BaseSplit entry for every wallet; returns the number removed."""
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            if path.name.startswith((CONTACTS_CACHE_KEY, REQUESTS_CACHE_KEY)):
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning("cache_clear_failed", path=str(path), error=str(e))
        logger.info("cache_cleared", removed=removed)
        return removed
