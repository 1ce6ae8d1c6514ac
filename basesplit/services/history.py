"""
Merging of incoming and sent request lists into one history.

The same request shows up in both lists when requester and payer are the
same wallet; merge_request_lists keeps the first occurrence (received wins)
so every id appears once.
"""

from typing import Iterable, List, Optional, Sequence

from basesplit.models.payment_request import PaymentRequestStatus, PaymentRequestType
from basesplit.models.profile import HistoryFilter
from basesplit.schemas.payment_request import Direction, HistoryEntry, PaymentRequestResponse


def merge_request_lists(
    incoming: Sequence[PaymentRequestResponse],
    sent: Sequence[PaymentRequestResponse],
) -> List[HistoryEntry]:
    """Tag, de-duplicate by id and sort newest first (paid_at for paid, else created_at)."""
    tagged = [HistoryEntry(request=r, direction=Direction.received) for r in incoming]
    tagged += [HistoryEntry(request=r, direction=Direction.sent) for r in sent]

    seen = set()
    merged = []
    for entry in tagged:
        if entry.request.id in seen:
            continue
        seen.add(entry.request.id)
        merged.append(entry)

    merged.sort(key=lambda e: e.sort_key, reverse=True)
    return merged


def filter_by_contacts(
    entries: Iterable[HistoryEntry],
    history_filter: HistoryFilter,
    contact_addresses: Iterable[str],
) -> List[HistoryEntry]:
    if history_filter == HistoryFilter.all:
        return list(entries)
    known = {a.lower() for a in contact_addresses}

    def is_contact(address: Optional[str]) -> bool:
        return bool(address) and address.lower() in known

    if history_filter == HistoryFilter.contacts_only:
        return [e for e in entries if is_contact(e.counterparty)]
    return [e for e in entries if not is_contact(e.counterparty)]


def build_history(
    incoming: Sequence[PaymentRequestResponse],
    sent: Sequence[PaymentRequestResponse],
    history_filter: HistoryFilter = HistoryFilter.all,
    contact_addresses: Iterable[str] = (),
) -> List[HistoryEntry]:
    """Completed requests and transfers, merged and filtered by contact membership."""
    completed_incoming = [r for r in incoming if r.status != PaymentRequestStatus.pending]
    completed_sent = [r for r in sent if r.status != PaymentRequestStatus.pending]
    merged = merge_request_lists(completed_incoming, completed_sent)
    return filter_by_contacts(merged, history_filter, contact_addresses)


def pending_requests(requests: Iterable[PaymentRequestResponse]) -> List[PaymentRequestResponse]:
    return [
        r for r in requests
        if r.status == PaymentRequestStatus.pending and r.type == PaymentRequestType.request
    ]
