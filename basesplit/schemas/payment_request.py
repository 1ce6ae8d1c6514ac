from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum

from basesplit.models.payment_request import PaymentRequestStatus, PaymentRequestType
from basesplit.models.profile import HistoryFilter


class Direction(str, Enum):
    sent = "sent"
    received = "received"


class SplitMode(str, Enum):
    split = "split"  # total shared out per SplitType
    each = "each"    # every participant owes the full amount


class SplitType(str, Enum):
    """How a split-mode total is shared out."""
    equal = "equal"
    percentage = "percentage"  # per-participant percentages, summing to 100
    fixed = "fixed"            # per-participant amounts, summing to the total


class PaymentRequestResponse(BaseModel):
    id: UUID
    requester_id: UUID
    type: PaymentRequestType = PaymentRequestType.request
    payer_wallet_address: str
    token_address: str
    chain_id: int
    amount: int
    memo: Optional[str] = None
    status: PaymentRequestStatus
    tx_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    requester_wallet_address: Optional[str] = None

    class Config:
        from_attributes = True


class HistoryEntry(BaseModel):
    request: PaymentRequestResponse
    direction: Direction

    @property
    def counterparty(self) -> Optional[str]:
        # payer_wallet_address holds the recipient for transfers
        if self.direction == Direction.sent:
            return self.request.payer_wallet_address
        return self.request.requester_wallet_address

    @property
    def sort_key(self) -> datetime:
        if self.request.status == PaymentRequestStatus.paid and self.request.paid_at:
            return self.request.paid_at
        return self.request.created_at

    @property
    def balance_change(self) -> int:
        """Signed micro-unit change to the viewer's balance; zero unless paid."""
        if self.request.status != PaymentRequestStatus.paid:
            return 0
        incoming = (self.direction == Direction.sent) != (self.request.type == PaymentRequestType.transfer)
        return self.request.amount if incoming else -self.request.amount


class HistoryEntryResponse(BaseModel):
    request: PaymentRequestResponse
    direction: Direction
    counterparty: Optional[str] = None
    balance_change: int = 0


class PaymentRequestCreate(BaseModel):
    payer_wallet_address: str
    amount: str
    memo: Optional[str] = None
    save_as_contact: bool = False
    contact_label: Optional[str] = None


class DirectTransferCreate(BaseModel):
    recipient_wallet_address: str
    amount: str
    memo: Optional[str] = None
    save_as_contact: bool = False
    contact_label: Optional[str] = None


class SplitParticipant(BaseModel):
    address: str
    label: Optional[str] = None
    percentage: Optional[float] = None
    fixed_amount: Optional[float] = None


class SplitRequestCreate(BaseModel):
    participants: List[SplitParticipant]
    total_amount: str
    memo: Optional[str] = None
    include_self: bool = False
    mode: SplitMode = SplitMode.split
    split_type: SplitType = SplitType.equal


class MultiSendRecipient(BaseModel):
    address: str
    label: Optional[str] = None
    amount: Optional[str] = None


class MultiTransferCreate(BaseModel):
    recipients: List[MultiSendRecipient]
    # Same amount for every recipient; per-recipient amounts are used when unset
    amount: Optional[str] = None
    memo: Optional[str] = None


class RequestsResponse(BaseModel):
    pending_incoming: List[PaymentRequestResponse]
    pending_sent: List[PaymentRequestResponse]
    error: Optional[str] = None
    is_refreshing: bool = False
    is_creating: bool = False
    is_sending: bool = False
    is_confirming: bool = False
    paying_request_id: Optional[UUID] = None


class HistoryResponse(BaseModel):
    history_filter: HistoryFilter
    entries: List[HistoryEntryResponse]


class PaymentResultResponse(BaseModel):
    status: str
    tx_hash: Optional[str] = None
    request: Optional[PaymentRequestResponse] = None


class MultiTransferResponse(BaseModel):
    status: str
    tx_hash: Optional[str] = None
    transfers: List[PaymentRequestResponse]
