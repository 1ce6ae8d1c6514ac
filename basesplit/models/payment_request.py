from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, Integer, BigInteger, Enum, CheckConstraint, Uuid
)
from sqlalchemy.orm import relationship
import uuid
import enum

from basesplit.core.config import settings
from basesplit.core.database import Base, utcnow


class PaymentRequestType(str, enum.Enum):
    request = "request"
    transfer = "transfer"


class PaymentRequestStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"
    rejected = "rejected"
    expired = "expired"


TERMINAL_STATUSES = frozenset({
    PaymentRequestStatus.paid,
    PaymentRequestStatus.cancelled,
    PaymentRequestStatus.rejected,
    PaymentRequestStatus.expired,
})


class PaymentRequest(Base):
    __tablename__ = "payment_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    requester_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(
        Enum(PaymentRequestType, name="payment_request_type", create_constraint=False),
        default=PaymentRequestType.request,
        nullable=False,
    )

    payer_wallet_address = Column(String(42), nullable=False, index=True)  # recipient for transfers
    token_address = Column(String(42), nullable=False, default=lambda: settings.USDC_ADDRESS.lower())
    chain_id = Column(Integer, nullable=False, default=lambda: settings.CHAIN_ID)

    amount = Column(BigInteger, nullable=False)  # USDC micro-units (6 decimals)
    memo = Column(Text, nullable=True)

    status = Column(
        Enum(PaymentRequestStatus, name="payment_request_status", create_constraint=False),
        default=PaymentRequestStatus.pending,
        nullable=False,
        index=True,
    )
    tx_hash = Column(String(66), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="payment_requests_amount_positive"),
    )

    # Relationships
    requester = relationship("Profile", back_populates="payment_requests")

    @property
    def requester_wallet_address(self):
        return self.requester.wallet_address if self.requester is not None else None
