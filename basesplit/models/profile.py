from sqlalchemy import Column, String, DateTime, Enum, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum

from basesplit.core.database import Base, utcnow


class HistoryFilter(str, enum.Enum):
    all = "all"
    contacts_only = "contacts-only"
    external_only = "external-only"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wallet_address = Column(String(42), unique=True, index=True, nullable=False)  # always lowercase
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_seen_at = Column(DateTime, default=utcnow, nullable=False)

    history_filter_default = Column(
        Enum(
            HistoryFilter,
            name="history_filter",
            values_callable=lambda e: [m.value for m in e],
            create_constraint=False,
        ),
        default=HistoryFilter.all,
        nullable=False,
    )

    # Relationships
    contacts = relationship("Contact", back_populates="owner", cascade="all, delete-orphan")
    payment_requests = relationship("PaymentRequest", back_populates="requester", cascade="all, delete-orphan")
