from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from basesplit.core.database import Base, utcnow


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    contact_wallet_address = Column(String(42), nullable=False)  # always lowercase
    label = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "contact_wallet_address", name="contacts_owner_contact_unique"),
    )

    # Relationships
    owner = relationship("Profile", back_populates="contacts")
