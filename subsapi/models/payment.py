"""
Payment model - one attempt at paying for a subscription through a gateway
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid
import enum

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class Payment(Base):
    __tablename__ = "payments"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    subscription_id = Column(Uuid, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    
    amount = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False)
    gateway = Column(String(50), nullable=False)  # gateway registry key
    authority = Column(String(255), unique=True, index=True)  # gateway correlation id
    payment_url = Column(String(1000))
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    gateway_tx_id = Column(String(255))
    paid_at = Column(DateTime(timezone=True))
    verified_at = Column(DateTime(timezone=True))
    
    # Contact details used for payment notifications
    user_email = Column(String(255))
    user_phone = Column(String(20))
    notification_sent = Column(Boolean, nullable=False, default=False)
    
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<Payment(id={self.id}, authority='{self.authority}', status='{self.status}')>"
