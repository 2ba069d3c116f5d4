"""
Webhook models - user endpoints and the deliveries pushed to them
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, JSON, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid
import enum

class DeliveryStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

class Webhook(Base):
    __tablename__ = "webhooks"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    secret = Column(String(255), nullable=False)
    event_types = Column(JSON, nullable=False, default=list)  # empty list = every event
    is_active = Column(Boolean, nullable=False, default=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<Webhook(id={self.id}, url='{self.url}', active={self.is_active})>"

class WebhookDelivery(Base):
    __tablename__ = "webhook_deliveries"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    webhook_id = Column(Uuid, ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False)
    signature = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=DeliveryStatus.PENDING.value)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True))
    response_status = Column(Integer)
    last_error = Column(Text)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    
    def __repr__(self):
        return f"<WebhookDelivery(id={self.id}, event='{self.event_type}', status='{self.status}')>"
