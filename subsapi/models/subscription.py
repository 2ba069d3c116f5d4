"""
Subscription model - a user's enrolment in a plan
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid
import enum

class SubscriptionStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

class Subscription(Base):
    __tablename__ = "subscriptions"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Uuid, ForeignKey("plans.id"), nullable=False, index=True)
    
    status = Column(String(20), nullable=False, default=SubscriptionStatus.PENDING.value, index=True)
    auto_renew = Column(Boolean, nullable=False, default=False)
    start_date = Column(DateTime(timezone=True))
    end_date = Column(DateTime(timezone=True), index=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<Subscription(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
