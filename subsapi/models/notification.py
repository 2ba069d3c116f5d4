"""
Notification model - email/SMS send log
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid
import enum

class NotifyKind(str, enum.Enum):
    SMS_PAYMENT_LINK = "sms_payment_link"
    EMAIL_PAYMENT_LINK = "email_payment_link"
    SMS_SUBSCRIPTION_ACTIVATED = "sms_subscription_activated"
    EMAIL_SUBSCRIPTION_ACTIVATED = "email_subscription_activated"
    SMS_OTP = "sms_otp"

class Notification(Base):
    __tablename__ = "notifications"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    payment_id = Column(Uuid, ForeignKey("payments.id", ondelete="SET NULL"), index=True)
    
    # Notification details
    kind = Column(String(50), nullable=False)  # NotifyKind enum
    recipient = Column(String(255), nullable=False)
    provider_msg_id = Column(String(255))  # Brevo/Twilio message ID
    success = Column(Boolean, nullable=False)
    error_message = Column(Text)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    
    def __repr__(self):
        return f"<Notification(id={self.id}, kind='{self.kind}', success={self.success})>"
