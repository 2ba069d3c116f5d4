"""
Gateway credential model - per-user merchant configuration for a payment gateway
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid

class GatewayCredential(Base):
    __tablename__ = "gateway_credentials"
    __table_args__ = (UniqueConstraint("user_id", "gateway", name="uq_gateway_credentials_user_gateway"),)
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    
    # Credential details
    gateway = Column(String(50), nullable=False)  # registry key, lower case
    merchant_id = Column(String(255), nullable=False)
    sandbox = Column(Boolean, nullable=False, default=True)
    config = Column(JSON)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<GatewayCredential(id={self.id}, user_id={self.user_id}, gateway='{self.gateway}')>"
