"""
API key model - hashed bearer credentials
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid

class ApiKey(Base):
    __tablename__ = "api_keys"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    hash = Column(String(64), unique=True, nullable=False, index=True)
    label = Column(String(100))
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)  # NULL = service key
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True))
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<ApiKey(id={self.id}, label='{self.label}', active={self.is_active})>"
