"""
Audit log model - append-only record of account and subscription actions
"""

from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid

class AuditLog(Base):
    __tablename__ = "audit_logs"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, index=True)
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(50))
    target_id = Column(String(100))
    ip = Column(String(50))
    meta = Column("metadata", JSON)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    
    def __repr__(self):
        return f"<AuditLog(action='{self.action}', target={self.target_type}:{self.target_id})>"
