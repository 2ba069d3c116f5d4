"""
User model - subscribers, identified by phone after OTP login
"""

from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid
import enum

class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"

class User(Base):
    __tablename__ = "users"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    phone = Column(String(20), unique=True, index=True)  # canonical local format 09xxxxxxxxx
    email = Column(String(255), index=True)
    name = Column(String(255))
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<User(id={self.id}, phone='{self.phone}', role='{self.role}')>"
