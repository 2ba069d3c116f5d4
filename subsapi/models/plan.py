"""
Plan model - subscription tiers offered to users
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON, Uuid
from sqlalchemy.sql import func
from subsapi.utils.database import Base, utcnow
import uuid

class Plan(Base):
    __tablename__ = "plans"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Integer, nullable=False)  # smallest currency unit
    currency = Column(String(10), nullable=False, default="IRR")
    duration = Column(Integer, nullable=False)  # days
    features = Column(JSON)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    
    def __repr__(self):
        return f"<Plan(name='{self.name}', price={self.price} {self.currency}, duration={self.duration}d)>"
