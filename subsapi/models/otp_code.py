"""
OTP code model - hashed one-time login codes
"""

from sqlalchemy import Column, String, Integer, DateTime, Uuid
from subsapi.utils.database import Base
import uuid

class OtpCode(Base):
    __tablename__ = "otp_codes"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    phone = Column(String(20), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)  # sha256, never plaintext
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    used_at = Column(DateTime(timezone=True))
    
    # Explicit timestamp so "most recent" ordering is stable within one second
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    
    def __repr__(self):
        return f"<OtpCode(id={self.id}, phone='{self.phone}', attempts={self.attempts})>"
