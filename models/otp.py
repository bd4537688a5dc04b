from sqlalchemy import Boolean, Column, DateTime, String

from models.base_model import Base, BaseModel


class OtpVerification(BaseModel, Base):
    __tablename__ = "otp_verifications"

    email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
