"""
PasswordResetToken model: one-time credential for the forgot/reset flow.
Only the sha256 of the emailed token is stored.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from models.base_model import Base, BaseModel


class PasswordResetToken(BaseModel, Base):
    __tablename__ = "password_reset_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<PasswordResetToken user={self.user_id} used={self.is_used}>"
