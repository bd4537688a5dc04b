"""
UserSession model: one logged-in device/browser.

Fields:
- user_id (String(36)) - FK to users.id, many sessions per user
- access_token_hash / refresh_token_hash - sha256 fingerprints, raw tokens are never stored
- device_info, user_agent, ip_address
- issued_at, expires_at, last_used_at
- is_active - flipped to False on logout / password change / reset / deactivation
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel, utcnow


class UserSession(BaseModel, Base):
    __tablename__ = "user_sessions"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    access_token_hash = Column(String(64), nullable=False, unique=True, index=True)
    refresh_token_hash = Column(String(64), nullable=False, unique=True, index=True)
    device_info = Column(String(255), nullable=True)
    user_agent = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    remember_me = Column(Boolean, nullable=False, default=False)
    issued_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession {self.id} user={self.user_id} active={self.is_active}>"
