from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class AdminRequest(BaseModel, Base):
    """A customer's request to be promoted to shop admin."""

    __tablename__ = "admin_requests"
    __table_args__ = (
        # at most one pending request per user
        Index(
            "uq_admin_requests_user_pending",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    shop_name = Column(String(120), nullable=False)
    admin_name = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    handled_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    handled_at = Column(DateTime, nullable=True)
    reason = Column(Text, nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    handled_by = relationship("User", foreign_keys=[handled_by_id])
