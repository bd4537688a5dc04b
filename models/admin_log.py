from sqlalchemy import Column, ForeignKey, String, Text

from models.base_model import Base, BaseModel


class AdminLog(BaseModel, Base):
    """Audit trail of privileged actions (block, approve, reject...)."""

    __tablename__ = "admin_logs"

    admin_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    details = Column(Text, nullable=True)
    target_id = Column(String(36), nullable=True)
    target_type = Column(String(32), nullable=True)

    def __repr__(self):
        return f"<AdminLog {self.action} by={self.admin_id}>"
