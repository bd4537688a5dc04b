from models.base_model import Base, BaseModel
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"
ROLE_SUPERUSER = "superuser"
ROLES = (ROLE_CUSTOMER, ROLE_ADMIN, ROLE_SUPERUSER)


class User(BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(30), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    phone_number = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_CUSTOMER)

    is_active = Column(Boolean, nullable=False, default=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    blocked_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime, nullable=True)

    sessions = relationship(
        "UserSession",
        back_populates="user",
        passive_deletes=True,
    )
    shop = relationship(
        "Shop",
        back_populates="admin",
        uselist=False,
        passive_deletes=True,
    )

    @property
    def can_authenticate(self) -> bool:
        return bool(self.is_active) and not self.is_blocked

    def __repr__(self):
        return f"<User {self.email} role={self.role}>"
