from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


class Shop(BaseModel, Base):
    __tablename__ = "shops"

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True)
    admin_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    admin = relationship("User", back_populates="shop")
