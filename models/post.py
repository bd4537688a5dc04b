from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


class Post(BaseModel, Base):
    __tablename__ = "posts"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)

    author = relationship("User")
