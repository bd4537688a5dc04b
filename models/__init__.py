"""ORM models and the persistence client."""
from models.base_model import Base, utcnow
from models.admin_log import AdminLog
from models.admin_request import AdminRequest
from models.otp import OtpVerification
from models.password_reset import PasswordResetToken
from models.post import Post
from models.session import UserSession
from models.shop import Shop
from models.user import User
from models.db_storage import DBStorage

__all__ = [
    "Base",
    "utcnow",
    "AdminLog",
    "AdminRequest",
    "OtpVerification",
    "PasswordResetToken",
    "Post",
    "UserSession",
    "Shop",
    "User",
    "DBStorage",
]
