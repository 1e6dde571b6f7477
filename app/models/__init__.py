"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.user import USER_ID_MAX, USER_ROLES, User

__all__ = ["Base", "USER_ID_MAX", "USER_ROLES", "User"]
