"""ORM model for user accounts and profiles."""

from sqlalchemy import Column, DateTime, Integer, String, func

from app.models.base import Base

USER_ROLES = ("user", "admin")

# Upper bound of the 32-bit id column.
USER_ID_MAX = 2**31 - 1


class User(Base):
    """
    User account with profile fields.

    role: 'admin' or 'user'. email is stored lower-cased and is the login credential.
    password_hash holds a bcrypt hash; the plain password is never persisted.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(30), nullable=False, index=True)
    last_name = Column(String(30), nullable=False, index=True)
    email = Column(String(60), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(10), nullable=False, default="user", server_default="user")
    about = Column(String(1024), nullable=True)
    avatar = Column(String(512), nullable=True)
    phone_number = Column(String(20), nullable=True)
    address = Column(String(250), nullable=True)
    city = Column(String(24), nullable=True)
    country = Column(String(24), nullable=True)
    gender = Column(String(10), nullable=True)
    postcode = Column(Integer, nullable=True)
    birthday = Column(String(10), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    login_date = Column(DateTime(timezone=True), nullable=True)
