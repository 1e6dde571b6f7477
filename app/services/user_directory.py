"""User directory: CRUD and paginated search over the users table."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.core.context import RequestContext
from app.core.errors import (
    ConflictError,
    NotFoundError,
    RequestTimeoutError,
    StorageError,
    ValidationError,
)
from app.core.security import hash_password
from app.models import USER_ID_MAX, USER_ROLES, User
from app.schemas.auth import RegisterRequest, UpdateUserRequest, UserResponse, UsersList
from app.services.pagination import PaginationQuery, has_more, total_pages

if TYPE_CHECKING:
    from app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

# orderBy values accepted by list(); a leading "-" sorts descending.
ORDERABLE_COLUMNS = {
    "id": User.id,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "email": User.email,
    "role": User.role,
    "created_at": User.created_at,
    "updated_at": User.updated_at,
    "login_date": User.login_date,
}

PROFILE_FIELDS = (
    "about",
    "phone_number",
    "address",
    "city",
    "country",
    "gender",
    "postcode",
    "birthday",
)

# Columns that may be changed but never cleared.
REQUIRED_FIELDS = ("first_name", "last_name", "email", "password", "role")

# PostgreSQL SQLSTATE for a statement cancelled by statement_timeout.
_PG_QUERY_CANCELED = "57014"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_order_by(order_by: str | None):
    """
    Map an orderBy query value to SQLAlchemy order clauses.
    id is always the tie-breaker so pages are deterministic.
    """
    value = (order_by or "id").strip()
    descending = value.startswith("-")
    name = value[1:] if descending else value
    column = ORDERABLE_COLUMNS.get(name)
    if column is None:
        allowed = ", ".join(sorted(ORDERABLE_COLUMNS))
        raise ValidationError(f"Invalid orderBy '{value}'. Allowed: {allowed} (prefix '-' for descending).")
    primary = column.desc() if descending else column.asc()
    if name == "id":
        return [primary]
    return [primary, User.id.asc()]


class UserDirectory:
    """Sole owner of User rows. Deleting a user also removes that user's sessions."""

    def __init__(self, db: Session, sessions: SessionStore) -> None:
        self._db = db
        self._sessions = sessions

    @contextmanager
    def _db_errors(self, operation: str) -> Iterator[None]:
        """Roll back and translate SQLAlchemy exceptions; raw driver text stays in the cause."""
        try:
            yield
        except IntegrityError as e:
            self._db.rollback()
            raise ConflictError("User with this email already exists.", cause=e) from e
        except OperationalError as e:
            self._db.rollback()
            if getattr(e.orig, "pgcode", None) == _PG_QUERY_CANCELED:
                raise RequestTimeoutError(f"Database timed out during {operation}", cause=e) from e
            raise StorageError(f"Database failed during {operation}", cause=e) from e
        except SQLAlchemyError as e:
            self._db.rollback()
            raise StorageError(f"Database failed during {operation}", cause=e) from e

    def create(self, ctx: RequestContext, body: RegisterRequest, role: str = "user") -> User:
        """Insert a new user with a hashed password. Duplicate email raises ConflictError."""
        if role not in USER_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
        ctx.check_deadline("create user")
        now = datetime.now(UTC)
        user = User(
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            password_hash=hash_password(body.password),
            role=role,
            created_at=now,
            updated_at=now,
            **body.model_dump(include=set(PROFILE_FIELDS)),
        )
        with self._db_errors("create user"):
            self._db.add(user)
            self._db.commit()
            self._db.refresh(user)
        logger.info("User created: id=%s role=%s", user.id, user.role)
        return user

    def get_by_id(self, ctx: RequestContext, user_id: int) -> User:
        if not 1 <= user_id <= USER_ID_MAX:
            raise NotFoundError(f"User {user_id} not found.")
        ctx.check_deadline("get user")
        with self._db_errors("get user"):
            user = self._db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    def get_by_email(self, ctx: RequestContext, email: str) -> User:
        ctx.check_deadline("get user by email")
        with self._db_errors("get user by email"):
            user = self._db.query(User).filter(User.email == email.lower()).first()
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def update(self, ctx: RequestContext, user_id: int, changes: UpdateUserRequest) -> User:
        """Apply the fields present in changes; a new password is re-hashed."""
        user = self.get_by_id(ctx, user_id)
        data = changes.model_dump(exclude_unset=True)
        for field in REQUIRED_FIELDS:
            if field in data and data[field] is None:
                raise ValidationError(f"{field} cannot be null.")
        if "password" in data:
            user.password_hash = hash_password(data.pop("password"))
        for field, value in data.items():
            setattr(user, field, value)
        user.updated_at = datetime.now(UTC)
        ctx.check_deadline("update user")
        with self._db_errors("update user"):
            self._db.commit()
            self._db.refresh(user)
        return user

    def set_avatar(self, ctx: RequestContext, user_id: int, avatar_url: str) -> User:
        user = self.get_by_id(ctx, user_id)
        user.avatar = avatar_url
        user.updated_at = datetime.now(UTC)
        ctx.check_deadline("set avatar")
        with self._db_errors("set avatar"):
            self._db.commit()
            self._db.refresh(user)
        return user

    def touch_login(self, ctx: RequestContext, user: User) -> User:
        """Record a successful login."""
        ctx.check_deadline("record login")
        user.login_date = datetime.now(UTC)
        with self._db_errors("record login"):
            self._db.commit()
            self._db.refresh(user)
        return user

    def delete(self, ctx: RequestContext, user_id: int) -> None:
        """Delete the user row, then every session that belongs to it."""
        user = self.get_by_id(ctx, user_id)
        with self._db_errors("delete user"):
            self._db.delete(user)
            self._db.commit()
        logger.info("User deleted: id=%s", user_id)
        self._sessions.delete_by_user_id(ctx, user_id)

    def find_by_name(
        self, ctx: RequestContext, name: str, pagination: PaginationQuery
    ) -> UsersList:
        """
        Case-insensitive substring match on first_name or last_name,
        ordered by id ascending.
        """
        term = name.strip()
        if not term:
            raise ValidationError("name is required")
        pattern = f"%{_escape_like(term)}%"
        query = self._db.query(User).filter(
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
            )
        )
        return self._page(ctx, query, pagination, [User.id.asc()], "find users")

    def list(
        self, ctx: RequestContext, pagination: PaginationQuery, order_by: str | None = None
    ) -> UsersList:
        """Page over all users sorted by order_by (see ORDERABLE_COLUMNS)."""
        clauses = parse_order_by(order_by)
        return self._page(ctx, self._db.query(User), pagination, clauses, "list users")

    def _page(
        self,
        ctx: RequestContext,
        query: Query,
        pagination: PaginationQuery,
        order_clauses: list,
        operation: str,
    ) -> UsersList:
        ctx.check_deadline(operation)
        with self._db_errors(operation):
            total_count = query.with_entities(func.count(User.id)).scalar() or 0
            rows = (
                query.order_by(*order_clauses)
                .offset(pagination.offset)
                .limit(pagination.size)
                .all()
            )
        pages = total_pages(total_count, pagination.size)
        return UsersList(
            total_count=total_count,
            total_pages=pages,
            page=pagination.page,
            size=pagination.size,
            has_more=has_more(pagination.page, pages),
            users=[UserResponse.model_validate(u) for u in rows],
        )
