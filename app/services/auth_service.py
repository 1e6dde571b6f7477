"""Auth use cases: registration, login/logout, session resolution and user management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.core.context import RequestContext
from app.core.errors import NotFoundError, UnauthorizedError
from app.core.security import verify_password
from app.models import User
from app.schemas.auth import LoginRequest, RegisterRequest, UpdateUserRequest, UsersList
from app.schemas.session import SessionRecord
from app.services.pagination import PaginationQuery

if TYPE_CHECKING:
    from app.services.avatar import AvatarUpload, AvatarUploader
    from app.services.session_store import SessionStore
    from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


class AuthService:
    """
    Each method is one step of a single user interaction; the service holds no
    per-user state. Collaborators are injected so tests can substitute them.
    """

    def __init__(
        self,
        users: UserDirectory,
        sessions: SessionStore,
        session_ttl: int,
        avatars: AvatarUploader | None = None,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.session_ttl = session_ttl
        self.avatars = avatars

    def _start_session(self, ctx: RequestContext, user: User) -> str:
        return self.sessions.create_session(
            ctx, SessionRecord(user_id=user.id), self.session_ttl
        )

    def register(self, ctx: RequestContext, body: RegisterRequest) -> tuple[User, str]:
        """
        Create the user, then a session for it.

        If the session cannot be created the user stays persisted; the caller
        gets the error and the user can log in later.
        """
        user = self.users.create(ctx, body, role="user")
        session_id = self._start_session(ctx, user)
        return user, session_id

    def login(self, ctx: RequestContext, body: LoginRequest) -> tuple[User, str]:
        """Check credentials and open a session. Unknown email and bad password look the same."""
        try:
            user = self.users.get_by_email(ctx, body.email)
        except NotFoundError as e:
            raise UnauthorizedError(INVALID_CREDENTIALS) from e
        if not verify_password(body.password, user.password_hash):
            logger.info("Login failed: bad password for user_id=%s", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        user = self.users.touch_login(ctx, user)
        session_id = self._start_session(ctx, user)
        return user, session_id

    def logout(self, ctx: RequestContext, session_id: str | None) -> None:
        if not session_id:
            raise UnauthorizedError("Unauthorized")
        self.sessions.delete_by_id(ctx, session_id)

    def resolve_session(self, ctx: RequestContext, session_id: str | None) -> RequestContext:
        """
        Validate a session cookie and return ctx carrying the session's user.
        Missing or expired sessions and deleted users are all UnauthorizedError.
        """
        if not session_id:
            raise UnauthorizedError("Unauthorized")
        try:
            session = self.sessions.get_session_by_id(ctx, session_id)
            user = self.users.get_by_id(ctx, session.user_id)
        except NotFoundError as e:
            raise UnauthorizedError("Unauthorized") from e
        return ctx.authenticated(session_id, user)

    def get_me(self, ctx: RequestContext) -> User:
        if ctx.current_user is None:
            raise UnauthorizedError("Unauthorized")
        return ctx.current_user

    def get_by_id(self, ctx: RequestContext, user_id: int) -> User:
        return self.users.get_by_id(ctx, user_id)

    def update(self, ctx: RequestContext, user_id: int, changes: UpdateUserRequest) -> User:
        return self.users.update(ctx, user_id, changes)

    def delete(self, ctx: RequestContext, user_id: int) -> None:
        self.users.delete(ctx, user_id)

    def find_by_name(
        self, ctx: RequestContext, name: str, pagination: PaginationQuery
    ) -> UsersList:
        return self.users.find_by_name(ctx, name, pagination)

    def get_users(
        self, ctx: RequestContext, pagination: PaginationQuery, order_by: str | None = None
    ) -> UsersList:
        return self.users.list(ctx, pagination, order_by)

    def upload_avatar(
        self, ctx: RequestContext, user_id: int, upload: AvatarUpload, bucket: str
    ) -> str:
        """Store the image, point the user's avatar at it, and return the URL."""
        if self.avatars is None:
            raise RuntimeError("AuthService was built without an avatar uploader")
        self.users.get_by_id(ctx, user_id)
        url = self.avatars.upload(ctx, upload, bucket)
        self.users.set_avatar(ctx, user_id, url)
        return url
