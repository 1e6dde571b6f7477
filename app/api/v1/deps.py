"""FastAPI dependencies: service wiring, request context, session and CSRF checks."""

from typing import Annotated

import redis
from fastapi import Depends, Request
from minio import Minio
from sqlalchemy.orm import Session

from app.core.cache import get_redis
from app.core.config import Settings, get_settings
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.errors import ForbiddenError
from app.core.storage import get_object_store, public_object_url
from app.services.auth_service import AuthService
from app.services.avatar import AvatarUploader
from app.services.csrf import CsrfService
from app.services.session_store import SessionStore
from app.services.user_directory import UserDirectory


def get_request_context(
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContext:
    """Fresh context per request with the configured deadline."""
    return RequestContext.with_timeout(settings.REQUEST_TIMEOUT_SEC)


def get_session_store(
    client: Annotated[redis.Redis, Depends(get_redis)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionStore:
    return SessionStore(client, settings.SESSION_PREFIX)


def get_csrf_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> CsrfService:
    return CsrfService(settings.CSRF_SECRET.get_secret_value())


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    object_store: Annotated[Minio, Depends(get_object_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(
        users=UserDirectory(db, sessions),
        sessions=sessions,
        session_ttl=settings.SESSION_EXPIRE_SECONDS,
        avatars=AvatarUploader(object_store, settings.AVATAR_MAX_BYTES, public_object_url),
    )


def require_session(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContext:
    """Dependency: require a live session cookie; returns ctx carrying the current user. 401 otherwise."""
    return auth.resolve_session(ctx, request.cookies.get(settings.SESSION_NAME))


def require_csrf(
    request: Request,
    ctx: Annotated[RequestContext, Depends(require_session)],
    csrf: Annotated[CsrfService, Depends(get_csrf_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContext:
    """Dependency: session plus a CSRF header matching it (skipped when CSRF_ENABLED is false)."""
    if settings.CSRF_ENABLED:
        token = request.headers.get(settings.CSRF_HEADER, "")
        if not csrf.verify_token(ctx.session_id, token):
            raise ForbiddenError("Invalid CSRF token")
    return ctx
