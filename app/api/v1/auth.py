"""Auth and user endpoints: register, login/logout, profile CRUD, listing, avatar, CSRF token."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status

from app.api.v1.deps import (
    get_auth_service,
    get_csrf_service,
    get_request_context,
    require_csrf,
    require_session,
)
from app.core.config import Settings, get_settings
from app.core.context import RequestContext
from app.core.errors import ForbiddenError, ValidationError
from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RestError,
    UpdateUserRequest,
    UserResponse,
    UsersList,
)
from app.services.auth_service import AuthService
from app.services.avatar import AvatarUpload
from app.services.csrf import CsrfService
from app.services.pagination import PaginationQuery

router = APIRouter()

_ERRORS = {
    400: {"model": RestError},
    401: {"model": RestError},
    403: {"model": RestError},
    404: {"model": RestError},
    409: {"model": RestError},
    500: {"model": RestError},
}


def _set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_NAME,
        value=session_id,
        max_age=settings.SESSION_EXPIRE_SECONDS,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def _require_owner_or_admin(ctx: RequestContext, user_id: int) -> None:
    user = ctx.current_user
    if user is None or (user.id != user_id and user.role != "admin"):
        raise ForbiddenError("Forbidden")


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
def register(
    body: RegisterRequest,
    response: Response,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Create a user account and start a session (sets the session cookie)."""
    user, session_id = auth.register(ctx, body)
    _set_session_cookie(response, session_id, settings)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse, responses=_ERRORS)
def login(
    body: LoginRequest,
    response: Response,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    """Authenticate with email and password; sets the session cookie."""
    user, session_id = auth.login(ctx, body)
    _set_session_cookie(response, session_id, settings)
    return UserResponse.model_validate(user)


@router.post("/logout", responses=_ERRORS)
def logout(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """Destroy the current session and clear the cookie. 401 if no cookie is sent."""
    auth.logout(ctx, request.cookies.get(settings.SESSION_NAME))
    response = Response(status_code=status.HTTP_200_OK)
    response.delete_cookie(settings.SESSION_NAME, path="/")
    return response


@router.get("/me", response_model=UserResponse, responses=_ERRORS)
def get_me(
    ctx: Annotated[RequestContext, Depends(require_session)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """Return the user owning the session cookie."""
    return UserResponse.model_validate(auth.get_me(ctx))


@router.get("/token", responses=_ERRORS)
def get_csrf_token(
    ctx: Annotated[RequestContext, Depends(require_session)],
    csrf: Annotated[CsrfService, Depends(get_csrf_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """
    Issue a CSRF token for the current session in the response header.
    Send it back in the same header on PUT/DELETE and avatar uploads.
    """
    token = csrf.make_token(ctx.session_id)
    return Response(
        status_code=status.HTTP_200_OK,
        headers={
            settings.CSRF_HEADER: token,
            "Access-Control-Expose-Headers": settings.CSRF_HEADER,
        },
    )


@router.get("/all", response_model=UsersList, responses=_ERRORS)
def get_users(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    page: int | None = Query(default=None, description="Page number, 1-based"),
    size: int | None = Query(default=None, description="Users per page"),
    order_by: str | None = Query(
        default=None, alias="orderBy", description="Sort column; prefix '-' for descending"
    ),
) -> UsersList:
    """List all users, one page at a time."""
    pagination = PaginationQuery.from_params(page, size, settings)
    return auth.get_users(ctx, pagination, order_by)


@router.get("/find", response_model=UsersList, responses=_ERRORS)
def find_by_name(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    name: str | None = Query(default=None, description="Substring of first or last name"),
    page: int | None = Query(default=None),
    size: int | None = Query(default=None),
) -> UsersList:
    """Search users by name (case-insensitive substring, ordered by id)."""
    if not name or not name.strip():
        raise ValidationError("name is required")
    pagination = PaginationQuery.from_params(page, size, settings)
    return auth.find_by_name(ctx, name, pagination)


@router.get("/{user_id}", response_model=UserResponse, responses=_ERRORS)
def get_user_by_id(
    user_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    return UserResponse.model_validate(auth.get_by_id(ctx, user_id))


@router.put("/{user_id}", response_model=UserResponse, responses=_ERRORS)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    ctx: Annotated[RequestContext, Depends(require_csrf)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """Partially update a user. Owners may edit themselves; only admins may change roles."""
    _require_owner_or_admin(ctx, user_id)
    if "role" in body.model_fields_set and ctx.current_user.role != "admin":
        raise ForbiddenError("Only admins can change roles")
    return UserResponse.model_validate(auth.update(ctx, user_id, body))


@router.delete("/{user_id}", response_model=str, responses=_ERRORS)
def delete_user(
    user_id: int,
    ctx: Annotated[RequestContext, Depends(require_csrf)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> str:
    """Delete a user account and all of its sessions (admin only)."""
    if ctx.current_user.role != "admin":
        raise ForbiddenError("Admin access required")
    auth.delete(ctx, user_id)
    return "ok"


@router.post("/{user_id}/avatar", response_model=str, responses=_ERRORS)
def upload_avatar(
    user_id: int,
    ctx: Annotated[RequestContext, Depends(require_csrf)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    file: UploadFile = File(..., description="JPEG, PNG, GIF or WebP image"),
    bucket: str | None = Query(default=None, description="Target bucket; defaults to AVATAR_BUCKET"),
) -> str:
    """Upload an avatar image for the user and return its URL."""
    _require_owner_or_admin(ctx, user_id)
    # One byte past the limit is enough to reject oversized files.
    content = file.file.read(settings.AVATAR_MAX_BYTES + 1)
    upload = AvatarUpload(filename=file.filename or "", content=content)
    return auth.upload_avatar(ctx, user_id, upload, bucket or settings.AVATAR_BUCKET)
