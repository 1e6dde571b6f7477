"""Pydantic request/response schemas."""

from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RestError,
    UpdateUserRequest,
    UserResponse,
    UsersList,
)
from app.schemas.health import HealthResponse
from app.schemas.session import SessionRecord

__all__ = [
    "HealthResponse",
    "LoginRequest",
    "RegisterRequest",
    "RestError",
    "SessionRecord",
    "UpdateUserRequest",
    "UserResponse",
    "UsersList",
]
