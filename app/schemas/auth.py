"""Request/response schemas for auth and user endpoints."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)
from app.services.sanitize import normalize_email, sanitize_text

_TEXT_FIELDS = (
    "first_name",
    "last_name",
    "about",
    "phone_number",
    "address",
    "city",
    "country",
    "gender",
    "birthday",
)


class ProfileFields(BaseModel):
    """Optional profile attributes shared by registration and update."""

    about: str | None = Field(default=None, max_length=1024)
    phone_number: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=250)
    city: str | None = Field(default=None, max_length=24)
    country: str | None = Field(default=None, max_length=24)
    gender: str | None = Field(default=None, max_length=10)
    postcode: int | None = Field(default=None, ge=0)
    birthday: str | None = Field(default=None, max_length=10)

    @field_validator(*_TEXT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def sanitize(cls, v: Any) -> Any:
        if isinstance(v, str):
            return sanitize_text(v)
        return v


class RegisterRequest(ProfileFields):
    """New account. Role is always 'user' for self-registration."""

    first_name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    last_name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: str = Field(..., max_length=EMAIL_MAX_LEN)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_email(v)
        return v


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., max_length=EMAIL_MAX_LEN, description="Email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            return sanitize_text(v).lower()
        return v


class UpdateUserRequest(ProfileFields):
    """Partial update; only fields present in the body are changed."""

    first_name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    last_name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: str | None = Field(default=None, max_length=EMAIL_MAX_LEN)
    password: str | None = Field(
        default=None, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    role: Literal["user", "admin"] | None = None

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            return normalize_email(v)
        return v


class UserResponse(BaseModel):
    """Public view of a user (no password hash)."""

    user_id: int = Field(validation_alias=AliasChoices("id", "user_id"))
    first_name: str
    last_name: str
    email: str
    role: str
    about: str | None = None
    avatar: str | None = None
    phone_number: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    gender: str | None = None
    postcode: int | None = None
    birthday: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    login_date: datetime | None = None

    class Config:
        from_attributes = True


class UsersList(BaseModel):
    """One page of users plus pagination metadata."""

    total_count: int
    total_pages: int
    page: int
    size: int
    has_more: bool
    users: list[UserResponse]


class RestError(BaseModel):
    """Error body returned for every failed request."""

    error: str
    status: int
