"""Session record stored in Redis."""

from datetime import datetime

from pydantic import BaseModel, Field


class SessionRecord(BaseModel):
    """Binds an opaque session id to a user id. Never mutated after creation."""

    session_id: str = Field(default="", description="Opaque id; assigned by the session store")
    user_id: int
    created_at: datetime | None = None
