"""Request-scoped context: deadline plus the authenticated session, if any."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from app.core.errors import RequestTimeoutError

if TYPE_CHECKING:
    from app.models.user import User


@dataclass(frozen=True)
class RequestContext:
    """
    Passed explicitly to every service call.

    deadline is a time.monotonic() value. session_id and current_user are set
    only after the session dependency has validated the cookie; None means
    "not authenticated".
    """

    deadline: float
    session_id: str | None = None
    current_user: User | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> RequestContext:
        return cls(deadline=time.monotonic() + seconds)

    def check_deadline(self, operation: str) -> None:
        """Raise RequestTimeoutError if the deadline has already passed."""
        if time.monotonic() >= self.deadline:
            raise RequestTimeoutError(f"Deadline exceeded before {operation}")

    def authenticated(self, session_id: str, user: User) -> RequestContext:
        return replace(self, session_id=session_id, current_user=user)
