"""Session store: Redis-backed session records with TTL and a per-user index."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import pydantic
import redis

from app.core.context import RequestContext
from app.core.errors import NotFoundError, RequestTimeoutError, StorageError
from app.core.security import new_session_id
from app.schemas.session import SessionRecord

logger = logging.getLogger(__name__)


@contextmanager
def _redis_errors(operation: str) -> Iterator[None]:
    """Translate redis-py exceptions into the service error taxonomy."""
    try:
        yield
    except redis.TimeoutError as e:
        raise RequestTimeoutError(f"Redis timed out during {operation}", cause=e) from e
    except redis.RedisError as e:
        raise StorageError(f"Redis failed during {operation}", cause=e) from e


class SessionStore:
    """
    Owns every session record. Keys:

    - "{prefix}:{session_id}" -> SessionRecord JSON, expiring after the TTL
    - "{prefix}:user:{user_id}" -> set of that user's session ids

    Expired records are dropped by Redis, so lookup never returns them.
    """

    def __init__(self, client: redis.Redis, prefix: str) -> None:
        self._redis = client
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    def _user_key(self, user_id: int) -> str:
        return f"{self._prefix}:user:{user_id}"

    def create_session(self, ctx: RequestContext, session: SessionRecord, ttl: int) -> str:
        """Persist a new session under a freshly generated id and return the id."""
        ctx.check_deadline("create session")
        session_id = new_session_id()
        record = session.model_copy(
            update={"session_id": session_id, "created_at": datetime.now(UTC)}
        )
        user_key = self._user_key(record.user_id)
        with _redis_errors("create session"):
            pipe = self._redis.pipeline(transaction=True)
            pipe.setex(self._key(session_id), ttl, record.model_dump_json())
            pipe.sadd(user_key, session_id)
            pipe.expire(user_key, ttl)
            pipe.execute()
        logger.info("Session created: user_id=%s ttl=%s", record.user_id, ttl)
        return session_id

    def get_session_by_id(self, ctx: RequestContext, session_id: str) -> SessionRecord:
        """Return the live session for session_id. Raises NotFoundError if absent or expired."""
        ctx.check_deadline("get session")
        with _redis_errors("get session"):
            data = self._redis.get(self._key(session_id))
        if data is None:
            raise NotFoundError("Session not found")
        try:
            return SessionRecord.model_validate_json(data)
        except pydantic.ValidationError as e:
            raise StorageError("Stored session record is malformed", cause=e) from e

    def delete_by_id(self, ctx: RequestContext, session_id: str) -> None:
        """Delete one session. Deleting an unknown id is not an error."""
        ctx.check_deadline("delete session")
        with _redis_errors("delete session"):
            data = self._redis.get(self._key(session_id))
            pipe = self._redis.pipeline(transaction=True)
            pipe.delete(self._key(session_id))
            if data is not None:
                try:
                    user_id = SessionRecord.model_validate_json(data).user_id
                    pipe.srem(self._user_key(user_id), session_id)
                except pydantic.ValidationError:
                    logger.warning("Deleting malformed session record")
            pipe.execute()
        logger.info("Session deleted")

    def delete_by_user_id(self, ctx: RequestContext, user_id: int) -> int:
        """Delete every session of user_id; returns how many live sessions were removed."""
        ctx.check_deadline("delete user sessions")
        user_key = self._user_key(user_id)
        with _redis_errors("delete user sessions"):
            session_ids = self._redis.smembers(user_key)
            pipe = self._redis.pipeline(transaction=True)
            for session_id in session_ids:
                pipe.delete(self._key(session_id))
            pipe.delete(user_key)
            results = pipe.execute()
        removed = sum(int(r) for r in results[: len(session_ids)])
        logger.info("Sessions deleted for user_id=%s: %s", user_id, removed)
        return removed
