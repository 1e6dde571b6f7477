"""Shared test doubles: an in-memory Redis and a SQLite-backed DB session factory."""

import time
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import hash_password
from app.models import Base, User


class InMemoryRedis:
    """
    Covers the redis.Redis calls the session store makes (decode_responses=True
    semantics). Expiry is evaluated lazily against clock().
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, str] = {}
        self._sets: dict[str, set[str]] = {}
        self._expires: dict[str, float] = {}

    def _purge(self, key: str) -> None:
        expires_at = self._expires.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._values.pop(key, None)
            self._sets.pop(key, None)
            self._expires.pop(key, None)

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        self._purge(key)
        return self._values.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self._values[key] = value
        self._expires[key] = self._clock() + ttl
        return True

    def sadd(self, key: str, *members: str) -> int:
        self._purge(key)
        s = self._sets.setdefault(key, set())
        before = len(s)
        s.update(members)
        return len(s) - before

    def srem(self, key: str, *members: str) -> int:
        self._purge(key)
        s = self._sets.get(key, set())
        removed = len(s & set(members))
        s.difference_update(members)
        return removed

    def smembers(self, key: str) -> set[str]:
        self._purge(key)
        return set(self._sets.get(key, set()))

    def expire(self, key: str, ttl: int) -> bool:
        if key not in self._values and key not in self._sets:
            return False
        self._expires[key] = self._clock() + ttl
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._purge(key)
            if key in self._values or key in self._sets:
                removed += 1
            self._values.pop(key, None)
            self._sets.pop(key, None)
            self._expires.pop(key, None)
        return removed

    def keys(self) -> list[str]:
        for key in list(self._values) + list(self._sets):
            self._purge(key)
        return sorted(set(self._values) | set(self._sets))

    def pipeline(self, transaction: bool = True) -> "_Pipeline":
        return _Pipeline(self)


class _Pipeline:
    def __init__(self, client: InMemoryRedis) -> None:
        self._client = client
        self._calls: list[tuple[str, tuple]] = []

    def __getattr__(self, name: str):
        def queue(*args):
            self._calls.append((name, args))
            return self

        return queue

    def execute(self) -> list:
        results = [getattr(self._client, name)(*args) for name, args in self._calls]
        self._calls = []
        return results


class ManualClock:
    """Monotonic clock that only moves when advanced."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_session_factory() -> sessionmaker:
    """Fresh in-memory SQLite database with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_file_session_factory(path: str) -> sessionmaker:
    """
    File-backed SQLite database shared across threads. Each transaction opens
    with BEGIN IMMEDIATE so concurrent writers queue on the busy timeout
    instead of failing with "database is locked".
    """
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_users(db: Session, count: int, first_name: str = "User", password: str = "secret-pw") -> list[User]:
    """Insert count users directly (one shared hash keeps this fast)."""
    password_hash = hash_password(password)
    now = datetime.now(UTC)
    users = [
        User(
            first_name=f"{first_name}{i:02d}",
            last_name="Tester",
            email=f"{first_name.lower()}{i:02d}@example.com",
            password_hash=password_hash,
            role="user",
            created_at=now,
            updated_at=now,
        )
        for i in range(1, count + 1)
    ]
    db.add_all(users)
    db.commit()
    return users
