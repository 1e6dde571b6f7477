"""Tests for app.services.user_directory against an in-memory SQLite database."""

import os
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from app.core.context import RequestContext
from app.core.errors import (
    ConflictError,
    NotFoundError,
    RequestTimeoutError,
    StorageError,
    ValidationError,
)
from app.core.security import verify_password
from app.models import User
from app.schemas.auth import RegisterRequest, UpdateUserRequest
from app.schemas.session import SessionRecord
from app.services.pagination import PaginationQuery
from app.services.session_store import SessionStore
from app.services.user_directory import UserDirectory, parse_order_by
from tests.support import InMemoryRedis, add_users, make_file_session_factory, make_session_factory


def _ctx() -> RequestContext:
    return RequestContext.with_timeout(5.0)


def _register(email: str = "ada@example.com", password: str = "correct-horse", **kwargs) -> RegisterRequest:
    fields = {"first_name": "Ada", "last_name": "Lovelace", "email": email, "password": password}
    fields.update(kwargs)
    return RegisterRequest(**fields)


class DirectoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        rounds = patch("app.core.security.BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)
        self.db = make_session_factory()()
        self.addCleanup(self.db.close)
        self.redis = InMemoryRedis()
        self.sessions = SessionStore(self.redis, "test-session")
        self.directory = UserDirectory(self.db, self.sessions)


class TestCreate(DirectoryTestCase):
    def test_password_is_hashed(self) -> None:
        user = self.directory.create(_ctx(), _register(password="plain-text-pw"))
        self.assertNotEqual(user.password_hash, "plain-text-pw")
        self.assertTrue(verify_password("plain-text-pw", user.password_hash))

    def test_assigns_id_timestamps_and_default_role(self) -> None:
        user = self.directory.create(_ctx(), _register(city="London"))
        self.assertIsNotNone(user.id)
        self.assertIsNotNone(user.created_at)
        self.assertEqual(user.role, "user")
        self.assertEqual(user.city, "London")

    def test_email_is_normalized(self) -> None:
        user = self.directory.create(_ctx(), _register(email="  Ada@Example.COM "))
        self.assertEqual(user.email, "ada@example.com")

    def test_duplicate_email_conflicts(self) -> None:
        self.directory.create(_ctx(), _register())
        with self.assertRaises(ConflictError):
            self.directory.create(_ctx(), _register(first_name="Other"))
        self.assertEqual(self.db.query(User).count(), 1)

    def test_unknown_role_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.directory.create(_ctx(), _register(), role="root")


class TestGetAndUpdate(DirectoryTestCase):
    def test_get_missing_user(self) -> None:
        with self.assertRaises(NotFoundError):
            self.directory.get_by_id(_ctx(), 404)

    def test_id_beyond_column_range_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.directory.get_by_id(_ctx(), 10**20)
        with self.assertRaises(NotFoundError):
            self.directory.get_by_id(_ctx(), 0)

    def test_get_by_email_is_case_insensitive(self) -> None:
        created = self.directory.create(_ctx(), _register())
        self.assertEqual(self.directory.get_by_email(_ctx(), "ADA@example.com").id, created.id)

    def test_partial_update_changes_only_given_fields(self) -> None:
        user = self.directory.create(_ctx(), _register(city="London"))
        before = user.updated_at
        updated = self.directory.update(_ctx(), user.id, UpdateUserRequest(first_name="Augusta"))
        self.assertEqual(updated.first_name, "Augusta")
        self.assertEqual(updated.last_name, "Lovelace")
        self.assertEqual(updated.city, "London")
        self.assertGreaterEqual(updated.updated_at, before)

    def test_update_password_rehashes(self) -> None:
        user = self.directory.create(_ctx(), _register())
        updated = self.directory.update(_ctx(), user.id, UpdateUserRequest(password="new-password"))
        self.assertTrue(verify_password("new-password", updated.password_hash))
        self.assertFalse(verify_password("correct-horse", updated.password_hash))

    def test_update_cannot_null_required_field(self) -> None:
        user = self.directory.create(_ctx(), _register())
        with self.assertRaises(ValidationError):
            self.directory.update(_ctx(), user.id, UpdateUserRequest(first_name=None))

    def test_update_missing_user(self) -> None:
        with self.assertRaises(NotFoundError):
            self.directory.update(_ctx(), 404, UpdateUserRequest(first_name="X"))

    def test_update_to_taken_email_conflicts(self) -> None:
        self.directory.create(_ctx(), _register(email="a@example.com"))
        b = self.directory.create(_ctx(), _register(email="b@example.com"))
        with self.assertRaises(ConflictError):
            self.directory.update(_ctx(), b.id, UpdateUserRequest(email="a@example.com"))


class TestSetAvatar(DirectoryTestCase):
    def test_sets_avatar_url(self) -> None:
        user = self.directory.create(_ctx(), _register())
        updated = self.directory.set_avatar(_ctx(), user.id, "http://minio/avatars/a.png")
        self.assertEqual(updated.avatar, "http://minio/avatars/a.png")

    def test_deadline_checked_before_commit(self) -> None:
        user = self.directory.create(_ctx(), _register())
        ctx = MagicMock(spec=RequestContext)
        ctx.check_deadline.side_effect = [None, RequestTimeoutError("Deadline exceeded")]

        with self.assertRaises(RequestTimeoutError):
            self.directory.set_avatar(ctx, user.id, "http://minio/avatars/a.png")

        ctx.check_deadline.assert_called_with("set avatar")
        self.db.rollback()
        self.assertIsNone(self.directory.get_by_id(_ctx(), user.id).avatar)


class TestDelete(DirectoryTestCase):
    def test_delete_cascades_to_sessions(self) -> None:
        user = self.directory.create(_ctx(), _register())
        sid = self.sessions.create_session(_ctx(), SessionRecord(user_id=user.id), 3600)

        self.directory.delete(_ctx(), user.id)

        with self.assertRaises(NotFoundError):
            self.directory.get_by_id(_ctx(), user.id)
        with self.assertRaises(NotFoundError):
            self.sessions.get_session_by_id(_ctx(), sid)

    def test_delete_missing_user(self) -> None:
        with self.assertRaises(NotFoundError):
            self.directory.delete(_ctx(), 404)


class TestListAndFind(DirectoryTestCase):
    def test_pagination_over_25_users(self) -> None:
        add_users(self.db, 25)
        page2 = self.directory.list(_ctx(), PaginationQuery(page=2, size=10))
        self.assertEqual(len(page2.users), 10)
        self.assertEqual(page2.total_count, 25)
        self.assertEqual(page2.total_pages, 3)
        self.assertTrue(page2.has_more)
        self.assertEqual(page2.users[0].first_name, "User11")

        page3 = self.directory.list(_ctx(), PaginationQuery(page=3, size=10))
        self.assertEqual(len(page3.users), 5)
        self.assertFalse(page3.has_more)

    def test_page_past_end_is_empty(self) -> None:
        add_users(self.db, 3)
        result = self.directory.list(_ctx(), PaginationQuery(page=5, size=10))
        self.assertEqual(result.users, [])
        self.assertEqual(result.total_pages, 1)
        self.assertFalse(result.has_more)

    def test_order_by_descending(self) -> None:
        add_users(self.db, 3)
        result = self.directory.list(_ctx(), PaginationQuery(page=1, size=10), "-first_name")
        self.assertEqual([u.first_name for u in result.users], ["User03", "User02", "User01"])

    def test_invalid_order_by(self) -> None:
        with self.assertRaises(ValidationError):
            self.directory.list(_ctx(), PaginationQuery(page=1, size=10), "password_hash")
        with self.assertRaises(ValidationError):
            parse_order_by("first_name; DROP TABLE users")

    def test_find_by_name_is_case_insensitive_substring(self) -> None:
        add_users(self.db, 2, first_name="Alice")
        add_users(self.db, 1, first_name="Bob")
        add_users(self.db, 1, first_name="Khalid")
        result = self.directory.find_by_name(_ctx(), "ALI", PaginationQuery(page=1, size=10))
        names = [u.first_name for u in result.users]
        self.assertEqual(names, ["Alice01", "Alice02", "Khalid01"])
        ids = [u.user_id for u in result.users]
        self.assertEqual(ids, sorted(ids))

    def test_find_by_name_matches_last_name(self) -> None:
        add_users(self.db, 2)
        result = self.directory.find_by_name(_ctx(), "test", PaginationQuery(page=1, size=10))
        self.assertEqual(result.total_count, 2)

    def test_find_by_name_treats_wildcards_literally(self) -> None:
        add_users(self.db, 3)
        result = self.directory.find_by_name(_ctx(), "%", PaginationQuery(page=1, size=10))
        self.assertEqual(result.total_count, 0)

    def test_find_by_name_requires_name(self) -> None:
        with self.assertRaises(ValidationError):
            self.directory.find_by_name(_ctx(), "  ", PaginationQuery(page=1, size=10))


class TestConcurrentRegistration(unittest.TestCase):
    def setUp(self) -> None:
        rounds = patch("app.core.security.BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.SessionLocal = make_file_session_factory(os.path.join(tmp.name, "users.db"))
        self.addCleanup(self.SessionLocal.kw["bind"].dispose)

    def test_same_email_in_parallel_creates_exactly_one_user(self) -> None:
        workers = 4
        barrier = threading.Barrier(workers)
        outcomes: list[object] = []
        lock = threading.Lock()

        def register(index: int) -> None:
            db = self.SessionLocal()
            directory = UserDirectory(db, SessionStore(InMemoryRedis(), "test-session"))
            body = _register(first_name=f"Racer{index}")
            try:
                barrier.wait()
                directory.create(_ctx(), body)
                outcome: object = "created"
            except ConflictError:
                outcome = "conflict"
            except Exception as e:
                outcome = e
            finally:
                db.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=register, args=(i,)) for i in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        self.assertCountEqual(outcomes, ["created"] + ["conflict"] * (workers - 1))
        db = self.SessionLocal()
        try:
            self.assertEqual(db.query(User).filter(User.email == "ada@example.com").count(), 1)
        finally:
            db.close()


class TestDatabaseFailures(unittest.TestCase):
    def test_operational_error_is_storage_error_and_rolls_back(self) -> None:
        db = MagicMock()
        db.get.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))
        directory = UserDirectory(db, MagicMock())
        with self.assertRaises(StorageError) as cm:
            directory.get_by_id(_ctx(), 1)
        self.assertNotIn("server closed", cm.exception.message)
        db.rollback.assert_called_once()


if __name__ == "__main__":
    unittest.main()
