"""
Create a user (e.g. first admin; self-registration always creates role 'user'). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password Ada Admin admin
"""
import argparse
import sys

import pydantic

from app.core.cache import redis_client
from app.core.config import get_settings
from app.core.context import RequestContext
from app.core.database import SessionLocal
from app.core.errors import AppError
from app.models import USER_ROLES
from app.schemas.auth import RegisterRequest
from app.services.session_store import SessionStore
from app.services.user_directory import UserDirectory


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a user account from the command line.")
    parser.add_argument("email", help="Email (login credential)")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("first_name", help="First name (1-30 chars)")
    parser.add_argument("last_name", help="Last name (1-30 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=list(USER_ROLES))
    args = parser.parse_args()

    try:
        body = RegisterRequest(
            email=args.email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except pydantic.ValidationError as e:
        for err in e.errors():
            print(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        users = UserDirectory(db, SessionStore(redis_client, settings.SESSION_PREFIX))
        ctx = RequestContext.with_timeout(settings.REQUEST_TIMEOUT_SEC)
        user = users.create(ctx, body, role=args.role)
        print(f"Created user '{user.email}' (id={user.id}) with role '{user.role}'.")
        return 0
    except AppError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
