"""Password hashing and session identifier generation."""

import secrets

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Bounds for user input validation.
NAME_MIN_LEN = 1
NAME_MAX_LEN = 30
EMAIL_MAX_LEN = 60
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

# 32 random bytes -> 43 URL-safe characters.
SESSION_ID_BYTES = 32


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def new_session_id() -> str:
    """Opaque, unguessable session identifier."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)
