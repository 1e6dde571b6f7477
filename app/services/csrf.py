"""CSRF tokens derived from the session id with HMAC-SHA256; nothing is stored."""

import base64
import hashlib
import hmac


class CsrfService:
    """
    make_token is a pure function of (secret, session_id). A token is valid for
    exactly as long as its session; callers check the session separately.
    """

    def __init__(self, secret: str) -> None:
        if not secret or not secret.strip():
            raise ValueError("CSRF secret must be non-empty")
        self._key = secret.encode("utf-8")

    def make_token(self, session_id: str) -> str:
        digest = hmac.new(self._key, session_id.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def verify_token(self, session_id: str, token: str) -> bool:
        """Constant-time comparison against the recomputed token."""
        if not token:
            return False
        expected = self.make_token(session_id)
        return hmac.compare_digest(expected.encode("ascii"), token.encode("utf-8"))
