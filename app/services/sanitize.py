"""Strip markup and control characters from user-supplied text before it is stored."""

import re

_TAG_RE = re.compile(r"<[^>]*>")
# C0 controls except tab/newline/carriage return, plus DEL.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def sanitize_text(value: str) -> str:
    """Remove HTML tags and control characters; trim surrounding whitespace."""
    without_tags = _TAG_RE.sub("", value)
    return _CONTROL_RE.sub("", without_tags).strip()


def normalize_email(value: str) -> str:
    """Lower-case and trim an email address; raise ValueError if it is not address-shaped."""
    email = sanitize_text(value).lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("Invalid email address.")
    return email
