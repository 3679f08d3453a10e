import hashlib
import re
from datetime import UTC, datetime

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.fullmatch(value))


def now() -> datetime:
    return datetime.now(UTC)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store bearer secrets."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
