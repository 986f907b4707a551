import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

CODE_LENGTH = 6
CODE_TTL_MINUTES = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code(now: Optional[datetime] = None, ttl_minutes: int = CODE_TTL_MINUTES) -> Tuple[str, datetime]:
    """Return a zero-padded 6-digit code and the instant it stops being valid."""
    issued = now or utcnow()
    code = f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"
    return code, issued + timedelta(minutes=ttl_minutes)


def hash_code(code: str, secret: str) -> str:
    """SHA-256 of code || secret, hex encoded. Only this digest is ever stored."""
    return hashlib.sha256(f"{code}{secret}".encode("utf-8")).hexdigest()


def codes_match(code: str, secret: str, stored_hash: str) -> bool:
    return hmac.compare_digest(hash_code(code, secret), str(stored_hash or ""))


def is_valid_code_format(code: str) -> bool:
    return len(code) == CODE_LENGTH and code.isascii() and code.isdigit()
