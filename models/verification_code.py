import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class Purpose(enum.Enum):
    OWNER_SIGNUP = "owner_signup"
    EMPLOYEE_SIGNUP = "employee_signup"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["Purpose"] = None) -> "Purpose":
        """Parse a request value; empty falls back to `default` (owner signup)."""
        raw = (value or "").strip().lower()
        if not raw:
            return default or cls.OWNER_SIGNUP
        return cls(raw)

    @property
    def requires_company(self) -> bool:
        return self is Purpose.EMPLOYEE_SIGNUP


class CodeState(enum.Enum):
    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a PostgREST timestamptz into an aware datetime (naive values are UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class VerificationCode:
    """A row of `signup_codes`. The raw code is never part of it."""
    email: str
    code_hash: str
    purpose: Purpose
    expires_at: datetime
    company_code: Optional[str] = None
    full_name: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    used_at: Optional[datetime] = None

    TABLE = "signup_codes"
    COLUMNS = "id,email,code_hash,purpose,company_code,full_name,expires_at,used_at,created_at"

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime) -> bool:
        # rows with an unreadable expiry are treated as expired
        if self.expires_at is None:
            return True
        return now > self.expires_at

    def state(self, now: datetime) -> CodeState:
        if self.is_used:
            return CodeState.CONSUMED
        if self.is_expired(now):
            return CodeState.EXPIRED
        return CodeState.PENDING

    def to_insert(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "code_hash": self.code_hash,
            "purpose": self.purpose.value,
            "company_code": self.company_code,
            "full_name": self.full_name,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "VerificationCode":
        return cls(
            id=None if row.get("id") is None else str(row["id"]),
            email=row.get("email") or "",
            code_hash=str(row.get("code_hash") or ""),
            purpose=Purpose(row.get("purpose")),
            company_code=row.get("company_code"),
            full_name=row.get("full_name"),
            expires_at=parse_timestamp(row.get("expires_at")),
            created_at=parse_timestamp(row.get("created_at")),
            used_at=parse_timestamp(row.get("used_at")),
        )
