"""
One-time signup code protocol: send -> verify -> consume -> provision.

A code row moves NONE -> PENDING on send and PENDING -> CONSUMED exactly once
on verify. Expired, used, mismatched or missing codes are rejected with a
user-correctable CodeError. The row is claimed before any account is written,
and released again (best-effort) when provisioning fails.
"""
import enum
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from auth.token import create_verify_token, verify_token_matches
from models import CodeState, Purpose, VerificationCode
from services.code_service import codes_match, generate_code, hash_code, is_valid_code_format, utcnow
from services.code_store import CodeStore
from services.company_service import resolve_roster_entry
from services.email_service import Notifier
from services.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CodeIncorrect,
    CodeNotFound,
    ValidationError,
)
from services.provisioning_service import AccountProvisioner, EmployeeSignup, OwnerSignup
from services.supabase_client import SupabaseClient
from utils.sanitize import clean_str, normalize_company_code, normalize_email, normalize_name

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class VerifyPhase(enum.Enum):
    CONSUME = "consume"
    VERIFY = "verify"
    FINALISE = "finalise"


def _purpose(value: Any) -> Purpose:
    try:
        return Purpose.parse(clean_str(value))
    except ValueError:
        raise ValidationError("Invalid purpose")


def _number(body: Mapping[str, Any], key: str) -> float:
    value = body.get(key)
    if value in (None, ""):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {key}")
    if not math.isfinite(number):
        raise ValidationError(f"Invalid {key}")
    return number


@dataclass
class SendCodeRequest:
    email: str
    purpose: Purpose
    company_code: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "SendCodeRequest":
        return cls(
            email=normalize_email(body.get("email")),
            purpose=_purpose(body.get("purpose")),
            company_code=normalize_company_code(body.get("company_code")) or None,
            full_name=clean_str(body.get("full_name")) or None,
        )

    def validate(self) -> "SendCodeRequest":
        if not self.email:
            raise ValidationError("Missing email")
        if self.purpose.requires_company:
            if not self.company_code:
                raise ValidationError("Missing company_code")
            if not self.full_name:
                raise ValidationError("Missing full_name")
        return self


@dataclass
class VerifyCodeRequest:
    email: str
    code: str
    purpose: Purpose
    phase: VerifyPhase = VerifyPhase.CONSUME
    password: str = ""
    full_name: str = ""
    company_name: str = ""
    company_size: str = ""
    company_code: Optional[str] = None
    module_ids: List[str] = field(default_factory=list)
    verify_token: str = ""
    company_size_id: Optional[str] = None
    company_size_label: Optional[str] = None
    company_size_price: float = 0
    modules_total: float = 0
    total_monthly: float = 0

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "VerifyCodeRequest":
        try:
            phase = VerifyPhase(clean_str(body.get("phase")).lower() or VerifyPhase.CONSUME.value)
        except ValueError:
            raise ValidationError("Invalid phase")

        module_ids = body.get("module_ids")
        return cls(
            email=normalize_email(body.get("email")),
            code=clean_str(body.get("code")),
            purpose=_purpose(body.get("purpose")),
            phase=phase,
            password=str(body.get("password") or ""),
            full_name=clean_str(body.get("full_name")),
            company_name=clean_str(body.get("company_name")),
            company_size=clean_str(body.get("company_size")),
            company_code=normalize_company_code(body.get("company_code")) or None,
            module_ids=[str(m) for m in module_ids] if isinstance(module_ids, list) else [],
            verify_token=clean_str(body.get("verify_token")),
            company_size_id=clean_str(body.get("company_size_id")) or None,
            company_size_label=clean_str(body.get("company_size_label")) or None,
            company_size_price=_number(body, "company_size_price"),
            modules_total=_number(body, "modules_total"),
            total_monthly=_number(body, "total_monthly"),
        )

    def validate(self) -> "VerifyCodeRequest":
        if not self.email:
            raise ValidationError("Missing email")
        if not is_valid_code_format(self.code):
            raise ValidationError("Missing 6-digit code")
        if self.purpose.requires_company and not self.company_code:
            raise ValidationError("Missing company_code")

        # the check-only phase needs nothing beyond what locates the code
        if self.phase is VerifyPhase.VERIFY:
            return self

        if self.phase is VerifyPhase.FINALISE and not self.verify_token:
            raise ValidationError("Missing verify_token")
        if not self.full_name:
            raise ValidationError("Missing full_name")
        if len(self.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.purpose is Purpose.OWNER_SIGNUP:
            if not self.company_name:
                raise ValidationError("Missing company_name")
            if not self.company_size:
                raise ValidationError("Missing company_size")
        return self

    def owner_signup(self) -> OwnerSignup:
        return OwnerSignup(
            email=self.email,
            password=self.password,
            full_name=self.full_name,
            company_name=self.company_name,
            company_size=self.company_size,
            module_ids=self.module_ids,
            company_size_id=self.company_size_id,
            company_size_label=self.company_size_label,
            company_size_price=self.company_size_price,
            modules_total=self.modules_total,
            total_monthly=self.total_monthly,
        )

    def employee_signup(self) -> EmployeeSignup:
        return EmployeeSignup(
            email=self.email,
            password=self.password,
            full_name=self.full_name,
            company_code=self.company_code,
        )


class VerificationEngine:
    def __init__(
        self,
        client: SupabaseClient,
        secret: str,
        notifier: Optional[Notifier] = None,
        store: Optional[CodeStore] = None,
        provisioner: Optional[AccountProvisioner] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.secret = secret
        self.notifier = notifier
        self.clock = clock
        self.store = store or CodeStore(client, clock=clock)
        self.provisioner = provisioner or AccountProvisioner(client)

    # ────────────────────────────────────────────────────────────
    # send
    # ────────────────────────────────────────────────────────────
    def send_code(self, request: SendCodeRequest) -> VerificationCode:
        """
        Issue a fresh code for (email, purpose) and email it.

        Employee codes are only issued to names on the company's roster. A
        delivery failure is reported to the caller, but the stored code stays
        valid for its window.
        """
        request.validate()
        if self.notifier is None:
            raise RuntimeError("send_code needs a notifier")

        if request.purpose.requires_company:
            resolve_roster_entry(self.client, request.company_code, request.full_name)

        self.store.delete_all_unused(request.email, request.purpose)

        code, expires_at = generate_code(self.clock())
        record = VerificationCode(
            email=request.email,
            code_hash=hash_code(code, self.secret),
            purpose=request.purpose,
            expires_at=expires_at,
            company_code=request.company_code,
            full_name=request.full_name,
        )
        stored = self.store.insert(record)

        self.notifier.send_code(request.email, code, request.purpose)
        logger.info(f"Sent {request.purpose.value} code to {request.email}")
        return stored

    # ────────────────────────────────────────────────────────────
    # verify
    # ────────────────────────────────────────────────────────────
    @staticmethod
    def _same_claimant(request: VerifyCodeRequest, row: VerificationCode) -> bool:
        """An employee code is only good for the roster name it was issued to."""
        if not request.purpose.requires_company or not row.full_name or not request.full_name:
            return True
        return normalize_name(request.full_name) == normalize_name(row.full_name)

    def check(self, request: VerifyCodeRequest) -> VerificationCode:
        """Locate the newest code for the request and reject it unless it is pending and matches."""
        row = self.store.find_latest(request.email, request.purpose, request.company_code)
        if row is None or not self._same_claimant(request, row):
            raise CodeNotFound()
        state = row.state(self.clock())
        if state is CodeState.CONSUMED:
            raise CodeAlreadyUsed()
        if state is CodeState.EXPIRED:
            raise CodeExpired()
        if not codes_match(request.code, self.secret, row.code_hash):
            raise CodeIncorrect()
        return row

    def verify(self, request: VerifyCodeRequest) -> Dict[str, Any]:
        request.validate()
        row = self.check(request)

        if request.phase is VerifyPhase.VERIFY:
            return {
                "verified": True,
                "verify_token": create_verify_token(self.secret, row),
                "expires_at": row.expires_at.isoformat(),
            }

        if request.phase is VerifyPhase.FINALISE and not verify_token_matches(
            request.verify_token, self.secret, row, self.clock()
        ):
            raise ValidationError("Verification expired or invalid. Please request a new code.")

        if not self.store.mark_used(row.id):
            # a concurrent request consumed the row between check and claim
            raise CodeAlreadyUsed()
        logger.info(f"Consumed {row.purpose.value} code {row.id} for {row.email}")

        try:
            if request.purpose is Purpose.OWNER_SIGNUP:
                account = self.provisioner.provision_owner(request.owner_signup())
            else:
                account = self.provisioner.provision_employee(request.employee_signup())
        except Exception:
            logger.warning(f"Provisioning failed for code {row.id}; releasing it")
            self.store.reset_used(row.id)
            raise

        return {"created": True, **account.to_dict()}
