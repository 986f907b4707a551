"""
Persistence of one-time signup codes in the `signup_codes` table.

Writes that the flow depends on (insert, mark_used) raise StoreError.
Cleanup (delete, delete_all_unused, reset_used) is detached: failures are
logged and never reach the caller.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from models import Purpose, VerificationCode
from services.code_service import utcnow
from services.errors import StoreError
from services.supabase_client import SupabaseClient, eq, is_null
from utils.detached import run_detached

logger = logging.getLogger(__name__)

TABLE = VerificationCode.TABLE


class CodeStore:
    def __init__(self, client: SupabaseClient, clock: Callable[[], datetime] = utcnow):
        self.client = client
        self.clock = clock

    def insert(self, record: VerificationCode) -> VerificationCode:
        row = self.client.insert_one(TABLE, record.to_insert())
        stored = VerificationCode.from_row({**record.to_insert(), **row})
        logger.info(f"Stored {record.purpose.value} code {stored.id} for {record.email}")
        return stored

    def find_latest(self, email: str, purpose: Purpose,
                    company_code: Optional[str] = None) -> Optional[VerificationCode]:
        filters = {"email": eq(email), "purpose": eq(purpose.value)}
        if company_code:
            filters["company_code"] = eq(company_code)

        row = self.client.select_one(
            TABLE, filters, columns=VerificationCode.COLUMNS, order="created_at.desc",
        )
        return VerificationCode.from_row(row) if row else None

    def mark_used(self, code_id: str) -> bool:
        """
        Set used_at on a still-unused row. Returns True when this call claimed
        the row, False when it was already used (a concurrent verify won).
        """
        if not code_id:
            raise StoreError("Cannot mark a code without an id as used")
        rows = self.client.update(
            TABLE,
            {"id": eq(code_id), "used_at": is_null()},
            {"used_at": self.clock().isoformat()},
            returning=True,
        )
        return bool(rows)

    def reset_used(self, code_id: str) -> None:
        """Best-effort rollback of mark_used after a failed provisioning."""
        run_detached(
            f"reset used_at on code {code_id}",
            self.client.update, TABLE, {"id": eq(code_id)}, {"used_at": None},
        )

    def delete(self, code_id: str) -> None:
        run_detached(f"delete code {code_id}", self.client.delete, TABLE, {"id": eq(code_id)})

    def delete_all_unused(self, email: str, purpose: Purpose) -> None:
        run_detached(
            f"delete unused {purpose.value} codes for {email}",
            self.client.delete, TABLE,
            {"email": eq(email), "purpose": eq(purpose.value), "used_at": is_null()},
        )
