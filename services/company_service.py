# services/company_service.py
import logging
import secrets
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models import COMPANIES, COMPANY_PATCH_FIELDS, EMPLOYEES, PROFILES
from services.errors import NotFound, ValidationError
from services.supabase_client import SupabaseClient, eq
from utils.sanitize import clean_str, company_prefix, normalize_name

logger = logging.getLogger(__name__)

COMPANY_CODE_ATTEMPTS = 25

ROSTER_NOT_FOUND_MESSAGE = (
    "We couldn't match you to a company roster. Please check your details or contact your admin."
)


def get_company(client: SupabaseClient, company_id: str) -> Optional[Dict[str, Any]]:
    return client.select_one(COMPANIES, {"id": eq(company_id)})


def find_company_by_code(client: SupabaseClient, company_code: str) -> Optional[Dict[str, Any]]:
    if not company_code:
        return None
    return client.select_one(COMPANIES, {"company_code": eq(company_code)})


def get_profile(client: SupabaseClient, user_id: str) -> Optional[Dict[str, Any]]:
    return client.select_one(PROFILES, {"user_id": eq(user_id)})


def list_employees(client: SupabaseClient, company_id: str) -> List[Dict[str, Any]]:
    return client.select(EMPLOYEES, {"company_id": eq(company_id)}, order="created_at.asc")


def find_employee_by_name(client: SupabaseClient, company_id: str, full_name: str,
                          unclaimed: bool = False) -> Optional[Dict[str, Any]]:
    """
    Case-insensitive, whitespace-tolerant name match within one company's roster.
    With `unclaimed`, rows already linked to a user are skipped.
    """
    wanted = normalize_name(full_name)
    if not wanted:
        return None
    for employee in list_employees(client, company_id):
        if unclaimed and employee.get("user_id"):
            continue
        if normalize_name(employee.get("full_name")) == wanted:
            return employee
    return None


def resolve_roster_entry(client: SupabaseClient, company_code: str,
                         full_name: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Find (company, employee) for an employee joining by company code.
    Only roster rows nobody has signed up with yet qualify. An unknown
    company, an unknown name and an already claimed row fail with the same
    message.
    """
    company = find_company_by_code(client, company_code)
    employee = find_employee_by_name(client, company["id"], full_name, unclaimed=True) if company else None
    if not company or not employee:
        logger.info(f"Roster lookup failed for company code {company_code!r}")
        raise NotFound(ROSTER_NOT_FOUND_MESSAGE)
    return company, employee


def generate_company_code(client: SupabaseClient, company_name: str,
                          attempts: int = COMPANY_CODE_ATTEMPTS) -> str:
    """PREFIX + 6 digits, checked for uniqueness; falls back to a timestamp suffix."""
    prefix = company_prefix(company_name)
    for _ in range(attempts):
        candidate = f"{prefix}{secrets.randbelow(900_000) + 100_000}"
        if not client.select_one(COMPANIES, {"company_code": eq(candidate)}, columns="id"):
            return candidate

    fallback = f"{prefix}{int(time.time())}"
    logger.warning(f"Company code candidates collided {attempts} times, using {fallback}")
    return fallback


def company_patch(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Only whitelisted fields that are present in the body (null included)."""
    return {k: body[k] for k in COMPANY_PATCH_FIELDS if k in body}


def update_company(client: SupabaseClient, company_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
    company_id = clean_str(company_id)
    if not company_id:
        raise ValidationError("Missing company_id")

    patch = company_patch(body)
    if not patch:
        raise ValidationError("Nothing to update")

    client.update(COMPANIES, {"id": eq(company_id)}, patch)
    logger.info(f"Updated company {company_id}: {sorted(patch)}")
    return patch
