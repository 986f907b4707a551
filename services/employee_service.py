"""
Employee roster management: invites, owner-side adds, removals.
"""
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

from models import EMPLOYEES, PROFILES, EmployeeStatus
from services.code_service import utcnow
from services.company_service import get_company, get_profile, list_employees
from services.email_service import INVITE_TTL_HOURS, Notifier
from services.errors import Conflict, NotFound, ValidationError
from services.supabase_client import SupabaseClient, eq
from utils.detached import run_detached
from utils.sanitize import clean_str, company_prefix, normalize_email

logger = logging.getLogger(__name__)

EMPLOYEE_ID_ATTEMPTS = 80

INVITE_REQUIRED = ("company_id", "full_name", "personal_email", "job_title", "work_email", "employee_code")


def _random_employee_id(prefix: str) -> str:
    return f"{prefix}{secrets.randbelow(10 ** 9):09d}"


def generate_employee_id(client: SupabaseClient, company_id: str, prefix: str,
                         attempts: int = EMPLOYEE_ID_ATTEMPTS) -> str:
    """PREFIX + 9 digits, unique within the company when a free candidate is found."""
    for _ in range(attempts):
        candidate = _random_employee_id(prefix)
        taken = client.select_one(
            EMPLOYEES,
            {"company_id": eq(company_id), "employee_id": eq(candidate)},
            columns="id",
        )
        if not taken:
            return candidate

    logger.warning(f"Employee id candidates collided {attempts} times for company {company_id}")
    return _random_employee_id(prefix)


def invite_employee(
    client: SupabaseClient,
    notifier: Notifier,
    body: Mapping[str, Any],
    onboarding_url: str,
    clock: Callable[[], datetime] = utcnow,
) -> Dict[str, Any]:
    """
    Add an employee to a company's roster and email them an invite link.

    The roster row carries a one-day onboarding token; the invite link comes
    from the backend's admin link generator for the work email and redirects
    to the onboarding page with that token. The link itself is emailed to the
    personal address.
    """
    fields = {
        "company_id": clean_str(body.get("company_id")),
        "full_name": clean_str(body.get("full_name")),
        "personal_email": normalize_email(body.get("personal_email") or body.get("email")),
        "job_title": clean_str(body.get("job_title")),
        "work_email": normalize_email(body.get("work_email")),
        "employee_code": clean_str(body.get("employee_code")),
    }
    for name in INVITE_REQUIRED:
        if not fields[name]:
            raise ValidationError(f"Missing {name}")

    token = str(uuid.uuid4())
    expires_at = clock() + timedelta(hours=INVITE_TTL_HOURS)

    client.insert(EMPLOYEES, [{
        **fields,
        "is_admin": bool(body.get("is_admin")),
        "status": EmployeeStatus.parse(body.get("status")).value,
        "employment_type": body.get("employment_type") or None,
        "notice_period": body.get("notice_period") or None,
        "start_date": body.get("start_date") or None,
        "onboarding_token": token,
        "onboarding_expires": expires_at.isoformat(),
    }], returning=False)

    redirect_to = f"{onboarding_url}?token={quote(token, safe='')}"
    invite_link = client.generate_link("invite", fields["work_email"], redirect_to)

    notifier.send_invite(
        fields["personal_email"],
        fields["full_name"],
        invite_link,
        company_name=clean_str(body.get("company_name")) or None,
    )
    logger.info(f"Invited employee {fields['employee_code']} to company {fields['company_id']}")
    return {"onboarding_expires": expires_at.isoformat()}


def add_app_employee(client: SupabaseClient, user_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
    """Owner-side add from the dashboard. Returns the company and its refreshed roster."""
    full_name = clean_str(body.get("full_name"))
    if not full_name:
        raise ValidationError("Missing full_name")

    profile = get_profile(client, user_id)
    if not profile or not profile.get("company_id"):
        raise ValidationError("No company linked to this user.")

    company = get_company(client, profile["company_id"])
    if not company:
        raise NotFound("Company not found.")

    existing = list_employees(client, company["id"])
    limit = company.get("max_employees")
    if limit and len(existing) >= int(limit):
        raise Conflict(
            f"Employee limit reached ({len(existing)}/{limit}). "
            f"Please upgrade your plan to add more employees."
        )

    employee_id = generate_employee_id(client, company["id"], company_prefix(company.get("company_name")))
    client.insert(EMPLOYEES, [{
        "company_id": company["id"],
        "full_name": full_name,
        "job_title": clean_str(body.get("job_title")),
        "job_category": clean_str(body.get("job_category")),
        "employee_id": employee_id,
        "is_admin": False,
    }], returning=False)
    logger.info(f"Added employee {employee_id} to company {company['id']}")

    return {"company": company, "employees": list_employees(client, company["id"])}


def delete_employee(client: SupabaseClient, company_id: str, employee_id: str) -> Optional[str]:
    """
    Remove a roster row. When the employee had signed up, their profile and
    auth user are removed too, best-effort. Returns the unlinked user id, if any.
    """
    company_id = clean_str(company_id)
    employee_id = clean_str(employee_id)
    if not company_id:
        raise ValidationError("Missing company_id")
    if not employee_id:
        raise ValidationError("Missing employee_id")

    scope = {"id": eq(employee_id), "company_id": eq(company_id)}
    employee = client.select_one(EMPLOYEES, scope)
    if not employee:
        raise NotFound("Employee not found.")

    client.delete(EMPLOYEES, scope)
    logger.info(f"Deleted employee {employee_id} from company {company_id}")

    user_id = employee.get("user_id")
    if user_id:
        run_detached(f"delete profile of {user_id}", client.delete, PROFILES, {"user_id": eq(user_id)})
        run_detached(f"delete auth user {user_id}", client.delete_user, user_id)
    return user_id
