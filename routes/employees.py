import azure.functions as func
import logging
from utils.cors import json_ok
from utils.handlers import json_endpoint, read_json, with_context
from auth.deps import current_user_from_request
from services.context import ServiceContext
from services.employee_service import add_app_employee, delete_employee as remove_employee, invite_employee as send_invite

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@json_endpoint
def handle_invite_employee(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    send_invite(ctx.client, ctx.notifier, read_json(req), ctx.settings.onboarding_url, clock=ctx.clock)
    return json_ok()


@json_endpoint
def handle_app_employee(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    user = current_user_from_request(req, ctx.client)
    result = add_app_employee(ctx.client, user["id"], read_json(req))
    return json_ok(result)


@json_endpoint
def handle_delete_employee(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    body = read_json(req)
    remove_employee(ctx.client, body.get("company_id"), body.get("employee_id"))
    return json_ok()


@bp.function_name(name="InviteEmployee")
@bp.route(route="invite-employee", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def invite_employee(req: func.HttpRequest) -> func.HttpResponse:
    """
    Add an employee to the roster and email them an onboarding link.

    Body: {company_id, full_name, personal_email|email, work_email, job_title,
    employee_code, company_name?, is_admin?, status?, employment_type?,
    notice_period?, start_date?}
    """
    return with_context(req, handle_invite_employee, ("resend_api_key", "resend_from", "onboarding_url"))


@bp.function_name(name="AppEmployee")
@bp.route(route="app-employee", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def app_employee(req: func.HttpRequest) -> func.HttpResponse:
    """
    Add an employee to the caller's company from the dashboard.

    Requires `Authorization: Bearer <session token>`.
    Body: {full_name, job_title?, job_category?}

    Returns:
        {"ok": true, "company", "employees"}

    Raises:
        401: Missing or invalid session
        409: Employee limit reached
    """
    return with_context(req, handle_app_employee, ("anon_key",))


@bp.function_name(name="DeleteEmployee")
@bp.route(route="delete-employee", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def delete_employee(req: func.HttpRequest) -> func.HttpResponse:
    return with_context(req, handle_delete_employee)
