import azure.functions as func
import logging
from utils.cors import cors_response, json_ok
from utils.handlers import json_endpoint, read_json, with_context
from services.context import ServiceContext
from services.verification_service import SendCodeRequest, VerifyCodeRequest

logger = logging.getLogger(__name__)
bp = func.Blueprint()

SEND_CODE_SETTINGS = ("code_salt", "resend_api_key", "resend_from")
VERIFY_CODE_SETTINGS = ("code_salt",)


@json_endpoint
def handle_send_code(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    request = SendCodeRequest.from_body(read_json(req))
    ctx.verification_engine().send_code(request)
    return json_ok()


@json_endpoint
def handle_verify_code(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    request = VerifyCodeRequest.from_body(read_json(req))
    result = ctx.verification_engine().verify(request)
    return json_ok(result)


@bp.function_name(name="SendCode")
@bp.route(route="send-code", methods=["GET", "POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def send_code(req: func.HttpRequest) -> func.HttpResponse:
    """
    Send a 6-digit signup code by email.

    Body: {email, purpose, company_code?, full_name?}. For employee_signup the
    company code and full name must match a roster entry before a code is
    issued. GET answers a plain health line.

    Returns:
        {"ok": true} or {"ok": false, "error"}

    Raises:
        400: Missing/invalid fields
        404: No matching company roster entry
        500: Missing configuration, database or email provider failure
    """
    if req.method == "GET":
        return cors_response("send-code ok (POST required)", 200)
    return with_context(req, handle_send_code, SEND_CODE_SETTINGS)


@bp.function_name(name="VerifyCode")
@bp.route(route="verify-code", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def verify_code(req: func.HttpRequest) -> func.HttpResponse:
    """
    Verify a signup code and create the account.

    Body: {email, code, purpose, password, full_name, company_name?,
    company_size?, module_ids?, company_code?, phase?, verify_token?}.
    Without `phase` the code is consumed and the account created in one call.

    Returns:
        {"ok": true, "user_id", "company_id", "company_code"?}

    Raises:
        400: Invalid input, or code not found / used / expired / incorrect
        500: Missing configuration or backend failure
    """
    return with_context(req, handle_verify_code, VERIFY_CODE_SETTINGS)
