import azure.functions as func
import logging
from utils.cors import json_ok
from utils.handlers import json_endpoint, read_json, with_context
from services.context import ServiceContext
from services.company_service import update_company as patch_company

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@json_endpoint
def handle_update_company(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
    body = read_json(req)
    patch_company(ctx.client, body.get("company_id"), body)
    return json_ok()


@bp.function_name(name="UpdateCompany")
@bp.route(route="update-company", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def update_company(req: func.HttpRequest) -> func.HttpResponse:
    """
    Patch a company's settings.

    Only company_name, address, logo_url, primary_color, secondary_color and
    text_color are written; other keys are ignored.
    """
    return with_context(req, handle_update_company)
