import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

import azure.functions as func

from config import Settings, load_settings
from services.context import ServiceContext
from services.errors import SignupError
from utils.cors import json_error, preflight_response

logger = logging.getLogger(__name__)

Handler = Callable[[func.HttpRequest, ServiceContext], func.HttpResponse]


def read_json(req: func.HttpRequest) -> Dict[str, Any]:
    """Request body as a dict; an empty, malformed or non-object body reads as {}."""
    try:
        data = req.get_json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def json_endpoint(f: Handler) -> Handler:
    """
    Decorator that renders SignupError as {"ok": false, "error"} with the
    error's status, and anything unexpected as a logged 500.
    """
    @wraps(f)
    def decorated_function(req: func.HttpRequest, ctx: ServiceContext) -> func.HttpResponse:
        try:
            return f(req, ctx)
        except SignupError as e:
            if e.status_code >= 500:
                logger.error(f"{f.__name__} failed: {e.message}")
            else:
                logger.info(f"{f.__name__} rejected request: {e.message}")
            return json_error(e.message, e.status_code)
        except Exception as e:
            logger.exception(f"{f.__name__}: unhandled")
            return json_error(f"Error: {e}", 500)

    return decorated_function


def with_context(
    req: func.HttpRequest,
    handler: Handler,
    needs: Iterable[str] = (),
    settings: Optional[Settings] = None,
) -> func.HttpResponse:
    """Answer preflight, build the invocation's ServiceContext, and run the handler."""
    if req.method == "OPTIONS":
        return preflight_response()

    try:
        ctx = ServiceContext.from_settings(settings or load_settings(), needs)
    except SignupError as e:
        logger.error(f"Cannot serve {req.url}: {e.message}")
        return json_error(e.message, e.status_code)

    return handler(req, ctx)
