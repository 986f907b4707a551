import json
from typing import Any, Union
import azure.functions as func

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def cors_response(
    body: Union[str, bytes] = b"",
    status: int = 200,
    mime: str = "text/plain"
) -> func.HttpResponse:
    return func.HttpResponse(
        body=body,
        status_code=status,
        mimetype=mime,
        headers=dict(CORS_HEADERS),
    )


def preflight_response() -> func.HttpResponse:
    return cors_response(b"", 204)


def json_ok(payload: Any = None, status: int = 200) -> func.HttpResponse:
    body = {"ok": True}
    if payload:
        body.update(payload)
    return cors_response(json.dumps(body, default=str), status, "application/json")


def json_error(message: str, status: int = 500) -> func.HttpResponse:
    return cors_response(
        json.dumps({"ok": False, "error": message}),
        status,
        "application/json",
    )
