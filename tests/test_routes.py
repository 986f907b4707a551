"""
Tests for the HTTP handlers: JSON envelope, status codes, CORS and preflight.

Handlers are called with a ServiceContext built around the in-memory backend.
"""

import json

import pytest

from config import Settings
from routes.company import handle_update_company
from routes.employees import handle_app_employee, handle_delete_employee, handle_invite_employee
from routes.signup import SEND_CODE_SETTINGS, handle_send_code, handle_verify_code
from utils.cors import CORS_HEADERS
from utils.handlers import read_json, with_context


def body_of(response):
    return json.loads(response.get_body())


class TestEnvelope:
    def test_send_code_ok(self, make_request, ctx, notifier):
        response = handle_send_code(make_request("send-code", {"email": "alice@x.com"}), ctx)

        assert response.status_code == 200
        assert body_of(response) == {"ok": True}
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert len(notifier.codes) == 1

    def test_missing_email_is_400(self, make_request, ctx):
        response = handle_send_code(make_request("send-code", {}), ctx)

        assert response.status_code == 400
        assert body_of(response) == {"ok": False, "error": "Missing email"}

    def test_malformed_json_reads_as_empty_body(self, make_request, ctx):
        response = handle_send_code(make_request("send-code", raw=b"{not json"), ctx)
        assert response.status_code == 400

    def test_roster_miss_is_404(self, make_request, ctx, company):
        response = handle_send_code(make_request("send-code", {
            "email": "eve@x.com", "purpose": "employee_signup",
            "company_code": "ACM123456", "full_name": "Eve",
        }), ctx)
        assert response.status_code == 404
        assert body_of(response)["ok"] is False

    def test_delivery_failure_is_500(self, make_request, ctx, notifier):
        notifier.fail = True
        response = handle_send_code(make_request("send-code", {"email": "alice@x.com"}), ctx)

        assert response.status_code == 500
        assert body_of(response)["error"].startswith("Resend failed")

    def test_unexpected_error_is_500(self, make_request, ctx, backend):
        def broken(*args, **kwargs):
            raise KeyError("surprise")

        backend.insert = broken
        response = handle_send_code(make_request("send-code", {"email": "alice@x.com"}), ctx)

        assert response.status_code == 500
        assert body_of(response)["error"].startswith("Error:")


class TestVerifyCode:
    def test_full_signup(self, make_request, ctx, notifier, owner_body):
        handle_send_code(make_request("send-code", {"email": "alice@x.com"}), ctx)

        response = handle_verify_code(make_request("verify-code", owner_body(notifier.last_code)), ctx)

        payload = body_of(response)
        assert response.status_code == 200
        assert payload["ok"] is True
        assert {"user_id", "company_id", "company_code"} <= set(payload)

    @pytest.mark.parametrize("code,error", [
        ("999999", None),
        ("abc", "Missing 6-digit code"),
    ])
    def test_bad_code_is_400(self, make_request, ctx, owner_body, code, error):
        response = handle_verify_code(make_request("verify-code", owner_body(code)), ctx)

        assert response.status_code == 400
        if error:
            assert body_of(response)["error"] == error
        else:
            assert "request a new code" in body_of(response)["error"]


class TestEmployeeRoutes:
    def test_invite(self, make_request, ctx, notifier, company):
        response = handle_invite_employee(make_request("invite-employee", {
            "company_id": company["id"], "full_name": "Carol", "email": "carol@home.com",
            "work_email": "carol@acme.com", "job_title": "Ops", "employee_code": "E-7",
        }), ctx)

        assert response.status_code == 200
        assert len(notifier.invites) == 1

    def test_app_employee_without_bearer_is_401(self, make_request, ctx):
        response = handle_app_employee(make_request("app-employee", {"full_name": "Dana"}), ctx)

        assert response.status_code == 401
        assert body_of(response)["error"] == "Missing authorization token"

    def test_app_employee_with_unknown_session_is_401(self, make_request, ctx):
        request = make_request("app-employee", {"full_name": "Dana"},
                               headers={"Authorization": "Bearer stale"})
        assert handle_app_employee(request, ctx).status_code == 401

    def test_app_employee_adds_to_callers_company(self, make_request, ctx, backend, company):
        backend.seed("profiles", user_id="owner-1", company_id=company["id"])
        backend.sessions["tok"] = {"id": "owner-1"}

        response = handle_app_employee(make_request(
            "app-employee", {"full_name": "Dana"}, headers={"Authorization": "bearer tok"},
        ), ctx)

        payload = body_of(response)
        assert response.status_code == 200
        assert payload["company"]["id"] == company["id"]
        assert len(payload["employees"]) == 2

    def test_app_employee_limit_is_409(self, make_request, ctx, backend, company):
        backend.rows("companies")[0]["max_employees"] = 1
        backend.seed("profiles", user_id="owner-1", company_id=company["id"])
        backend.sessions["tok"] = {"id": "owner-1"}

        response = handle_app_employee(make_request(
            "app-employee", {"full_name": "Dana"}, headers={"Authorization": "Bearer tok"},
        ), ctx)

        assert response.status_code == 409

    def test_delete_unknown_employee_is_404(self, make_request, ctx, company):
        response = handle_delete_employee(make_request("delete-employee", {
            "company_id": company["id"], "employee_id": "missing",
        }), ctx)
        assert response.status_code == 404


class TestCompanyRoutes:
    def test_update(self, make_request, ctx, backend, company):
        response = handle_update_company(make_request("update-company", {
            "company_id": company["id"], "text_color": "#000000",
        }), ctx)

        assert response.status_code == 200
        assert backend.rows("companies")[0]["text_color"] == "#000000"

    def test_nothing_to_update_is_400(self, make_request, ctx, company):
        response = handle_update_company(make_request("update-company", {"company_id": company["id"]}), ctx)

        assert response.status_code == 400
        assert body_of(response)["error"] == "Nothing to update"


class TestWithContext:
    def test_preflight(self, make_request):
        response = with_context(make_request("send-code", method="OPTIONS"), handle_send_code,
                                settings=Settings())

        assert response.status_code == 204
        for header, value in CORS_HEADERS.items():
            assert response.headers[header] == value

    def test_missing_configuration_is_500(self, make_request):
        response = with_context(make_request("send-code", {"email": "a@x.com"}), handle_send_code,
                                SEND_CODE_SETTINGS, settings=Settings())

        assert response.status_code == 500
        assert body_of(response) == {"ok": False, "error": "Missing SUPABASE_URL env var"}

    def test_missing_resend_key_is_500(self, make_request, settings):
        no_resend = Settings(supabase_url=settings.supabase_url, service_role_key="k", code_salt="s")
        response = with_context(make_request("send-code", {"email": "a@x.com"}), handle_send_code,
                                SEND_CODE_SETTINGS, settings=no_resend)

        assert response.status_code == 500
        assert "RESEND_API_KEY" in body_of(response)["error"]

    def test_runs_handler_with_built_context(self, make_request, settings):
        seen = {}

        def handler(req, ctx):
            seen["ctx"] = ctx
            return "handled"

        assert with_context(make_request("send-code", {}), handler, SEND_CODE_SETTINGS,
                            settings=settings) == "handled"
        assert seen["ctx"].notifier is not None
        assert seen["ctx"].client.base_url == "https://backend.test"


class TestReadJson:
    def test_non_object_body(self, make_request):
        assert read_json(make_request("x", raw=b"[1, 2]")) == {}

    def test_empty_body(self, make_request):
        assert read_json(make_request("x")) == {}
