"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- An in-memory stand-in for the backend's REST contract
- A notifier that records emails instead of sending them
- A controllable clock
- Request builders for the HTTP handlers
"""

import copy
import json
import uuid
from datetime import datetime, timedelta, timezone

import azure.functions as func
import pytest

from config import Settings
from services.context import ServiceContext
from services.errors import AuthCreateError, DeliveryError, StoreError, Unauthorized
from services.verification_service import VerificationEngine

SECRET = "test-code-salt"
T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeBackend:
    """
    In-memory implementation of the SupabaseClient interface.

    Understands the `eq.<value>` and `is.null` filters and `<col>.asc|desc`
    ordering the services use. `fail_on` holds (operation, table) pairs that
    raise StoreError, to simulate rejected writes.
    """

    def __init__(self):
        self.tables = {}
        self.users = {}
        self.sessions = {}
        self.deleted_users = []
        self.links = []
        self.fail_on = set()
        self.calls = []
        self._seq = 0

    # helpers -------------------------------------------------------------
    def rows(self, table):
        return self.tables.setdefault(table, [])

    def seed(self, table, **row):
        self._seq += 1
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", (T0 + timedelta(microseconds=self._seq)).isoformat())
        self.rows(table).append(row)
        return row

    def _check(self, op, table):
        self.calls.append((op, table))
        if (op, table) in self.fail_on or (op, "*") in self.fail_on:
            raise StoreError(f"{op} {table} rejected")

    @staticmethod
    def _matches(row, filters):
        for column, expr in (filters or {}).items():
            value = row.get(column)
            if expr == "is.null":
                if value is not None:
                    return False
            elif expr.startswith("eq."):
                if value is None or str(value) != expr[3:]:
                    return False
            else:
                raise AssertionError(f"unsupported filter {expr!r}")
        return True

    # SupabaseClient interface ---------------------------------------------
    def select(self, table, filters=None, columns="*", order=None, limit=None):
        self._check("select", table)
        found = [r for r in self.rows(table) if self._matches(r, filters)]
        if order:
            column, _, direction = order.partition(".")
            found.sort(key=lambda r: r.get(column) or "", reverse=(direction == "desc"))
        if limit is not None:
            found = found[:limit]
        return copy.deepcopy(found)

    def select_one(self, table, filters, columns="*", order=None):
        rows = self.select(table, filters, columns=columns, order=order, limit=1)
        return rows[0] if rows else None

    def insert(self, table, rows, returning=True):
        self._check("insert", table)
        created = [self.seed(table, **copy.deepcopy(row)) for row in rows]
        return copy.deepcopy(created) if returning else []

    def insert_one(self, table, row):
        return self.insert(table, [row])[0]

    def update(self, table, filters, patch, returning=False):
        self._check("update", table)
        updated = []
        for row in self.rows(table):
            if self._matches(row, filters):
                row.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(row))
        return updated if returning else []

    def delete(self, table, filters):
        self._check("delete", table)
        self.tables[table] = [r for r in self.rows(table) if not self._matches(r, filters)]

    def create_user(self, email, password, user_metadata=None):
        self._check("create_user", "auth")
        if any(u["email"] == email for u in self.users.values()):
            raise AuthCreateError("already registered", upstream_status=422, already_registered=True)
        user_id = str(uuid.uuid4())
        self.users[user_id] = {"id": user_id, "email": email, "password": password,
                               "user_metadata": user_metadata or {}}
        return user_id

    def delete_user(self, user_id):
        self._check("delete_user", "auth")
        self.users.pop(user_id, None)
        self.deleted_users.append(user_id)

    def generate_link(self, link_type, email, redirect_to=None):
        self._check("generate_link", "auth")
        self.links.append((link_type, email, redirect_to))
        return f"https://backend.test/auth/v1/verify?type={link_type}&redirect_to={redirect_to}"

    def get_user(self, access_token):
        user = self.sessions.get(access_token)
        if not user:
            raise Unauthorized("Invalid session")
        return user


class FakeNotifier:
    """Records emails; set `fail` to make delivery raise"""

    def __init__(self):
        self.codes = []
        self.invites = []
        self.fail = False

    def send_code(self, email, code, purpose):
        if self.fail:
            raise DeliveryError("Resend failed: rejected")
        self.codes.append({"email": email, "code": code, "purpose": purpose})
        return "email_123"

    def send_invite(self, email, full_name, invite_link, company_name=None):
        if self.fail:
            raise DeliveryError("Resend failed: rejected")
        self.invites.append({"email": email, "full_name": full_name, "link": invite_link,
                             "company_name": company_name})
        return "email_456"

    @property
    def last_code(self):
        return self.codes[-1]["code"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def engine(backend, notifier, clock):
    return VerificationEngine(backend, SECRET, notifier=notifier, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        supabase_url="https://backend.test",
        service_role_key="service-key",
        anon_key="anon-key",
        resend_api_key="re_test_key",
        code_salt=SECRET,
    )


@pytest.fixture
def ctx(settings, backend, notifier, clock):
    return ServiceContext(settings=settings, client=backend, notifier=notifier, clock=clock)


@pytest.fixture
def company(backend):
    """A company with one person on its roster"""
    row = backend.seed("companies", company_name="Acme Ltd", company_code="ACM123456",
                       owner_user_id="owner-1", max_employees=None)
    backend.seed("employees", company_id=row["id"], full_name="Bob Builder", is_admin=False,
                 user_id=None)
    return row


@pytest.fixture
def make_request():
    def _make(route, body=None, method="POST", headers=None, raw=None):
        if raw is not None:
            payload = raw
        elif body is None:
            payload = b""
        else:
            payload = json.dumps(body).encode()
        return func.HttpRequest(
            method=method,
            url=f"http://localhost/api/{route}",
            headers=headers or {"Content-Type": "application/json"},
            params={},
            route_params={},
            body=payload,
        )
    return _make


@pytest.fixture
def owner_body():
    """Builder for a complete owner_signup verify body"""
    def _build(code, **overrides):
        body = {
            "email": "alice@x.com",
            "code": code,
            "purpose": "owner_signup",
            "password": "correct-horse",
            "full_name": "Alice Owner",
            "company_name": "Acme Ltd",
            "company_size": "1-10",
            "module_ids": ["hr", "payroll"],
            "company_size_price": "29",
            "modules_total": 10,
            "total_monthly": 39,
        }
        body.update(overrides)
        return body
    return _build
