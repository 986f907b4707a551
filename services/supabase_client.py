"""
REST client for the hosted backend: PostgREST tables under /rest/v1 and the
GoTrue admin API under /auth/v1.

One instance is built per invocation from Settings and handed to the services
that need it; nothing here is cached at module level.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

import requests

from services.errors import AuthCreateError, ConfigError, StoreError, Unauthorized, UpstreamError

logger = logging.getLogger(__name__)

ALREADY_REGISTERED_MARKERS = ("already been registered", "already registered", "already exists", "email_exists")


def eq(value: Any) -> str:
    return f"eq.{value}"


def is_null() -> str:
    return "is.null"


class SupabaseClient:
    """Thin wrapper around the backend's REST contract"""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        anon_key: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "SupabaseClient":
        settings.require("supabase_url", "service_role_key")
        return cls(
            settings.supabase_url,
            settings.service_role_key,
            anon_key=settings.anon_key or None,
            timeout=settings.http_timeout,
            session=session,
        )

    # ────────────────────────────────────────────────────────────
    # Plumbing
    # ────────────────────────────────────────────────────────────
    def _headers(self, prefer: Optional[str] = None, token: Optional[str] = None,
                 apikey: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": apikey or self.service_key,
            "Authorization": f"Bearer {token or self.service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, path: str, *, what: str, error_cls=StoreError,
                 **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{what} failed: {e}")
            raise error_cls(f"{what} failed: backend unreachable")

        if not response.ok:
            text = response.text
            logger.error(f"{what} failed ({response.status_code}): {text}")
            raise error_cls(f"{what} failed: {text}", upstream_status=response.status_code)
        return response

    @staticmethod
    def _json(response: requests.Response, default: Any) -> Any:
        if not response.content:
            return default
        try:
            return response.json()
        except ValueError:
            return default

    # ────────────────────────────────────────────────────────────
    # PostgREST tables
    # ────────────────────────────────────────────────────────────
    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, str]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        response = self._request(
            "GET", f"/rest/v1/{table}",
            what=f"Read {table}", headers=self._headers(), params=params,
        )
        return self._json(response, [])

    def select_one(self, table: str, filters: Mapping[str, str], columns: str = "*",
                   order: Optional[str] = None) -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, columns=columns, order=order, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, rows: List[Dict[str, Any]], returning: bool = True) -> List[Dict[str, Any]]:
        prefer = "return=representation" if returning else "return=minimal"
        response = self._request(
            "POST", f"/rest/v1/{table}",
            what=f"Insert into {table}", headers=self._headers(prefer), json=rows,
        )
        return self._json(response, []) if returning else []

    def insert_one(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        created = self.insert(table, [row])
        if not created:
            raise StoreError(f"Insert into {table} returned no row")
        return created[0]

    def update(self, table: str, filters: Mapping[str, str], patch: Dict[str, Any],
               returning: bool = False) -> List[Dict[str, Any]]:
        prefer = "return=representation" if returning else "return=minimal"
        response = self._request(
            "PATCH", f"/rest/v1/{table}",
            what=f"Update {table}", headers=self._headers(prefer), params=dict(filters), json=patch,
        )
        return self._json(response, []) if returning else []

    def delete(self, table: str, filters: Mapping[str, str]) -> None:
        if not filters:
            # PostgREST refuses unfiltered deletes; refuse before the round trip
            raise StoreError(f"Refusing to delete from {table} without a filter")
        self._request(
            "DELETE", f"/rest/v1/{table}",
            what=f"Delete from {table}", headers=self._headers("return=minimal"), params=dict(filters),
        )

    # ────────────────────────────────────────────────────────────
    # GoTrue
    # ────────────────────────────────────────────────────────────
    def create_user(self, email: str, password: str, user_metadata: Optional[Dict[str, Any]] = None) -> str:
        """Create a confirmed auth identity and return its id."""
        try:
            response = self._request(
                "POST", "/auth/v1/admin/users",
                what="Create user", error_cls=AuthCreateError, headers=self._headers(),
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": user_metadata or {},
                },
            )
        except AuthCreateError as e:
            lowered = e.message.lower()
            if any(marker in lowered for marker in ALREADY_REGISTERED_MARKERS):
                raise AuthCreateError(
                    "An account with this email is already registered. Please log in instead.",
                    upstream_status=e.upstream_status,
                    already_registered=True,
                )
            raise

        data = self._json(response, {}) or {}
        user_id = data.get("id") or (data.get("user") or {}).get("id")
        if not user_id:
            raise AuthCreateError("Create user failed (no id)")
        return str(user_id)

    def delete_user(self, user_id: str) -> None:
        self._request(
            "DELETE", f"/auth/v1/admin/users/{user_id}",
            what="Delete user", error_cls=UpstreamError, headers=self._headers(),
        )

    def generate_link(self, link_type: str, email: str, redirect_to: Optional[str] = None) -> str:
        body: Dict[str, Any] = {"type": link_type, "email": email}
        if redirect_to:
            body["options"] = {"redirectTo": redirect_to}
        response = self._request(
            "POST", "/auth/v1/admin/generate_link",
            what="Generate link", error_cls=UpstreamError, headers=self._headers(), json=body,
        )
        data = self._json(response, {}) or {}
        link = data.get("action_link") or (data.get("properties") or {}).get("action_link")
        if not link:
            raise UpstreamError("Backend did not return an action_link")
        return link

    def get_user(self, access_token: str) -> Dict[str, Any]:
        """Resolve a caller's session token into their auth user, using the public key."""
        if not self.anon_key:
            raise ConfigError("Missing SUPABASE_ANON_KEY env var")
        try:
            response = self._request(
                "GET", "/auth/v1/user",
                what="Auth lookup", error_cls=UpstreamError,
                headers=self._headers(token=access_token, apikey=self.anon_key),
            )
        except UpstreamError as e:
            if e.upstream_status in (401, 403):
                raise Unauthorized("Invalid session")
            raise
        data = self._json(response, {}) or {}
        if not data.get("id"):
            raise Unauthorized("Invalid session")
        return data
