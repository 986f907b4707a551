import re
from typing import Any, Dict, Optional

from services.errors import Unauthorized
from services.supabase_client import SupabaseClient

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def bearer_token(req) -> Optional[str]:
    auth = req.headers.get("Authorization", "") or ""
    match = _BEARER.match(auth.strip())
    return match.group(1).strip() if match else None


def current_user_from_request(req, client: SupabaseClient) -> Dict[str, Any]:
    """The backend's auth user behind the request's session token."""
    token = bearer_token(req)
    if not token:
        raise Unauthorized("Missing authorization token")
    return client.get_user(token)
