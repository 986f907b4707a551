# config.py
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from services.errors import ConfigError

DEFAULT_RESEND_FROM = "SmartCore Technology <support@smartcoretechnology.co.uk>"
DEFAULT_ONBOARDING_URL = "https://smartcoretechnology.co.uk/onboarding"

# setting name -> environment variable, for error messages
ENV_NAMES = {
    "supabase_url": "SUPABASE_URL",
    "service_role_key": "SUPABASE_SERVICE_ROLE_KEY",
    "anon_key": "SUPABASE_ANON_KEY",
    "resend_api_key": "RESEND_API_KEY",
    "resend_from": "RESEND_FROM",
    "code_salt": "CODE_SALT",
    "onboarding_url": "ONBOARDING_URL",
}


def _env(environ: Mapping[str, str], *names: str, default: str = "") -> str:
    for name in names:
        value = str(environ.get(name) or "").strip()
        if value:
            return value
    return default


@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    service_role_key: str = ""
    anon_key: str = ""
    resend_api_key: str = ""
    resend_from: str = DEFAULT_RESEND_FROM
    code_salt: str = ""
    onboarding_url: str = DEFAULT_ONBOARDING_URL
    http_timeout: float = 15.0

    def require(self, *names: str) -> "Settings":
        """Raise ConfigError for the first named setting that is empty."""
        known = {f.name for f in fields(self)}
        for name in names:
            if name not in known:
                raise KeyError(name)
            if not getattr(self, name):
                raise ConfigError(f"Missing {ENV_NAMES.get(name, name.upper())} env var")

        if "resend_api_key" in names and not self.resend_api_key.startswith("re_"):
            raise ConfigError(
                "RESEND_API_KEY does not look like a Resend API key (must start with re_)"
            )
        return self


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the process environment (or a mapping, for tests)."""
    env = os.environ if environ is None else environ

    try:
        timeout = float(_env(env, "HTTP_TIMEOUT_SECONDS", default="15"))
    except ValueError:
        raise ConfigError("HTTP_TIMEOUT_SECONDS must be a number")

    return Settings(
        supabase_url=_env(env, "SUPABASE_URL").rstrip("/"),
        service_role_key=_env(env, "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_ROLE"),
        anon_key=_env(env, "SUPABASE_ANON_KEY"),
        resend_api_key=_env(env, "RESEND_API_KEY"),
        resend_from=_env(env, "RESEND_FROM", default=DEFAULT_RESEND_FROM),
        code_salt=_env(env, "CODE_SALT"),
        onboarding_url=_env(env, "ONBOARDING_URL", default=DEFAULT_ONBOARDING_URL),
        http_timeout=timeout,
    )
