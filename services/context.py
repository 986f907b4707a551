# services/context.py
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from config import Settings
from services.code_service import utcnow
from services.email_service import Notifier
from services.supabase_client import SupabaseClient
from services.verification_service import VerificationEngine

# settings every handler needs before it may touch the backend
BACKEND_SETTINGS = ("supabase_url", "service_role_key")


@dataclass
class ServiceContext:
    """Collaborators for one invocation, built explicitly and passed to the handler."""
    settings: Settings
    client: SupabaseClient
    notifier: Optional[Notifier] = None
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def from_settings(cls, settings: Settings, needs: Iterable[str] = ()) -> "ServiceContext":
        needs = tuple(BACKEND_SETTINGS) + tuple(needs)
        settings.require(*needs)
        notifier = Notifier.from_settings(settings) if "resend_api_key" in needs else None
        return cls(settings=settings, client=SupabaseClient.from_settings(settings), notifier=notifier)

    def verification_engine(self) -> VerificationEngine:
        return VerificationEngine(
            self.client,
            self.settings.code_salt,
            notifier=self.notifier,
            clock=self.clock,
        )
