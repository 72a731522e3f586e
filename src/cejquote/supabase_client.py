"""App-scoped lazy Supabase client."""

from threading import Lock
from typing import Optional

from supabase import Client, ClientOptions, create_client

from cejquote.config import SupabaseSettings


class SupabaseClientProvider:
    """Lazy Supabase client bound to optional startup settings.

    `get_client()` returns None when the backend is not configured, so callers
    can degrade to static pricing instead of failing.
    """

    def __init__(self, settings: Optional[SupabaseSettings]) -> None:
        self._settings = settings
        self._client: Optional[Client] = None
        self._lock = Lock()

    @property
    def configured(self) -> bool:
        return self._settings is not None

    def get_client(self) -> Optional[Client]:
        if self._settings is None:
            return None

        if self._client is not None:
            return self._client

        with self._lock:
            if self._client is None:
                self._client = create_client(
                    self._settings.url,
                    self._settings.service_role_key,
                    options=ClientOptions(
                        postgrest_client_timeout=self._settings.timeout_sec,
                        auto_refresh_token=False,
                        persist_session=False,
                    ),
                )
        return self._client
