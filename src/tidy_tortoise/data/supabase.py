from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from supabase import AsyncClient, acreate_client

from ..config.settings import SupabaseSettings
from ..domain.errors import UnauthenticatedError


class SupabaseNotInitializedError(RuntimeError):
    """Raised when the Supabase client cannot be created from settings."""


class SupabaseSessionMissingError(UnauthenticatedError):
    """Raised when a session-specific action is attempted without a session."""


@dataclass
class SupabaseGateway:
    """Thin wrapper around the async Supabase client with session awareness.

    Doubles as the identity provider: ``current_user_id`` fails closed when no
    session is present. Sessions are installed by :class:`~tidy_tortoise.services.auth.AuthService`.
    """

    settings: SupabaseSettings
    _client: Optional[AsyncClient] = None
    _session: Optional[Any] = None

    async def ensure_client(self) -> AsyncClient:
        if self._client is not None:
            return self._client
        if not self.settings.is_configured:
            missing = ", ".join(self.settings.missing_env_vars)
            raise SupabaseNotInitializedError(f"Supabase settings are incomplete; missing {missing}.")
        self._client = await acreate_client(self.settings.url, self.settings.anon_key)
        return self._client

    def set_session(self, session: Any) -> None:
        self._session = session

    def clear_session(self) -> None:
        self._session = None

    def has_session(self) -> bool:
        return self._session is not None

    def session(self) -> Any:
        if self._session is None:
            raise SupabaseSessionMissingError("Supabase session is not available. Sign in first.")
        return self._session

    def current_user_id(self) -> str:
        session = self.session()
        user = getattr(session, "user", None)
        identifier = getattr(user, "id", None)
        if not identifier:
            raise SupabaseSessionMissingError("Supabase session has no user id.")
        return str(identifier)

    async def table(self, name: str):
        client = await self.ensure_client()
        return client.table(name)
