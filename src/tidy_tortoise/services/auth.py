from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

import httpx

from ..data import SupabaseGateway
from ..domain import TransportError, UnauthenticatedError, ValidationError
from .context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthService:
    """Installs and clears the Supabase session the gateway reports identity from."""

    context: ServiceContext

    def _gateway(self) -> SupabaseGateway:
        gateway = self.context.gateway
        if gateway is None:
            raise ValidationError("Sign-in requires the Supabase backend", field="backend")
        return gateway

    async def _authenticate(self, request: Awaitable[Any]) -> str:
        try:
            response = await request
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        except Exception as exc:  # noqa: BLE001
            raise UnauthenticatedError(str(exc) or "Authentication failed") from exc
        session = getattr(response, "session", None)
        if session is None:
            raise UnauthenticatedError("Authentication did not return a session")
        gateway = self._gateway()
        gateway.set_session(session)
        self.context.reset_cache()
        user_id = gateway.current_user_id()
        logger.info("Signed in as %s", user_id)
        return user_id

    async def sign_in_with_password(self, email: str, password: str) -> str:
        client = await self._gateway().ensure_client()
        return await self._authenticate(client.auth.sign_in_with_password({"email": email, "password": password}))

    async def restore_session(self, access_token: str, refresh_token: str) -> str:
        client = await self._gateway().ensure_client()
        return await self._authenticate(client.auth.set_session(access_token, refresh_token))

    async def restore_from_settings(self) -> Optional[str]:
        """Resume the session stored in ``SUPABASE_ACCESS_TOKEN``/``SUPABASE_REFRESH_TOKEN``, if any."""

        gateway = self.context.gateway
        supabase = self.context.settings.supabase
        if gateway is None or gateway.has_session() or not supabase.has_stored_session:
            return None
        return await self.restore_session(supabase.access_token, supabase.refresh_token)

    def current_user_id(self) -> Optional[str]:
        gateway = self.context.gateway
        if gateway is None:
            return self.context.owner_id()
        return gateway.current_user_id() if gateway.has_session() else None

    async def sign_out(self) -> None:
        gateway = self._gateway()
        try:
            client = await gateway.ensure_client()
            await client.auth.sign_out()
        finally:
            gateway.clear_session()
            self.context.reset_cache()
            logger.info("Signed out")
