"""Caller identity and role checks.

Authentication and role storage live in the hosted auth service; this module
only asks it two questions: who does this bearer token belong to, and does
that user hold a given role.
"""

from abc import ABC, abstractmethod
from functools import lru_cache

import httpx

from launchos.config import settings
from launchos.utils.logging import get_logger

ADMIN_ROLE = "admin"


class IdentityProvider(ABC):
    """Resolves bearer tokens to users and checks their roles."""

    @abstractmethod
    async def authenticate(self, token: str) -> str | None:
        """Return the user id for ``token``, or None if it is not valid."""

    @abstractmethod
    async def authorize(self, user_id: str, required_role: str) -> bool:
        """Whether ``user_id`` holds ``required_role``."""


class StaticIdentityProvider(IdentityProvider):
    """Token and role table held in memory (development and tests)."""

    def __init__(self) -> None:
        self._users_by_token: dict[str, str] = {}
        self._roles: dict[str, set[str]] = {}

    @classmethod
    def from_string(cls, entries: str) -> "StaticIdentityProvider":
        """Build from ``"token:user_id:role,token:user_id"`` entries."""
        provider = cls()
        for item in entries.split(","):
            parts = [p.strip() for p in item.split(":")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                continue
            roles = [parts[2]] if len(parts) > 2 and parts[2] else []
            provider.add_user(parts[0], parts[1], roles)
        return provider

    def add_user(self, token: str, user_id: str, roles: list[str] | None = None) -> None:
        self._users_by_token[token] = user_id
        self._roles.setdefault(user_id, set()).update(roles or [])

    async def authenticate(self, token: str) -> str | None:
        return self._users_by_token.get(token)

    async def authorize(self, user_id: str, required_role: str) -> bool:
        return required_role in self._roles.get(user_id, set())


class SupabaseIdentityProvider(IdentityProvider):
    """Asks the hosted auth service and its ``user_roles`` table."""

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._key = service_role_key
        self._client = client
        self._timeout = timeout
        self.logger = get_logger("auth.supabase")

    @property
    def _headers(self) -> dict[str, str]:
        return {"apikey": self._key, "Authorization": f"Bearer {self._key}"}

    async def _get(self, path: str, headers: dict[str, str], params: dict | None = None) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(
                f"{self.base_url}{path}", headers=headers, params=params
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(
                f"{self.base_url}{path}", headers=headers, params=params
            )

    async def authenticate(self, token: str) -> str | None:
        try:
            response = await self._get(
                "/auth/v1/user",
                headers={"apikey": self._key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            self.logger.error("auth.lookup_failed", error=str(e))
            return None

        if response.status_code != 200:
            self.logger.warning("auth.token_rejected", status_code=response.status_code)
            return None
        return response.json().get("id")

    async def authorize(self, user_id: str, required_role: str) -> bool:
        try:
            response = await self._get(
                "/rest/v1/user_roles",
                headers=self._headers,
                params={"select": "role", "user_id": f"eq.{user_id}"},
            )
        except httpx.HTTPError as e:
            self.logger.error("auth.role_lookup_failed", user_id=user_id, error=str(e))
            return False

        if response.status_code != 200:
            self.logger.warning(
                "auth.role_lookup_rejected",
                user_id=user_id,
                status_code=response.status_code,
            )
            return False
        return any(row.get("role") == required_role for row in response.json())


@lru_cache
def get_identity_provider() -> IdentityProvider:
    """Get the identity provider for the configured environment."""
    if settings.uses_supabase_auth:
        return SupabaseIdentityProvider(
            settings.supabase_url, settings.supabase_service_role_key
        )
    return StaticIdentityProvider.from_string(settings.auth_static_tokens)
