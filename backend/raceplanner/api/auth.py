"""
Supabase Auth client.

Resolves a bearer token to the user it belongs to via
``GET {supabase_url}/auth/v1/user``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """User behind a valid access token."""
    id: str
    email: Optional[str] = None
    app_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def roles(self) -> list[str]:
        raw = self.app_metadata.get("roles")
        if isinstance(raw, str):
            raw = raw.split(",")
        if not isinstance(raw, list):
            return []
        return [str(role).strip().lower() for role in raw if str(role).strip()]

    @property
    def is_admin(self) -> bool:
        role = self.app_metadata.get("role")
        if isinstance(role, str) and role.strip().lower() == "admin":
            return True
        return "admin" in self.roles


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """'Bearer abc' -> 'abc'; anything else -> None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SupabaseAuthClient:
    """Looks up users by access token."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, anon_key: Optional[str]):
        self._client = client
        self.base_url = base_url.rstrip("/")
        self._anon_key = anon_key or ""

    async def get_user(self, access_token: str) -> Optional[AuthenticatedUser]:
        """
        Fetch the user for ``access_token``.

        Returns:
            AuthenticatedUser, or None if the token is invalid or the
            auth service could not be reached
        """
        try:
            response = await self._client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "apikey": self._anon_key,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Auth lookup failed: {e!r}")
            return None

        if response.status_code != 200:
            logger.warning(f"Auth lookup rejected token: {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Auth lookup returned invalid JSON")
            return None

        if not isinstance(data, dict) or not data.get("id"):
            return None

        return AuthenticatedUser(
            id=str(data["id"]),
            email=data.get("email"),
            app_metadata=data.get("app_metadata") or {},
        )
