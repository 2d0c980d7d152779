"""GitHub OAuth client: code-for-token exchange and profile lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from web4apps.errors import UpstreamFailure

logger = structlog.get_logger()

_TIMEOUT = 10.0


@dataclass(frozen=True)
class GitHubToken:
    access_token: str
    token_type: str
    scope: str

    def to_dict(self) -> dict[str, str]:
        return {"access_token": self.access_token, "token_type": self.token_type, "scope": self.scope}


@dataclass(frozen=True)
class GitHubProfile:
    login: str
    email: str | None
    name: str | None


class GitHubClient:
    """Thin async wrapper around the two GitHub endpoints the service needs."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        api_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=_TIMEOUT)

    async def exchange_code(self, code: str) -> GitHubToken:
        """
        Exchange an OAuth authorization code for an access token.

        Raises:
            UpstreamFailure: On transport errors, non-2xx responses, or a body
                without ``access_token``/``token_type``/``scope`` strings.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_url,
                    headers={"Accept": "application/json"},
                    json={"client_id": self.client_id, "client_secret": self.client_secret, "code": code},
                )
                response.raise_for_status()
                data: Any = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("github_token_exchange_failed", error=str(e))
            raise UpstreamFailure("Failed to exchange code for token") from e

        if not isinstance(data, dict) or not all(
            isinstance(data.get(key), str) for key in ("access_token", "token_type", "scope")
        ):
            # GitHub reports bad codes as 200 with an "error" field
            logger.warning("github_token_exchange_rejected", error=data.get("error") if isinstance(data, dict) else None)
            raise UpstreamFailure("Failed to exchange code for token")

        return GitHubToken(access_token=data["access_token"], token_type=data["token_type"], scope=data["scope"])

    async def fetch_user(self, access_token: str) -> GitHubProfile:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.api_url}/user",
                    headers={
                        "Accept": "application/vnd.github+json",
                        "Authorization": f"Bearer {access_token}",
                    },
                )
                response.raise_for_status()
                data: Any = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("github_user_fetch_failed", error=str(e))
            raise UpstreamFailure("Failed to fetch GitHub profile") from e

        if not isinstance(data, dict) or not isinstance(data.get("login"), str):
            raise UpstreamFailure("Failed to fetch GitHub profile")
        return GitHubProfile(login=data["login"], email=data.get("email"), name=data.get("name"))
