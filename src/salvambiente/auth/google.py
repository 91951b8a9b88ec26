"""
Google OAuth 2.0 client for the delegated sign-in flow.

Only the authorization-code exchange and the userinfo lookup are needed: the
API never stores Google tokens, it only wants a verified email and a name.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
import structlog
from fastapi import Request

from salvambiente.config import Settings

logger = structlog.get_logger()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleOAuthError(Exception):
    """Raised when Google rejects the code or returns an unusable profile."""


@dataclass(frozen=True)
class GoogleIdentity:
    email: str
    name: str | None


class GoogleOAuthClient:
    """Authorization-code client for Google accounts."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._http_client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleOAuthClient:
        return cls(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
        )

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def authorization_url(self, state: str) -> str:
        """Build the consent-screen URL the browser is redirected to."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": "openid email profile",
            "prompt": "select_account",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def fetch_identity(self, code: str) -> GoogleIdentity:
        """
        Exchange an authorization code and read the account's email and name.

        Raises:
            GoogleOAuthError: On any HTTP failure, or if Google has not verified the email.
        """
        client = self._client()
        try:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
            token_response.raise_for_status()
            access_token = token_response.json()["access_token"]

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            profile = userinfo_response.json()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("google_oauth_exchange_failed", error=str(e))
            msg = "Google authorization code exchange failed"
            raise GoogleOAuthError(msg) from e

        email = profile.get("email")
        if not email or profile.get("email_verified") is False:
            msg = "Google account has no verified email"
            raise GoogleOAuthError(msg)
        return GoogleIdentity(email=email.lower(), name=profile.get("name"))


def get_google_client(request: Request) -> GoogleOAuthClient:
    """Return the client constructed at startup (FastAPI dependency)."""
    return request.app.state.google_client
