"""OAuth identity providers.

Routes only need two calls: the URL to send the browser to, and the
profile behind an authorization code. `GoogleIdentityProvider` implements
them over Google's OAuth 2.0 endpoints with `httpx`.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urlencode

import httpx

from ..config import Settings
from ..errors import AuthError, BadRequestError

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


@dataclass
class OAuthProfile:
    provider: str
    subject: str
    email: str
    name: str
    avatar: Optional[str] = None
    email_verified: bool = False


class IdentityProvider(Protocol):
    name: str

    def authorization_url(self, state: str) -> str: ...

    def fetch_profile(self, code: str) -> OAuthProfile: ...


class GoogleIdentityProvider:
    name = "google"

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = settings.GOOGLE_REDIRECT_URI
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def open(self) -> None:
        if self._client is None:
            self._client = httpx.Client(timeout=20)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _require_config(self) -> None:
        if not self.configured:
            raise BadRequestError("Google sign-in is not configured")

    def authorization_url(self, state: str) -> str:
        self._require_config()
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        })
        return f"{GOOGLE_AUTH_URL}?{query}"

    def fetch_profile(self, code: str) -> OAuthProfile:
        """Exchange `code` for a token and read the user's profile."""
        self._require_config()
        self.open()
        token_resp = self._client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if token_resp.status_code != 200:
            raise AuthError("Google authentication failed")
        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise AuthError("Google authentication failed")
        info_resp = self._client.get(
            GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
        if info_resp.status_code != 200:
            raise AuthError("Could not load Google profile")
        info = info_resp.json()
        if not info.get("sub") or not info.get("email"):
            raise AuthError("Google profile is missing an email address")
        return OAuthProfile(
            provider=self.name,
            subject=str(info["sub"]),
            email=info["email"],
            name=info.get("name") or info["email"].split("@")[0],
            avatar=info.get("picture"),
            email_verified=bool(info.get("email_verified")),
        )
