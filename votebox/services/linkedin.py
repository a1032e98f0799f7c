"""HTTP client wrapper for LinkedIn's OAuth 2.0 and profile APIs."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from votebox.core.config import Settings

logger = logging.getLogger(__name__)

AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
PROFILE_URL = "https://api.linkedin.com/v2/me"
EMAIL_URL = "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"

SUBJECT_PREFIX = "linkedin:"


class LinkedInError(RuntimeError):
    """Raised when the token exchange or a profile lookup fails."""


class LinkedInNotConfiguredError(LinkedInError):
    """Raised when client credentials or the redirect URI are missing."""


@dataclass(slots=True, frozen=True)
class LinkedInProfile:
    """Member details returned by LinkedIn after a successful login."""

    member_id: str
    first_name: str
    last_name: str
    email: str | None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def subject_id(self) -> str:
        """Canonical identity-platform uid for this member."""
        return f"{SUBJECT_PREFIX}{self.member_id}"


class LinkedInClient:
    """Synchronous wrapper around the LinkedIn OAuth endpoints."""

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None,
        scope: str = "r_liteprofile r_emailaddress",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scope = scope
        self._timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Settings, *, client: httpx.Client | None = None) -> LinkedInClient:
        return cls(
            client_id=settings.linkedin_client_id,
            client_secret=settings.linkedin_client_secret,
            redirect_uri=settings.linkedin_redirect_uri,
            scope=settings.linkedin_scope,
            timeout=settings.linkedin_timeout_seconds,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret and self._redirect_uri)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "LinkedInClient":  # pragma: no cover - convenience
        return self

    def __exit__(self, *_args: object) -> None:  # pragma: no cover - convenience
        self.close()

    def _require_configuration(self) -> None:
        if not self.configured:
            raise LinkedInNotConfiguredError("LinkedIn client id, secret and redirect URI must be set")

    def authorization_url(self, state: str | None = None) -> str:
        self._require_configuration()
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self._client_id or "",
            "redirect_uri": self._redirect_uri or "",
            "scope": self._scope,
        }
        if state is not None:
            params["state"] = state
        return str(httpx.URL(AUTHORIZATION_URL, params=params))

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for a member access token."""

        self._require_configuration()
        data = self._request(
            "POST",
            TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
        )
        try:
            return str(data["access_token"])
        except KeyError as exc:
            raise LinkedInError("Token response did not include an access token") from exc

    def fetch_profile(self, access_token: str) -> LinkedInProfile:
        headers = {"Authorization": f"Bearer {access_token}"}
        profile = self._request("GET", PROFILE_URL, headers=headers)
        email_data = self._request("GET", EMAIL_URL, headers=headers)

        try:
            member_id = str(profile["id"])
        except KeyError as exc:
            raise LinkedInError("Profile response did not include a member id") from exc

        email: str | None
        try:
            email = email_data["elements"][0]["handle~"]["emailAddress"]
        except (KeyError, IndexError, TypeError):
            email = None

        return LinkedInProfile(
            member_id=member_id,
            first_name=profile.get("localizedFirstName", ""),
            last_name=profile.get("localizedLastName", ""),
            email=email,
        )

    def authenticate(self, code: str) -> LinkedInProfile:
        return self.fetch_profile(self.exchange_code(code))

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "LinkedIn %s %s returned %s: %s",
                method,
                exc.request.url.path,
                exc.response.status_code,
                exc.response.text,
            )
            raise LinkedInError(f"LinkedIn returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("LinkedIn %s request failed: %s", method, exc)
            raise LinkedInError("LinkedIn request failed") from exc
        except ValueError as exc:
            raise LinkedInError("LinkedIn returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise LinkedInError("LinkedIn returned an unexpected payload")
        return payload


__all__ = [
    "AUTHORIZATION_URL",
    "EMAIL_URL",
    "LinkedInClient",
    "LinkedInError",
    "LinkedInNotConfiguredError",
    "LinkedInProfile",
    "PROFILE_URL",
    "SUBJECT_PREFIX",
    "TOKEN_URL",
]
