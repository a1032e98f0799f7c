from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from votebox.core.config import Settings
from votebox.identity import AdminRegistry, JwtIdentityVerifier
from votebox.main import create_application
from votebox.services.linkedin import EMAIL_URL, PROFILE_URL, TOKEN_URL, LinkedInClient
from votebox.store import CandidateRecord, InMemoryVoteStore

JWT_SECRET = "test-secret"
ADMIN_UID = "admin-user"


class FakeLinkedIn:
    """Serves LinkedIn's token and profile endpoints through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.member_id = "abc123"
        self.first_name = "Ada"
        self.last_name = "Lovelace"
        self.email: str | None = "ada@example.com"
        self.valid_code = "good-code"
        self.profile_body: object | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == httpx.URL(TOKEN_URL).path:
            form = parse_qs(request.content.decode("utf-8"))
            if form.get("code") != [self.valid_code]:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "member-token", "expires_in": 3600})
        if request.headers.get("Authorization") != "Bearer member-token":
            return httpx.Response(401, json={"message": "invalid token"})
        if path == httpx.URL(PROFILE_URL).path:
            if self.profile_body is not None:
                return httpx.Response(200, json=self.profile_body)
            return httpx.Response(
                200,
                json={
                    "id": self.member_id,
                    "localizedFirstName": self.first_name,
                    "localizedLastName": self.last_name,
                },
            )
        if path == httpx.URL(EMAIL_URL).path:
            elements = [{"handle~": {"emailAddress": self.email}}] if self.email else []
            return httpx.Response(200, json={"elements": elements})
        return httpx.Response(404, content=json.dumps({"message": "not found"}))


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        store_backend="memory",
        identity_backend="jwt",
        jwt_secret=JWT_SECRET,
        linkedin_client_id="client-id",
        linkedin_client_secret="client-secret",
        linkedin_redirect_uri="http://testserver/auth/linkedin/callback",
        oauth_post_message_origin="http://frontend.test",
        rate_limit="1000/15 minutes",
        enable_metrics=False,
        enable_tracing=False,
    )


@pytest.fixture()
def store() -> InMemoryVoteStore:
    store = InMemoryVoteStore()
    store.seed_candidates([CandidateRecord(id="A", name="Alice"), CandidateRecord(id="B", name="Bob")])
    return store


@pytest.fixture()
def identity() -> JwtIdentityVerifier:
    return JwtIdentityVerifier(secret=JWT_SECRET, admins=AdminRegistry([ADMIN_UID]))


@pytest.fixture()
def fake_linkedin() -> FakeLinkedIn:
    return FakeLinkedIn()


@pytest.fixture()
def linkedin(settings: Settings, fake_linkedin: FakeLinkedIn) -> Iterator[LinkedInClient]:
    http_client = httpx.Client(transport=httpx.MockTransport(fake_linkedin.handler))
    yield LinkedInClient.from_settings(settings, client=http_client)
    http_client.close()


@pytest.fixture()
def client(
    settings: Settings,
    store: InMemoryVoteStore,
    identity: JwtIdentityVerifier,
    linkedin: LinkedInClient,
) -> Iterator[TestClient]:
    app = create_application(settings, store=store, identity=identity, linkedin=linkedin)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def token_for(identity: JwtIdentityVerifier) -> Callable[..., str]:
    def _token_for(uid: str, name: str | None = None) -> str:
        return identity.mint_token(uid, {"displayName": name or uid})

    return _token_for


@pytest.fixture()
def auth_headers(token_for: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _auth_headers(uid: str, name: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(uid, name)}"}

    return _auth_headers


@pytest.fixture()
def admin_headers(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers(ADMIN_UID, "Admin")
