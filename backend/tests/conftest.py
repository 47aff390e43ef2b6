"""
Shared fixtures for the relay and tracker tests.

GitHub is never contacted: the relay's GitHub client is swapped for one backed
by httpx.MockTransport, and tracker deliveries go to a MockTransport standing
in for the relay.
"""

import json

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from config import RelaySettings
from deps import get_github_client
from main import create_app


class FakeGitHub:
    """Records every request and answers from a path -> (status, body) table."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, tuple[int, dict | None]] = {
            "/app/installations/4242/access_tokens": (
                201, {"token": "ghs_installation", "expires_at": "2026-10-18T12:00:00Z"},
            ),
            "/repos/octo/cards/dispatches": (204, None),
        }
        self.raise_for: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in self.raise_for:
            raise httpx.ConnectError("connection refused", request=request)
        status, body = self.responses.get(request.url.path, (404, {"message": "Not Found"}))
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content)


class FakeRelay:
    """Stand-in for the relay as seen by the tracker's DeliveryClient."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.events_status = 202
        self.fail_events = False
        self.fail_token = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/token":
            if self.fail_token:
                raise httpx.ConnectError("Network error", request=request)
            return httpx.Response(self.token_status, json={"token": "test-token"})
        if self.fail_events:
            raise httpx.ConnectError("Network error sending events", request=request)
        return httpx.Response(self.events_status, json={"message": "Event forwarded successfully"})

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def event_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/events"]


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_path(tmp_path, rsa_key):
    path = tmp_path / "app.pem"
    path.write_bytes(
        rsa_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return str(path)


@pytest.fixture
def settings(private_key_path):
    return RelaySettings(
        allowed_origins=["http://localhost:8080"],
        github_app_private_key_path=private_key_path,
        github_app_id="12345",
        github_app_installation_id="4242",
        github_owner="octo",
        github_repo="cards",
    )


@pytest.fixture
def github():
    return FakeGitHub()


def make_relay_client(settings: RelaySettings, github: FakeGitHub) -> TestClient:
    app = create_app(settings)

    async def github_client_override():
        async with httpx.AsyncClient(
            base_url=settings.github_api_url,
            transport=httpx.MockTransport(github.handler),
        ) as client:
            yield client

    app.dependency_overrides[get_github_client] = github_client_override
    return TestClient(app)


@pytest.fixture
def relay(settings, github):
    return make_relay_client(settings, github)


@pytest.fixture
def fake_relay():
    return FakeRelay()
