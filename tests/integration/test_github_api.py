"""GitHub account linkage tests."""

import json
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import FakeCompletionClient, Wallet
from web4apps.config import Settings
from web4apps.db.models import User
from web4apps.github.client import GitHubClient
from web4apps.main import create_app

DISCONNECT_MESSAGE = "Disconnect GitHub account"


def _github_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/login/oauth/access_token":
        if json.loads(request.content).get("code") == "good":
            return httpx.Response(200, json={"access_token": "gho_abc", "token_type": "bearer", "scope": "read:user"})
        return httpx.Response(200, json={"error": "bad_verification_code"})
    if request.url.path == "/user":
        return httpx.Response(200, json={"login": "octocat", "email": "octo@github.test", "name": "Mona"})
    return httpx.Response(404)


@pytest_asyncio.fixture
async def github_client(
    settings: Settings, completion: FakeCompletionClient, database: None
) -> AsyncGenerator[AsyncClient, None]:
    github = GitHubClient(
        client_id="cid",
        client_secret="secret",
        token_url="https://github.test/login/oauth/access_token",
        api_url="https://api.github.test",
        transport=httpx.MockTransport(_github_handler),
    )
    app = create_app(settings, completion=completion, github=github)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _register(db: AsyncSession, wallet: Wallet, **github: str) -> None:
    db.add(User(address=wallet.address.lower(), **github))
    await db.commit()


@pytest.mark.asyncio
async def test_exchange(github_client: AsyncClient) -> None:
    response = await github_client.post("/api/github/exchange", json={"code": "good"})
    assert response.status_code == 200
    assert response.json() == {"access_token": "gho_abc", "token_type": "bearer", "scope": "read:user"}


@pytest.mark.asyncio
async def test_exchange_rejected_code(github_client: AsyncClient) -> None:
    response = await github_client.post("/api/github/exchange", json={"code": "stale"})
    assert response.status_code == 502
    assert response.json() == {"error": "Failed to exchange code for token"}


@pytest.mark.asyncio
async def test_exchange_requires_code(github_client: AsyncClient) -> None:
    response = await github_client.post("/api/github/exchange", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Authorization code is required"}


@pytest.mark.asyncio
async def test_exchange_not_configured(client: AsyncClient) -> None:
    response = await client.post("/api/github/exchange", json={"code": "good"})
    assert response.status_code == 503
    assert response.json() == {"error": "GitHub client credentials are not configured"}


@pytest.mark.asyncio
async def test_connect_stores_profile(
    github_client: AsyncClient, db_session: AsyncSession, alice: Wallet
) -> None:
    await _register(db_session, alice)

    response = await github_client.post(
        "/api/github/connect",
        json={"code": "good"},
        headers={"X-Wallet-Address": alice.address},
    )
    assert response.status_code == 200
    assert response.json() == {"username": "octocat", "email": "octo@github.test", "name": "Mona"}

    db_session.expire_all()
    user = await db_session.get(User, alice.address.lower())
    assert user is not None
    assert user.github_token == "gho_abc"
    assert user.github_username == "octocat"
    assert user.github_connected_at is not None


@pytest.mark.asyncio
async def test_connect_unregistered_user(github_client: AsyncClient, alice: Wallet) -> None:
    response = await github_client.post(
        "/api/github/connect",
        json={"code": "good"},
        headers={"X-Wallet-Address": alice.address},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_connect_requires_wallet(github_client: AsyncClient) -> None:
    response = await github_client.post("/api/github/connect", json={"code": "good"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_disconnect(github_client: AsyncClient, db_session: AsyncSession, alice: Wallet) -> None:
    await _register(db_session, alice, github_token="gho_abc", github_username="octocat")

    body = {"address": alice.address, "signature": alice.sign(DISCONNECT_MESSAGE)}
    response = await github_client.post("/api/github/disconnect", json=body)
    assert response.status_code == 204

    db_session.expire_all()
    user = await db_session.get(User, alice.address.lower())
    assert user is not None
    assert user.github_token is None
    assert user.github_username is None

    again = await github_client.post("/api/github/disconnect", json=body)
    assert again.status_code == 404
    assert again.json() == {"error": "GitHub account not connected"}


@pytest.mark.asyncio
async def test_disconnect_bad_signature(
    github_client: AsyncClient, db_session: AsyncSession, alice: Wallet, bob: Wallet
) -> None:
    await _register(db_session, alice, github_token="gho_abc")
    response = await github_client.post(
        "/api/github/disconnect",
        json={"address": alice.address, "signature": bob.sign(DISCONNECT_MESSAGE)},
    )
    assert response.status_code == 401
