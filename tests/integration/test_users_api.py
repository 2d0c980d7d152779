"""User registration tests."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import Wallet
from web4apps.db.models import User

REGISTRATION_MESSAGE = "Web4 Apps Registration"


@pytest.mark.asyncio
async def test_register_then_check(client: AsyncClient, alice: Wallet) -> None:
    """Registering flips the check endpoint to isRegistered=true."""
    before = await client.get(f"/api/check/{alice.address}")
    assert before.json() == {"isRegistered": False, "address": alice.address.lower()}

    response = await client.post(
        "/api/register",
        json={"address": alice.address, "signature": alice.sign(REGISTRATION_MESSAGE)},
    )
    assert response.status_code == 200
    assert response.json() == {"address": alice.address.lower()}

    after = await client.get(f"/api/check/{alice.address.lower()}")
    assert after.json()["isRegistered"] is True


@pytest.mark.asyncio
async def test_register_twice_is_upsert(client: AsyncClient, db_session: AsyncSession, alice: Wallet) -> None:
    body = {"address": alice.address, "signature": alice.sign(REGISTRATION_MESSAGE)}
    assert (await client.post("/api/register", json=body)).status_code == 200
    assert (await client.post("/api/register", json=body)).status_code == 200
    assert await db_session.get(User, alice.address.lower()) is not None


@pytest.mark.asyncio
async def test_register_with_explicit_message(client: AsyncClient, alice: Wallet) -> None:
    response = await client.post(
        "/api/register",
        json={
            "address": alice.address,
            "signature": alice.sign(REGISTRATION_MESSAGE),
            "message": REGISTRATION_MESSAGE,
        },
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_register_wrong_message(client: AsyncClient, alice: Wallet) -> None:
    response = await client.post(
        "/api/register",
        json={"address": alice.address, "signature": alice.sign("hello"), "message": "hello"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid registration message"}


@pytest.mark.asyncio
async def test_register_signed_by_someone_else(client: AsyncClient, alice: Wallet, bob: Wallet) -> None:
    response = await client.post(
        "/api/register",
        json={"address": alice.address, "signature": bob.sign(REGISTRATION_MESSAGE)},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}


@pytest.mark.asyncio
async def test_register_malformed_signature(client: AsyncClient, alice: Wallet) -> None:
    response = await client.post("/api/register", json={"address": alice.address, "signature": "0xdeadbeef"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_invalid_address(client: AsyncClient, alice: Wallet) -> None:
    response = await client.post(
        "/api/register",
        json={"address": "0x12", "signature": alice.sign(REGISTRATION_MESSAGE)},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid Ethereum address format"}


@pytest.mark.asyncio
async def test_register_missing_signature(client: AsyncClient, alice: Wallet) -> None:
    response = await client.post("/api/register", json={"address": alice.address})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Missing required fields"
    assert "signature" in body["details"]


@pytest.mark.asyncio
async def test_check_invalid_address(client: AsyncClient) -> None:
    response = await client.get("/api/check/not-an-address")
    assert response.status_code == 400
