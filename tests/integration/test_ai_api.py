"""AI endpoint tests: challenges, quota and prompt processing."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import FakeCompletionClient, Wallet, seed_template
from web4apps.config import Settings
from web4apps.db.models import AiChallenge, AiQuota
from web4apps.errors import UpstreamFailure
from web4apps.main import create_app


async def _challenge(client: AsyncClient, wallet: Wallet | None = None) -> str:
    params = {"address": wallet.address} if wallet else {}
    response = await client.get("/api/ai/challenge", params=params)
    assert response.status_code == 200
    return response.json()["data"]["challenge"]


async def _verified_challenge(client: AsyncClient, wallet: Wallet) -> str:
    challenge = await _challenge(client, wallet)
    response = await client.post(
        "/api/ai/verify-challenge",
        json={"address": wallet.address, "challenge": challenge, "signature": wallet.sign(challenge)},
    )
    assert response.status_code == 200
    return challenge


def _prompt_body(wallet: Wallet, template_id: int, challenge: str, **extra: object) -> dict:
    body = {
        "templateId": template_id,
        "prompt": "Ice cream",
        "challenge": challenge,
        "signature": wallet.sign(challenge),
    }
    body.update(extra)
    return body


class TestChallenge:
    @pytest.mark.asyncio
    async def test_issue_challenge(self, client: AsyncClient, alice: Wallet) -> None:
        response = await client.get("/api/ai/challenge", params={"address": alice.address})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert len(data["challenge"]) == 36
        assert data["remaining_attempts"] == 10
        assert data["max_attempts"] == 10
        assert "T00:00:00" in data["reset_date"]

    @pytest.mark.asyncio
    async def test_challenges_are_unique(self, client: AsyncClient) -> None:
        assert await _challenge(client) != await _challenge(client)

    @pytest.mark.asyncio
    async def test_invalid_address(self, client: AsyncClient) -> None:
        response = await client.get("/api/ai/challenge", params={"address": "0xnope"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid Ethereum address format"}

    @pytest.mark.asyncio
    async def test_verify_binds_to_address(self, client: AsyncClient, db_session: AsyncSession, alice: Wallet) -> None:
        challenge = await _verified_challenge(client, alice)
        row = await db_session.get(AiChallenge, challenge)
        assert row is not None
        assert row.address == alice.address.lower()
        assert row.consumed is False

    @pytest.mark.asyncio
    async def test_verify_bad_signature(self, client: AsyncClient, alice: Wallet, bob: Wallet) -> None:
        challenge = await _challenge(client)
        response = await client.post(
            "/api/ai/verify-challenge",
            json={"address": alice.address, "challenge": challenge, "signature": bob.sign(challenge)},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_verify_unknown_challenge(self, client: AsyncClient, alice: Wallet) -> None:
        challenge = "00000000-0000-4000-8000-000000000000"
        response = await client.post(
            "/api/ai/verify-challenge",
            json={"address": alice.address, "challenge": challenge, "signature": alice.sign(challenge)},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired challenge"}

    @pytest.mark.asyncio
    async def test_verify_expired_challenge(self, client: AsyncClient, db_session: AsyncSession, alice: Wallet) -> None:
        now = datetime.now(timezone.utc)
        challenge = "11111111-1111-4111-8111-111111111111"
        db_session.add(
            AiChallenge(challenge=challenge, issued_at=now - timedelta(hours=1), expires_at=now - timedelta(minutes=1))
        )
        await db_session.commit()

        response = await client.post(
            "/api/ai/verify-challenge",
            json={"address": alice.address, "challenge": challenge, "signature": alice.sign(challenge)},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired challenge"}

    @pytest.mark.asyncio
    async def test_challenge_bound_to_other_address(self, client: AsyncClient, alice: Wallet, bob: Wallet) -> None:
        challenge = await _verified_challenge(client, alice)
        response = await client.post(
            "/api/ai/verify-challenge",
            json={"address": bob.address, "challenge": challenge, "signature": bob.sign(challenge)},
        )
        assert response.status_code == 400


class TestProcessPrompt:
    @pytest.mark.asyncio
    async def test_happy_path(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        """A verified challenge buys one generated payload; the quota drops by one; reuse is rejected."""
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["result"] == {"flavor": "vanilla", "scoops": 2, "toppings": ["sprinkles"]}
        assert data["requiredValidation"] is False
        assert data["validationErrors"] is None
        assert data["tokens"] == 42
        assert data["remaining_attempts"] == 9
        assert data["max_attempts"] == 10

        request = completion.requests[0]
        assert request.prompt == "Ice cream"
        assert request.schema["required"] == ["flavor", "scoops"]
        assert request.system_prompt == "Generate valid data conforming to the schema."

        quota = (await db_session.execute(select(AiQuota))).scalar_one()
        assert quota.address == alice.address.lower()
        assert quota.used == 1

        reuse = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert reuse.status_code == 400
        assert reuse.json() == {"error": "Invalid or expired challenge"}
        assert len(completion.requests) == 1

    @pytest.mark.asyncio
    async def test_address_in_body_without_verify(
        self, client: AsyncClient, db_session: AsyncSession, alice: Wallet
    ) -> None:
        template = await seed_template(db_session, alice.address)
        challenge = await _challenge(client)
        response = await client.post(
            "/api/ai/process-prompt",
            json=_prompt_body(alice, template.id, challenge, address=alice.address),
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unbound_challenge_without_address(
        self, client: AsyncClient, db_session: AsyncSession, alice: Wallet
    ) -> None:
        template = await seed_template(db_session, alice.address)
        challenge = await _challenge(client)
        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_model_output_not_json(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        completion.text = "Sure! One vanilla cone coming up."
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["requiredValidation"] is True
        assert data["validationErrors"] == ["not JSON"]
        assert data["result"]["rawText"] == "Sure! One vanilla cone coming up."
        assert data["result"]["message"] == "AI response could not be parsed as valid JSON."
        assert data["raw"] == "Sure! One vanilla cone coming up."
        assert data["remaining_attempts"] == 9

    @pytest.mark.asyncio
    async def test_model_output_violates_schema(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        completion.text = json.dumps({"flavor": "v", "scoops": 7})
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        data = response.json()["data"]
        assert data["result"] == {"flavor": "v", "scoops": 7}
        assert data["requiredValidation"] is True
        assert sorted(e.split(":")[0] for e in data["validationErrors"]) == ["$.flavor", "$.scoops"]
        assert any("maximum of 5" in e for e in data["validationErrors"])

    @pytest.mark.asyncio
    async def test_template_ai_options(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        schema = {
            "type": "object",
            "properties": {"flavor": {"type": "string"}},
            "x-ai": {"systemPrompt": "You are an ice cream chef.", "temperature": 0.1, "maxTokens": 300},
        }
        template = await seed_template(db_session, alice.address, json_data=json.dumps(schema))
        challenge = await _verified_challenge(client, alice)

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 200
        request = completion.requests[0]
        assert request.system_prompt == "You are an ice cream chef."
        assert request.temperature == 0.1
        assert request.max_tokens == 300
        assert "x-ai" not in request.schema

    @pytest.mark.asyncio
    async def test_quota_exhausted(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        settings: Settings,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        settings.ai_max_requests_per_day = 1
        template = await seed_template(db_session, alice.address)

        first = await client.post(
            "/api/ai/process-prompt",
            json=_prompt_body(alice, template.id, await _verified_challenge(client, alice)),
        )
        assert first.status_code == 200
        assert first.json()["data"]["remaining_attempts"] == 0

        challenge = await _verified_challenge(client, alice)
        second = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert second.status_code == 429
        assert second.json() == {"error": "Daily AI request limit reached"}
        assert len(completion.requests) == 1

        db_session.expire_all()
        row = await db_session.get(AiChallenge, challenge)
        assert row is not None
        assert row.consumed is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", ["expired", "consumed"])
    async def test_dead_challenge_rejected_before_quota(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
        state: str,
    ) -> None:
        """A caller at the daily limit still gets InvalidChallenge for an unusable challenge."""
        now = datetime.now(timezone.utc)
        template = await seed_template(db_session, alice.address)
        challenge = "22222222-2222-4222-8222-222222222222"
        db_session.add(AiQuota(address=alice.address.lower(), day=now.date(), used=10, max=10))
        db_session.add(
            AiChallenge(
                challenge=challenge,
                address=alice.address.lower(),
                issued_at=now - timedelta(hours=1),
                expires_at=now - timedelta(minutes=1) if state == "expired" else now + timedelta(minutes=5),
                consumed=state == "consumed",
            )
        )
        await db_session.commit()

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired challenge"}
        assert completion.requests == []

    @pytest.mark.asyncio
    async def test_bad_signature(
        self, client: AsyncClient, db_session: AsyncSession, alice: Wallet, bob: Wallet
    ) -> None:
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)
        body = _prompt_body(alice, template.id, challenge, signature=bob.sign(challenge))
        response = await client.post("/api/ai/process-prompt", json=body)
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_challenge_bound_to_someone_else(
        self, client: AsyncClient, db_session: AsyncSession, alice: Wallet, bob: Wallet
    ) -> None:
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)
        body = _prompt_body(bob, template.id, challenge, address=bob.address)
        response = await client.post("/api/ai/process-prompt", json=body)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_template(self, client: AsyncClient, alice: Wallet) -> None:
        challenge = await _verified_challenge(client, alice)
        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, 999, challenge))
        assert response.status_code == 404
        assert response.json() == {"error": "Template not found"}

    @pytest.mark.asyncio
    async def test_empty_prompt(self, client: AsyncClient, db_session: AsyncSession, alice: Wallet) -> None:
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)
        response = await client.post(
            "/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge, prompt="   ")
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Prompt is required"}

    @pytest.mark.asyncio
    async def test_upstream_failure_burns_challenge_not_quota(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        completion: FakeCompletionClient,
        alice: Wallet,
    ) -> None:
        completion.error = UpstreamFailure("AI service request failed")
        template = await seed_template(db_session, alice.address)
        challenge = await _verified_challenge(client, alice)

        response = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 502
        assert response.json() == {"error": "AI service request failed"}

        status = await client.get("/api/ai/challenge", params={"address": alice.address})
        assert status.json()["data"]["remaining_attempts"] == 10

        completion.error = None
        retry = await client.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert retry.status_code == 400

    @pytest.mark.asyncio
    async def test_ai_not_configured(
        self, settings: Settings, database: None, db_session: AsyncSession, alice: Wallet
    ) -> None:
        template = await seed_template(db_session, alice.address)
        app = create_app(settings)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            challenge = await _verified_challenge(ac, alice)
            response = await ac.post("/api/ai/process-prompt", json=_prompt_body(alice, template.id, challenge))
        assert response.status_code == 503
        assert response.json() == {"error": "AI service is not available"}
