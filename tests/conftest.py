"""Shared test fixtures."""

from __future__ import annotations

import os

# Settings are read at import time by web4apps.main; point them at test backends first
os.environ["WEB4_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["WEB4_REDIS_URL"] = ""
os.environ["WEB4_OPENAI_API_KEY"] = ""
os.environ["WEB4_GITHUB_CLIENT_ID"] = ""
os.environ["WEB4_GITHUB_CLIENT_SECRET"] = ""
os.environ["WEB4_TELEGRAM_BOT_TOKEN"] = ""
os.environ["WEB4_TELEGRAM_CHAT_ID"] = ""

from collections.abc import AsyncGenerator  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from coincurve import PrivateKey  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from web4apps.ai.completion import CompletionRequest, CompletionResult  # noqa: E402
from web4apps.auth.ethereum import hash_personal_message, public_key_to_address  # noqa: E402
from web4apps.config import Settings, get_settings  # noqa: E402
from web4apps.database import close_db, get_engine, get_session, init_db  # noqa: E402
from web4apps.db import models  # noqa: E402, F401
from web4apps.db.base import Base  # noqa: E402
from web4apps.db.models import App, Template  # noqa: E402
from web4apps.main import create_app  # noqa: E402

get_settings.cache_clear()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ICE_CREAM_SCHEMA = (
    '{"type": "object", "required": ["flavor", "scoops"], "properties": {'
    '"flavor": {"type": "string", "minLength": 2}, '
    '"scoops": {"type": "integer", "minimum": 1, "maximum": 5}, '
    '"toppings": {"type": "array", "items": {"type": "string"}}}}'
)


class Wallet:
    """Deterministic secp256k1 test wallet that signs like ``personal_sign``."""

    def __init__(self, seed: int) -> None:
        self.key = PrivateKey(seed.to_bytes(32, "big"))
        self.address = public_key_to_address(self.key.public_key)

    def sign(self, message: str) -> str:
        sig = self.key.sign_recoverable(hash_personal_message(message), hasher=None)
        return "0x" + sig[:64].hex() + f"{sig[64] + 27:02x}"


@dataclass
class FakeCompletionClient:
    """Returns canned model text and records every request."""

    text: str = '{"flavor": "vanilla", "scoops": 2, "toppings": ["sprinkles"]}'
    tokens: int = 42
    requests: list[CompletionRequest] = field(default_factory=list)
    error: Exception | None = None

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return CompletionResult(text=self.text, tokens=self.tokens)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def alice() -> Wallet:
    return Wallet(0xA11CE)


@pytest.fixture
def bob() -> Wallet:
    return Wallet(0xB0B)


@pytest.fixture
def carol() -> Wallet:
    return Wallet(0xCA201)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        redis_url="",
        openai_api_key="",
        github_client_id="",
        github_client_secret="",
        leaderboard_excluded_addresses=["0x980F5aC0Fe183479B87f78E7892f8002fB9D5401"],
        ai_max_requests_per_day=10,
    )


@pytest.fixture
def completion() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[None, None]:
    """Fresh in-memory schema for every test."""
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    completion: FakeCompletionClient,
    database: None,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app. Lifespan does not run; ``database`` sets up the DB."""
    app = create_app(settings, completion=completion)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def seed_template(
    db: AsyncSession,
    owner: str,
    title: str = "Seeded",
    json_data: str = ICE_CREAM_SCHEMA,
    moderated: bool = True,
    deleted: bool = False,
) -> Template:
    now = _now()
    template = Template(
        title=title,
        url="https://example.com",
        json_data=json_data,
        owner_address=owner,
        moderated=moderated,
        created_at=now,
        updated_at=now,
        deleted_at=now if deleted else None,
    )
    db.add(template)
    await db.commit()
    return template


async def seed_app(
    db: AsyncSession,
    owner: str,
    template_id: int,
    name: str = "Seeded app",
    moderated: bool = True,
    deleted: bool = False,
) -> App:
    now = _now()
    app = App(
        name=name,
        owner_address=owner,
        template_id=template_id,
        json_data='{"flavor": "mint", "scoops": 1}',
        moderated=moderated,
        created_at=now,
        updated_at=now,
        deleted_at=now if deleted else None,
    )
    db.add(app)
    await db.commit()
    return app
