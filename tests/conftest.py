import uuid
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings

# Override settings for tests
settings.jwt_secret_key = "test-secret-key-that-is-at-least-32-bytes-long"
settings.app_env = "development"
settings.cron_secret = ""
settings.auto_create_tables = False
# Tests never reach real providers; they inject fakes into the orchestrator
settings.openai_api_key = ""
settings.perplexity_api_key = ""
settings.gemini_api_key = ""

from app.core.dependencies import get_orchestrator  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.postgres import get_db, make_engine, make_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.models.brand_profile import BrandProfile  # noqa: E402
from app.models.keyword_tracking import KeywordTracking  # noqa: E402
from app.providers.base import (  # noqa: E402
    BaseLlmProvider,
    GenerationOptions,
    LlmResponse,
    ProviderCitation,
    TokenUsage,
)
from app.services.scan_orchestrator import ScanOrchestrator  # noqa: E402

limiter.enabled = False


class FakeProvider(BaseLlmProvider):
    """In-memory provider: returns canned text or raises the given error."""

    def __init__(
        self,
        name: str,
        text: str = "",
        error: Exception | None = None,
        citations: list[ProviderCitation] | None = None,
    ):
        super().__init__(api_key="fake-key", model=f"{name}-test", timeout=1)
        self.provider = name
        self.text = text
        self.error = error
        self.citations = citations or []
        self.prompts: list[str] = []

    def endpoint(self) -> str:
        return "http://fake.invalid"

    def build_payload(self, prompt: str, options: GenerationOptions) -> dict:
        return {"prompt": prompt}

    def parse_response(self, data: dict) -> LlmResponse:
        return LlmResponse(text=data.get("text", ""), model=self.model)

    async def send(self, prompt: str, options: GenerationOptions | None = None) -> LlmResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return LlmResponse(
            text=self.text,
            model=self.model,
            usage=TokenUsage(input_tokens=10, output_tokens=20),
            citations=list(self.citations),
        )


RANKED_ANSWER = (
    "Here are the best project management tools:\n"
    "1. Asana - great for teams\n"
    "2. Acme - the best choice for small businesses\n"
    "3. Trello - simple boards\n"
    "Sources: https://www.g2.com/categories/project-management"
)


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    return FakeProvider


@pytest.fixture
def ranked_answer() -> str:
    return RANKED_ANSWER


@pytest.fixture
def fake_providers() -> dict[str, FakeProvider]:
    return {
        "chatgpt": FakeProvider("chatgpt", text=RANKED_ANSWER),
        "perplexity": FakeProvider(
            "perplexity",
            text="Acme is a popular option. Asana and Trello are alternatives.",
            citations=[ProviderCitation(url="https://acme.com/about", title="About Acme")],
        ),
        "gemini": FakeProvider("gemini", text="Popular tools include Asana, Monday and Trello."),
    }


@pytest.fixture
def orchestrator(fake_providers) -> ScanOrchestrator:
    return ScanOrchestrator(providers=fake_providers)


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database per test."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, orchestrator) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    """Auth headers with a valid access token."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def brand(db: AsyncSession, user_id: uuid.UUID) -> BrandProfile:
    """Brand "Acme" with two competitors and one tracked keyword."""
    brand = BrandProfile(
        user_id=user_id,
        brand_name="acme",
        display_name="Acme",
        keywords=["project tools"],
        competitors=["Asana", "Trello"],
        scan_interval=24,
    )
    db.add(brand)
    await db.flush()
    db.add(
        KeywordTracking(
            user_id=user_id,
            brand_id=brand.id,
            keyword="project tools",
            topic="best project management tools",
        )
    )
    await db.commit()
    return brand


@pytest.fixture
async def keyword(db: AsyncSession, brand: BrandProfile) -> KeywordTracking:
    result = await db.execute(select(KeywordTracking).where(KeywordTracking.brand_id == brand.id))
    return result.scalar_one()
