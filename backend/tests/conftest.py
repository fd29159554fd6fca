"""
Test fixtures shared across all integration tests.

Architecture:
- Environment variables are set BEFORE the app is imported, because the
  app builds its settings and database engine at import time.
- Tests run against a throwaway SQLite file (via aiosqlite), so no
  database server is needed. The schema only uses portable column types.
- Seed data is committed via the app's own AsyncSessionLocal.
- The HTTP test client uses the real FastAPI app with its own sessions.
- External services (Claude, Stripe) are swapped out through
  app.dependency_overrides, never by patching the network.
- Each test gets seed data with unique UUIDs to avoid collisions.
"""

import os
import tempfile
import uuid

from tests.helpers import SAMPLE_RESULT, TEST_JWT_SECRET, auth_headers

os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{tempfile.gettempdir()}/roast_test_{uuid.uuid4().hex}.db"
)
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["DEBUG"] = "false"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["FREE_ROAST_LIMIT"] = "1"
os.environ["LOGO_PATH"] = os.path.join(tempfile.gettempdir(), "no-such-logo.png")
os.environ["STRIPE_PRO_PRICE_ID"] = "price_pro_monthly"
os.environ["STRIPE_PRO_YEAR_PRICE_ID"] = "price_pro_year"
os.environ["STRIPE_LIFETIME_PRICE_ID"] = "price_lifetime"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.database import AsyncSessionLocal, Base, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Roast, User  # noqa: E402


@pytest_asyncio.fixture
async def setup_db():
    """Create all tables (no-op once they exist)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest_asyncio.fixture
async def client(setup_db):
    """Async HTTP test client over the real app.

    Dependency overrides installed by a test are cleared afterwards.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --- Seed data fixtures ---

@pytest_asyncio.fixture
async def test_user(setup_db):
    """A free-plan user with a profile row."""
    user = User(
        id=uuid.uuid4(),
        email=f"test_{uuid.uuid4().hex[:8]}@example.com",
        full_name="Test User",
        username=f"tester_{uuid.uuid4().hex[:8]}",
        plan="free",
    )
    async with AsyncSessionLocal() as session:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


@pytest.fixture
def user_headers(test_user) -> dict:
    return auth_headers(test_user.id, test_user.email)


@pytest_asyncio.fixture
async def test_roast(test_user):
    """A completed roast owned by test_user."""
    roast = Roast(
        id=uuid.uuid4(),
        user_id=test_user.id,
        resume_text="Jane Doe. Responsible for things.",
        result_json=SAMPLE_RESULT,
        score=40,
        status="completed",
    )
    async with AsyncSessionLocal() as session:
        session.add(roast)
        await session.commit()
        await session.refresh(roast)
    return roast


@pytest_asyncio.fixture
async def processing_roast(test_user):
    """A roast whose model call never finished (no result yet)."""
    roast = Roast(
        id=uuid.uuid4(),
        user_id=test_user.id,
        resume_text="Half-finished.",
        status="processing",
    )
    async with AsyncSessionLocal() as session:
        session.add(roast)
        await session.commit()
        await session.refresh(roast)
    return roast
