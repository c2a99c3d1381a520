import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ.pop("DATABASE_URL", None)
test_data_dir = Path(tempfile.mkdtemp(prefix="clubhub-test-"))
os.environ["DATA_DIR"] = str(test_data_dir)

from backend.clubhub.db.core import reset_db  # noqa: E402
from backend.clubhub.main import app  # noqa: E402
from backend.clubhub.seed import seed_database  # noqa: E402
from backend.clubhub.settings import settings  # noqa: E402
from backend.clubhub.storage import DB  # noqa: E402


async def _reset_and_seed() -> None:
    await reset_db()
    await seed_database(DB)


@pytest.fixture(autouse=True)
def seeded_db() -> None:
    settings.GEMINI_API_KEY = None
    settings.SENTRY_DSN = None
    asyncio.run(_reset_and_seed())
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def client() -> TestClient:
    return TestClient(app, base_url="http://api.testserver")


@pytest.fixture
def store():
    return DB
