import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from table_orders.core.config import Settings  # noqa: E402
from table_orders.database import Database  # noqa: E402
from table_orders.main import create_app  # noqa: E402


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        env_mode="development",
        debug=False,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def run_db(settings):
    """Run ``scenario(database)`` on a fresh schema inside one event loop."""

    def runner(scenario):
        async def _main():
            database = Database(settings)
            await database.init_models()
            try:
                return await scenario(database)
            finally:
                await database.dispose()

        return asyncio.run(_main())

    return runner
