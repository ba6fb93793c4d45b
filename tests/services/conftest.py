"""Service test fixtures — async SQLite database, FastAPI test client, hierarchy builder.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - get_db dependency overridden to use the test database
    - `tree` places one actor of every role through the real services

Design Decisions:
    - File database rather than :memory:: sessions opened by the audit sink and
      by concurrency tests need their own connections to the same data
    - PostgreSQL-only behavior (advisory locks) is a no-op on SQLite
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from httpx import ASGITransport, AsyncClient

from tierbroker.db.base import Base
from tierbroker.db.session import create_session_factory
import tierbroker.models  # noqa: F401
from tierbroker.infrastructure.database import get_db, DatabaseSessionManager
import tierbroker.infrastructure.database as db_module
from tierbroker.main import app
from tests.services.hierarchy_builders import Tree, build_tree


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tierbroker.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return create_session_factory(engine=test_engine)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def tree(test_db) -> Tree:
    return await build_tree(test_db)
