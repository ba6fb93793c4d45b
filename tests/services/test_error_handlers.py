"""Error Handlers — domain errors, validation errors and crashes share one envelope."""

import pytest
from httpx import ASGITransport, AsyncClient

from tierbroker.config import Settings
from tierbroker.core.errors import (
    CircularHierarchyError, ConcurrencyConflictError, DatabaseError,
)
from tierbroker.main import create_app


@pytest.fixture
async def failing_client():
    app = create_app(Settings(database_url="sqlite+aiosqlite:///unused.db"))

    @app.get("/boom/circular")
    async def circular():
        raise CircularHierarchyError("actor-1", "actor-2")

    @app.get("/boom/conflict")
    async def conflict():
        raise ConcurrencyConflictError("still busy")

    @app.get("/boom/store")
    async def store():
        raise DatabaseError("connection refused", "execute")

    @app.get("/boom/crash")
    async def crash():
        raise RuntimeError("secret internals")

    @app.get("/boom/typed")
    async def typed(limit: int):
        return {"limit": limit}

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_domain_error_uses_its_status_and_code(failing_client):
    res = await failing_client.get("/boom/circular")

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "CIRCULAR_HIERARCHY"
    assert "Retry-After" not in res.headers


async def test_retryable_errors_carry_retry_after(failing_client):
    conflict = await failing_client.get("/boom/conflict")
    store = await failing_client.get("/boom/store")

    assert conflict.headers["Retry-After"] == "1"
    assert store.status_code == 503
    assert store.headers["Retry-After"] == "5"


async def test_validation_error_lists_fields(failing_client):
    res = await failing_client.get("/boom/typed", params={"limit": "many"})

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "query.limit"


async def test_unexpected_error_hides_details(failing_client):
    res = await failing_client.get("/boom/crash")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret" not in res.text
