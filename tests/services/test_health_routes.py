"""Health routes — liveness, readiness and hierarchy integrity probes."""

import tierbroker.infrastructure.database as db_module
from tierbroker.core.domain_types import Role
from tests.services.hierarchy_builders import make_actor


async def test_liveness(client):
    res = await client.get("/api/v1/health/")

    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_with_database(client):
    res = await client.get("/api/v1/health/ready")

    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"


async def test_hierarchy_probe_healthy_tree(client, tree):
    res = await client.get("/api/v1/health/hierarchy")

    assert res.status_code == 200
    body = res.json()
    assert body["valid"] is True
    assert body["issue_count"] == 0


async def test_hierarchy_probe_reports_orphans(client, test_db, tree):
    orphan = await make_actor(test_db, Role.CLIENT, "orphan")

    res = await client.get("/api/v1/health/hierarchy")

    assert res.status_code == 503
    body = res.json()
    assert body["valid"] is False
    assert body["issues"][0]["type"] == "orphaned_actor"
    assert body["issues"][0]["actor_ids"] == [str(orphan)]


async def test_readiness_without_database(client, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)

    res = await client.get("/api/v1/health/ready")

    assert res.status_code == 503
    assert res.json()["reason"] == "database_unavailable"
