import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from h1b_dashboard.main import create_app
from h1b_dashboard.routes import REPORT_ENDPOINTS, router

from conftest import SAMPLE_ROWS


@pytest.fixture
def app(manager):
    return create_app(cache_manager=manager)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def test_every_report_has_an_endpoint():
    paths = {route.path for route in router.routes}
    assert set(REPORT_ENDPOINTS) == paths
    assert {r.value for r in REPORT_ENDPOINTS.values()} == set(SAMPLE_ROWS)


@pytest.mark.asyncio
async def test_report_endpoints_are_mounted(client):
    for path in REPORT_ENDPOINTS:
        response = await client.get(path)
        assert response.status_code != 404, path


@pytest.mark.asyncio
async def test_clear_single_report_during_warm_forces_a_new_query(client, app, fake_db):
    gate = asyncio.Event()
    fake_db.gates["nationality_stats"] = gate
    warm = app.state.cache_manager.start_warm()
    for _ in range(3):
        await asyncio.sleep(0)

    response = await client.delete("/cache/nationality_stats")
    assert response.status_code == 200
    gate.set()
    await warm

    await client.get("/h1b/nationality-stats")
    assert fake_db.calls["nationality_stats"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("path,report", sorted(REPORT_ENDPOINTS.items()))
async def test_report_endpoint_returns_rows(client, path, report):
    response = await client.get(path)
    assert response.status_code == 200
    assert response.json() == SAMPLE_ROWS[report.value]


@pytest.mark.asyncio
@pytest.mark.parametrize("path,report", sorted(REPORT_ENDPOINTS.items()))
async def test_report_endpoint_degrades_to_empty_array(client, fake_db, path, report):
    fake_db.failures[report.value] = ConnectionError("could not connect to server")
    response = await client.get(path)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_repeated_requests_hit_the_cache(client, fake_db):
    for _ in range(3):
        response = await client.get("/h1b/nationality-stats")
        assert response.status_code == 200
    assert fake_db.calls["nationality_stats"] == 1


@pytest.mark.asyncio
async def test_health_reports_database_availability(client, fake_db):
    response = await client.get("/health")
    assert response.json() == {"status": "ok", "database": False}

    await fake_db.connect()
    response = await client.get("/health")
    assert response.json() == {"status": "ok", "database": True}


@pytest.mark.asyncio
async def test_cache_status_and_clear(client, fake_db):
    await client.get("/h1b/gender-stats")

    status = {s["report"]: s["state"] for s in (await client.get("/cache/status")).json()}
    assert status["gender_stats"] == "cached"
    assert status["h1b_trends"] == "missing"

    response = await client.delete("/cache")
    assert response.json() == {"message": "Cache cleared."}
    await client.get("/h1b/gender-stats")
    assert fake_db.calls["gender_stats"] == 2


@pytest.mark.asyncio
async def test_clear_single_report(client, fake_db):
    await client.get("/company/state-stats")
    response = await client.delete("/cache/state_stats")
    assert response.status_code == 200
    await client.get("/company/state-stats")
    assert fake_db.calls["state_stats"] == 2


@pytest.mark.asyncio
async def test_clear_unknown_report_is_404(client):
    response = await client.delete("/cache/not_a_report")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lifespan_warms_and_shuts_down(app, fake_db):
    async with app.router.lifespan_context(app):
        assert fake_db.is_available()
        await app.state.cache_manager.start_warm()
        assert all(fake_db.calls[name] == 1 for name in SAMPLE_ROWS)
    assert not fake_db.is_available()
    assert fake_db.close_calls == 1
