import pytest

from conftest import make_disruption


@pytest.mark.asyncio
async def test_health(api_client):
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert "X-Request-ID" in resp.headers


@pytest.mark.asyncio
async def test_manual_check_seeds_then_reports_per_disruption(api_client, feed, backend):
    feed.disruptions = [make_disruption(1)]
    first = await api_client.post("/admin/check")
    assert first.status_code == 200
    assert first.json()["data"]["status"] == "seeded"

    feed.disruptions = [make_disruption(1), make_disruption(2, all_routes=True)]
    resp = await api_client.post("/admin/check")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "completed"
    assert data["new_disruptions"] == [2]
    assert data["dispatches"][0]["disruption_id"] == 2
    assert data["dispatches"][0]["success"] is True
    assert len(backend.published) == 3


@pytest.mark.asyncio
async def test_manual_check_force_is_opt_in(api_client, feed, backend):
    feed.disruptions = [make_disruption(1)]
    await api_client.post("/admin/check")

    resp = await api_client.post("/admin/check")
    assert resp.json()["data"]["dispatches"] == []

    forced = await api_client.post("/admin/check", params={"force": "true"})
    assert forced.status_code == 200
    assert forced.json()["data"]["forced"] is True
    assert backend.dispatched_ids() == [1]


@pytest.mark.asyncio
async def test_manual_check_feed_failure(api_client, feed):
    feed.fail = True
    resp = await api_client.post("/admin/check")
    assert resp.status_code == 502
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "cycle_failed"


@pytest.mark.asyncio
async def test_foreground_trigger_and_snapshot(api_client, feed):
    feed.disruptions = [make_disruption(2, order=2), make_disruption(1, order=1)]
    resp = await api_client.post("/triggers/foreground")
    assert resp.json()["data"]["trigger"] == "foreground"

    listing = await api_client.get("/disruptions")
    ids = [d["id"] for d in listing.json()["data"]["disruptions"]]
    assert ids == [1, 2]


@pytest.mark.asyncio
async def test_status_reports_last_cycle(api_client, feed):
    feed.disruptions = [make_disruption(1)]
    await api_client.post("/admin/check")

    resp = await api_client.get("/status")
    data = resp.json()["data"]
    assert data["seeded"] is True
    assert data["snapshot_size"] == 1
    assert data["state"] == "idle"
    assert data["last_cycle"]["status"] == "seeded"


@pytest.mark.asyncio
async def test_register_device_requires_token(api_client):
    resp = await api_client.post("/devices/register", json={"device": "iPhone"})
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Device token is required"


@pytest.mark.asyncio
async def test_register_and_unregister_device(api_client):
    resp = await api_client.post("/devices/register", json={"token": "tok-1", "device": "iPhone", "app_version": "1.0"})
    assert resp.status_code == 200
    assert resp.json()["data"]["topics"] == ["metro_disruptions", "green_line", "yellow_line"]

    assert (await api_client.delete("/devices/tok-1")).status_code == 200
    assert (await api_client.delete("/devices/tok-1")).status_code == 404


@pytest.mark.asyncio
async def test_test_notification(api_client, backend):
    assert (await api_client.post("/admin/test-notification")).status_code == 400

    resp = await api_client.post("/admin/test-notification", params={"token": "tok-9"})
    assert resp.status_code == 200
    assert backend.direct[0]["token"] == "tok-9"
