from sitegen.providers import ProviderKind

from fakes import FakeProvider


def test_health_shape(make_client):
    client, _ = make_client(FakeProvider(ProviderKind.DEEPSEEK))
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["status"] == "OK"
    assert body["providers"] == {"openai": False, "deepseek": True, "current": "openai"}
    assert body["analytics"] == {"totalUsers": 0, "uniqueUsers": 0, "websitesGenerated": 0}
    assert body["timestamp"].endswith("Z")


def test_health_is_read_only(make_client):
    client, state = make_client()
    client.post("/api/generate", json={"description": "hello"})
    before = state.analytics.snapshot()
    for _ in range(5):
        assert client.get("/api/health").status_code == 200
    after = state.analytics.snapshot()
    assert after.total_requests == before.total_requests
    assert after.unique_callers == before.unique_callers
    assert after.websites_generated == before.websites_generated
    assert after.last_activity == before.last_activity


def test_rejected_generate_is_not_tracked_but_other_routes_are(make_client):
    client, state = make_client()
    client.post("/api/generate", json={})
    client.post("/api/generate", json={"description": "hello"})
    client.post("/api/set-provider", json={"provider": "deepseek"})
    client.get("/api/analytics")
    snap = state.analytics.snapshot()
    assert snap.total_requests == 3
    assert snap.unique_callers == 1
    assert snap.unique_callers <= snap.total_requests
    assert snap.websites_generated == 1


def test_unique_callers_by_user_agent(make_client):
    client, state = make_client()
    for ua in ("agent-a", "agent-b", "agent-a"):
        client.get("/api/analytics", headers={"User-Agent": ua})
    snap = state.analytics.snapshot()
    assert snap.total_requests == 3
    assert snap.unique_callers == 2


def test_analytics_payload(make_client):
    client, _ = make_client()
    for description in ["Portfolio site", "portfolio SITE", "landing page"]:
        client.post("/api/generate", json={"description": description})

    r = client.get("/api/analytics")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    data = body["data"]
    assert data["totalUsers"] == 3
    assert data["uniqueUsers"] == 1
    assert data["websitesGenerated"] == 3
    assert data["providerUsage"] == {"openai": 0, "deepseek": 0, "template": 3}
    assert data["popularRequests"] == [
        {"request": "portfolio site", "count": 2},
        {"request": "landing page", "count": 1},
    ]
    assert set(data["uptime"]) == {"startTime", "lastActivity", "duration"}
    assert data["uptime"]["duration"] >= 0


def test_analytics_top_ten_only(make_client):
    client, _ = make_client()
    for i in range(12):
        for _ in range(i + 1):
            client.post("/api/generate", json={"description": f"site number {i}"})

    popular = client.get("/api/analytics").json()["data"]["popularRequests"]
    assert len(popular) == 10
    counts = [p["count"] for p in popular]
    assert counts == sorted(counts, reverse=True)
    assert popular[0] == {"request": "site number 11", "count": 12}


def test_analytics_counts_itself_on_the_next_read(make_client):
    client, _ = make_client()
    first = client.get("/api/analytics").json()["data"]
    second = client.get("/api/analytics").json()["data"]
    assert first["totalUsers"] == 0
    assert second["totalUsers"] == 1
    assert second["uniqueUsers"] == 1


def test_failed_set_provider_is_still_tracked(make_client):
    client, state = make_client()
    assert client.post("/api/set-provider", json={"provider": "openai"}).status_code == 400
    assert state.analytics.snapshot().total_requests == 1
