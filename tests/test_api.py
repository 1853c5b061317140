from __future__ import annotations

from fastapi.testclient import TestClient

from app.db.store import StoreError
from app.utils.stats_cache import StatsCache

from conftest import FakeRedis, make_submission_body


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert "T" in body["timestamp"]


def test_empty_store_lists_nothing_and_zero_stats(client):
    assert client.get("/api/submissions").json() == []
    assert client.get("/api/admin/stats").json() == {
        "total": 0,
        "byRisk": {"high": 0, "medium": 0, "low": 0},
        "byChoice": {"change": 0, "continue": 0, "none": 0},
        "byCrop": {},
    }


def test_mango_scenario(client):
    r = client.post("/api/submissions", json=make_submission_body("Mango", "high"))
    assert r.status_code == 201
    created = r.json()
    assert created["riskLevel"] == "high"
    assert created["choice"] is None
    assert created["id"] and created["timestamp"] > 0

    r = client.patch(f"/api/submissions/{created['id']}/choice", json={"choice": "A"})
    assert r.status_code == 200
    assert r.json()["choice"] == "A"

    listed = client.get("/api/submissions").json()
    assert [s["choice"] for s in listed if s["id"] == created["id"]] == ["A"]

    stats = client.get("/api/admin/stats").json()
    assert stats["byChoice"]["change"] == 1
    assert stats["byCrop"] == {"Mango": 1}


def test_patch_unknown_id_is_404_with_error_body(client):
    r = client.patch("/api/submissions/missing/choice", json={"choice": "B"})
    assert r.status_code == 404
    assert r.json() == {"error": "Submission not found"}


def test_patch_rejects_unknown_choice(client):
    sub = client.post("/api/submissions", json=make_submission_body()).json()
    r = client.patch(f"/api/submissions/{sub['id']}/choice", json={"choice": "C"})
    assert r.status_code == 422
    assert "error" in r.json()


def test_create_requires_risk_level(client):
    body = make_submission_body()
    body["riskLevel"] = "extreme"
    r = client.post("/api/submissions", json=body)
    assert r.status_code == 422
    assert "riskLevel" in r.json()["error"]


def test_delete_clears_history(client):
    client.post("/api/submissions", json=make_submission_body())
    r = client.delete("/api/submissions")
    assert r.status_code == 200
    assert r.json() == {"message": "History cleared"}
    assert client.get("/api/submissions").json() == []
    assert client.get("/api/admin/stats").json()["total"] == 0


def test_list_filters(client):
    client.post("/api/submissions", json=make_submission_body("Mango", "high"))
    client.post("/api/submissions", json=make_submission_body("Cotton", "low", lat=None, lng=None))

    assert [s["crop"] for s in client.get("/api/submissions?risk=low").json()] == ["Cotton"]
    assert [s["crop"] for s in client.get("/api/submissions?crop=Mango").json()] == ["Mango"]
    assert [s["crop"] for s in client.get("/api/submissions?mappable=true").json()] == ["Mango"]
    assert len(client.get("/api/submissions").json()) == 2


def test_write_failure_is_500_and_server_keeps_serving(client, store, monkeypatch):
    def boom(doc):
        raise StoreError("read-only fs")

    monkeypatch.setattr(store, "_flush", boom)
    r = client.post("/api/submissions", json=make_submission_body())
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to save submission"}

    r = client.delete("/api/submissions")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to clear history"}

    assert client.get("/api/health").status_code == 200


def test_unknown_route_uses_error_shape(client):
    r = client.get("/api/nothing-here")
    assert r.status_code == 404
    assert "error" in r.json()


def test_stats_cache_invalidated_on_write(data_file, store, gateway):
    from app.core.config import Settings
    from app.main import create_app

    redis = FakeRedis()
    app = create_app(
        Settings(DATA_FILE=str(data_file), STATIC_DIR=""),
        store=store,
        gateway=gateway,
        stats_cache=StatsCache(redis, 60),
    )
    c = TestClient(app)

    assert c.get("/api/admin/stats").json()["total"] == 0
    assert redis.data  # cached

    c.post("/api/submissions", json=make_submission_body())
    assert not redis.data  # invalidated
    assert c.get("/api/admin/stats").json()["total"] == 1


def test_errors_escaping_a_router_keep_the_error_shape(app):
    from app.gateway.gemini import GatewayError, GatewayNotConfigured

    def fail_store():
        raise StoreError("disk full")

    def fail_gateway():
        raise GatewayError("upstream 500")

    def no_key():
        raise GatewayNotConfigured("GEMINI_API_KEY is not set")

    app.add_api_route("/api/_store_fail", fail_store)
    app.add_api_route("/api/_gateway_fail", fail_gateway)
    app.add_api_route("/api/_no_key", no_key)
    c = TestClient(app)

    r = c.get("/api/_store_fail")
    assert (r.status_code, r.json()) == (500, {"error": "Storage error"})
    r = c.get("/api/_gateway_fail")
    assert (r.status_code, r.json()) == (502, {"error": "Analysis service error"})
    r = c.get("/api/_no_key")
    assert (r.status_code, r.json()) == (503, {"error": "Analysis service is not configured"})


def test_stats_written_after_invalidation_are_not_cached():
    redis = FakeRedis()
    cache = StatsCache(redis, 60)

    def compute_while_a_write_lands():
        stats = {"total": 1}
        cache.invalidate()
        return stats

    assert cache.get_or_compute(compute_while_a_write_lands) == {"total": 1}
    assert not redis.data

    assert cache.get_or_compute(lambda: {"total": 2}) == {"total": 2}
    assert redis.data
