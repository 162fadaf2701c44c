"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Drives every /api endpoint through the TestClient against the in-memory
SQLite engine (see the ``client`` fixture in conftest).

These tests verify:
- Response envelopes and camelCase field names
- Error bodies (``{"error": {"code", "message"}}``) and status codes
- Health endpoint availability
"""

from __future__ import annotations

import pytest

from conftest import add_synagogue, add_user

NEW_SYNAGOGUE = {
    "name": "Hazvi Yisrael",
    "address": "Hovevei Zion 13",
    "city": "Jerusalem",
    "latitude": 31.7700,
    "longitude": 35.2170,
    "nusach": "SEPHARD",
    "wheelchairAccess": True,
}


@pytest.fixture
def synagogue_id(db_engine) -> str:
    return add_synagogue(db_engine)


def _post_report(client, synagogue_id, **body):
    payload = {
        "synagogueId": synagogue_id,
        "reporterId": "author",
        "prayerType": "MINCHA",
        "status": "STARTING_SOON",
    }
    payload.update(body)
    return client.post("/api/minyan-reports", json=payload)


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Synagogues
# ===========================================================================
class TestSynagogueRoutes:
    def test_list_empty(self, client):
        resp = client.get("/api/synagogues")
        assert resp.status_code == 200
        assert resp.json() == {"synagogues": []}

    def test_list_with_center_reports_distance(self, client, synagogue_id):
        resp = client.get("/api/synagogues", params={"lat": 31.78, "lng": 35.23, "radius": 5})
        body = resp.json()["synagogues"]
        assert [s["id"] for s in body] == [synagogue_id]
        assert body[0]["distanceKm"] < 5
        assert body[0]["nusachLabel"] == "אשכנז"

    def test_list_text_search(self, client, synagogue_id, db_engine):
        add_synagogue(db_engine, name="Other", city="Safed")
        resp = client.get("/api/synagogues", params={"search": "safed"})
        assert [s["name"] for s in resp.json()["synagogues"]] == ["Other"]

    @pytest.mark.parametrize(
        "geo_params",
        [{"lat": 200, "lng": 0}, {"lat": 31.78, "lng": 35.23, "radius": -5}],
    )
    def test_text_search_ignores_bad_geo_params(self, client, db_engine, geo_params):
        add_synagogue(db_engine, name="Other", city="Safed")
        resp = client.get("/api/synagogues", params={"search": "safed", **geo_params})
        assert resp.status_code == 200
        body = resp.json()["synagogues"]
        assert [s["name"] for s in body] == ["Other"]
        assert "distanceKm" not in body[0]

    def test_negative_radius(self, client):
        resp = client.get("/api/synagogues", params={"lat": 31.78, "lng": 35.23, "radius": -3})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_non_numeric_lat(self, client):
        resp = client.get("/api/synagogues", params={"lat": "north", "lng": 35.23})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_detail_not_found(self, client):
        resp = client.get("/api/synagogues/nope")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    def test_detail_without_schedule_gets_calculated_times(self, client, synagogue_id):
        resp = client.get(f"/api/synagogues/{synagogue_id}")
        assert resp.status_code == 200
        body = resp.json()["synagogue"]
        assert body["prayerSchedule"] == []
        assert body["prayerTimes"]["source"] == "calculated"
        assert body["currentStatus"] == {}

    def test_create_then_detail(self, client):
        payload = dict(
            NEW_SYNAGOGUE,
            prayerSchedule=[{"dayOfWeek": 5, "prayerType": "MINCHA", "time": "13:30"}],
        )
        resp = client.post("/api/synagogues", json=payload)
        assert resp.status_code == 201
        created = resp.json()["synagogue"]
        assert created["wheelchairAccess"] is True
        assert created["nusach"] == "SEPHARD"

        detail = client.get(f"/api/synagogues/{created['id']}").json()["synagogue"]
        assert detail["prayerSchedule"] == [{"dayOfWeek": 5, "prayerType": "MINCHA", "time": "13:30"}]
        assert "prayerTimes" not in detail

    def test_create_missing_name(self, client):
        resp = client.post("/api/synagogues", json=dict(NEW_SYNAGOGUE, name=""))
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "name"

    def test_add_review(self, client, synagogue_id):
        resp = client.post(
            f"/api/synagogues/{synagogue_id}/reviews",
            json={"rating": 4, "comment": "warm community", "userId": "u1"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["review"]["userId"] == "u1"
        assert body["rating"] == {"average": 4.0, "totalReviews": 1}

        listed = client.get("/api/synagogues").json()["synagogues"]
        assert listed[0]["averageRating"] == 4.0

    def test_add_review_bad_rating(self, client, synagogue_id):
        resp = client.post(f"/api/synagogues/{synagogue_id}/reviews", json={"rating": 9})
        assert resp.status_code == 400


# ===========================================================================
# Prayer times
# ===========================================================================
class TestPrayerTimesRoute:
    def test_requires_coordinates(self, client):
        resp = client.get("/api/prayer-times", params={"lat": 31.7})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Latitude and longitude are required"

    def test_calculated_for_date(self, client):
        resp = client.get(
            "/api/prayer-times", params={"lat": 31.7767, "lng": 35.2345, "date": "2026-06-21"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["date"] == "2026-06-21"
        assert set(body["prayerTimes"]) == {"shacharit", "mincha", "maariv", "sunrise", "sunset", "source"}
        assert body["prayerTimes"]["source"] == "calculated"

    def test_bad_date(self, client):
        resp = client.get("/api/prayer-times", params={"lat": 31.7, "lng": 35.2, "date": "21/06/2026"})
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "date"

    def test_out_of_range_latitude(self, client):
        resp = client.get("/api/prayer-times", params={"lat": 95, "lng": 35.2})
        assert resp.status_code == 400


# ===========================================================================
# Minyan reports
# ===========================================================================
class TestMinyanReportRoutes:
    def test_create_and_list(self, client, synagogue_id, db_engine):
        add_user(db_engine, "author", "Yosef", trust_score=65)
        resp = _post_report(client, synagogue_id, status="ACTIVE_NOW", minyanCount=12)
        assert resp.status_code == 201
        report = resp.json()["report"]
        assert report["minyanCount"] == 12
        assert report["verifiedBy"] == []
        assert report["isVerified"] is False
        assert report["reporter"] == {"name": "Yosef", "trustScore": 65}

        listed = client.get("/api/minyan-reports", params={"synagogueId": synagogue_id}).json()
        assert [r["id"] for r in listed["reports"]] == [report["id"]]

    def test_user_id_accepted_as_reporter(self, client, synagogue_id):
        resp = client.post(
            "/api/minyan-reports",
            json={
                "synagogueId": synagogue_id,
                "userId": "legacy-client",
                "prayerType": "MAARIV",
                "status": "NEEDS_MORE",
                "needsMore": 2,
            },
        )
        assert resp.status_code == 201
        assert resp.json()["report"]["reporterId"] == "legacy-client"

    def test_blank_number_fields_ignored(self, client, synagogue_id):
        resp = _post_report(client, synagogue_id, minyanCount="", needsMore="")
        assert resp.status_code == 201

    def test_needs_more_out_of_range(self, client, synagogue_id):
        resp = _post_report(client, synagogue_id, status="NEEDS_MORE", needsMore=11)
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "needsMore"

    def test_unknown_synagogue(self, client):
        resp = _post_report(client, "ghost")
        assert resp.status_code == 404

    def test_verify_flow(self, client, synagogue_id):
        report_id = _post_report(client, synagogue_id).json()["report"]["id"]

        first = client.put("/api/minyan-reports", params={"id": report_id}, json={"userId": "alice"})
        assert first.status_code == 200
        assert first.json()["report"]["isVerified"] is False

        repeat = client.put("/api/minyan-reports", params={"id": report_id}, json={"userId": "alice"})
        assert repeat.json()["report"]["verifiedBy"] == ["alice"]

        second = client.put("/api/minyan-reports", params={"id": report_id}, json={"userId": "bob"})
        body = second.json()["report"]
        assert sorted(body["verifiedBy"]) == ["alice", "bob"]
        assert body["isVerified"] is True

    def test_self_verification_rejected(self, client, synagogue_id):
        report_id = _post_report(client, synagogue_id).json()["report"]["id"]
        resp = client.put("/api/minyan-reports", params={"id": report_id}, json={"userId": "author"})
        assert resp.status_code == 400

    def test_verify_missing_user(self, client, synagogue_id):
        report_id = _post_report(client, synagogue_id).json()["report"]["id"]
        resp = client.put("/api/minyan-reports", params={"id": report_id}, json={})
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "userId"

    def test_verify_unknown_report(self, client):
        resp = client.put("/api/minyan-reports", params={"id": 424242}, json={"userId": "alice"})
        assert resp.status_code == 404

    @pytest.mark.parametrize("limit", [0, 101])
    def test_list_limit_bounds(self, client, limit):
        resp = client.get("/api/minyan-reports", params={"limit": limit})
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "limit"

    def test_oversized_default_limit_is_clamped(self, client, synagogue_id):
        from minyan.api.deps import get_config
        from minyan.api.main import app
        from minyan.config import MinyanConfig

        app.dependency_overrides[get_config] = lambda: MinyanConfig(report_list_limit=500)
        _post_report(client, synagogue_id)
        resp = client.get("/api/minyan-reports")
        assert resp.status_code == 200
        assert len(resp.json()["reports"]) == 1

    def test_list_unknown_status(self, client):
        resp = client.get("/api/minyan-reports", params={"status": "SNOOZING"})
        assert resp.status_code == 400
