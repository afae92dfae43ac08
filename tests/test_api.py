from starlette.testclient import TestClient

from spotshare.api.app import create_app
from spotshare.backend.memory import InMemoryBackend
from spotshare.config.settings import Settings, VisibilitySettings
from spotshare.domain.models import SubscriptionTier


def _client(**settings_kwargs) -> TestClient:
    app = create_app(Settings(**settings_kwargs), backend=InMemoryBackend())
    return TestClient(app)


def _sign_up(c: TestClient, email: str = "nikos@example.com") -> dict:
    resp = c.post("/api/auth/sign-up", json={"email": email, "password": "secret1"})
    assert resp.status_code == 200
    return resp.json()


def test_health():
    with _client() as c:
        assert c.get("/api/health").json() == {"status": "ok"}


def test_add_spot_requires_sign_in():
    with _client() as c:
        resp = c.post("/api/spots", json={"coordinate": {"latitude": 0, "longitude": 0}})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Unauthenticated"


def test_free_user_spot_is_held_back():
    with _client() as c:
        user = _sign_up(c)
        assert user["tier"] == "free"
        c.put("/api/preferences/location", json={"latitude": 0, "longitude": 0})

        resp = c.post("/api/spots", json={"id": "s1", "coordinate": {"latitude": 0, "longitude": 0.001}})
        assert resp.status_code == 201
        body = resp.json()
        assert body["visible_now"] is False
        assert body["available_at_ms"] is not None

        assert c.get("/api/spots").json() == {"markers": []}

        assert c.delete("/api/spots/s1").status_code == 204
        assert c.app.state.session.spots.pending_promotions == 0


def test_premium_user_spot_visible_with_directions():
    with _client() as c:
        _sign_up(c)
        c.app.state.session.subscription.set_tier(SubscriptionTier.PREMIUM)
        c.put("/api/preferences/location", json={"latitude": 0, "longitude": 0})

        resp = c.post(
            "/api/spots",
            json={"id": "s1", "coordinate": {"latitude": 0, "longitude": 0.001}, "is_accessible": True},
        )
        assert resp.json()["visible_now"] is True

        [marker] = c.get("/api/spots").json()["markers"]
        assert marker["spot_id"] == "s1"
        assert marker["title"] == "nikos's Spot"
        assert marker["distance_label"] == "0.1 km"
        assert marker["is_accessible"] is True

        opened = c.post("/api/spots/s1/open").json()
        assert opened["navigation_url"].startswith("https://www.google.com/maps/dir/0.0,0.0/")
        assert c.post("/api/spots/nope/open").status_code == 404


def test_zero_delay_window_releases_free_spots_immediately():
    with _client(visibility=VisibilitySettings(delay_window_ms=0)) as c:
        _sign_up(c)
        c.post("/api/spots", json={"id": "s1", "coordinate": {"latitude": 0, "longitude": 0}})
        markers = c.get("/api/spots").json()["markers"]
    assert [m["spot_id"] for m in markers] == ["s1"]


def test_distance_preference_is_clamped():
    with _client() as c:
        assert c.put("/api/preferences/distance", json={"km": 0}).json() == {"selected_distance_km": 0.1}
        assert c.put("/api/preferences/distance", json={"km": 5}).json() == {"selected_distance_km": 5}


def test_invalid_coordinate_rejected():
    with _client() as c:
        resp = c.put("/api/preferences/location", json={"latitude": 91, "longitude": 0})
    assert resp.status_code == 422


def test_share_location_flows_through_feed():
    with _client() as c:
        assert c.post("/api/locations", json={"latitude": 1, "longitude": 2}).status_code == 401

        _sign_up(c)
        assert c.post("/api/locations/subscription").status_code == 204
        resp = c.post("/api/locations", json={"latitude": 1, "longitude": 2})
        assert resp.status_code == 201
        shared = resp.json()

        locations = c.get("/api/locations").json()
        assert [loc["id"] for loc in locations] == [shared["id"]]

        snapshot = c.get("/api/map").json()
        assert snapshot["locations"][0]["owner_email"] == "nikos@example.com"

        assert c.delete("/api/locations/subscription").status_code == 204


def test_auth_errors_and_password_change():
    with _client() as c:
        _sign_up(c)
        assert c.post("/api/auth/sign-up", json={"email": "nikos@example.com", "password": "x"}).status_code == 400

        resp = c.post("/api/auth/password", json={"new_password": "abcdef", "confirm_password": "abcdeg"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Passwords do not match"
        assert c.post("/api/auth/password", json={"new_password": "abcdef", "confirm_password": "abcdef"}).status_code == 204

        assert c.post("/api/auth/sign-out").status_code == 204
        assert c.get("/api/auth/me").json()["id"] is None
        assert c.post("/api/auth/sign-in", json={"email": "nikos@example.com", "password": "abcdef"}).status_code == 200
