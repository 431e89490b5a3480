"""
Tests for the request pipeline as seen by clients.

Covers stage order, the response header contract, CORS, rate limiting,
static files, body parsing, sanitization and cookies.
"""

import json

from app.main import build_stages
from app.infrastructure.rate_limit_store import LimitsRateLimitStore

from tests.conftest import (
    ALLOWED_ORIGIN,
    FOREIGN_ORIGIN,
    ISOLATION_HEADERS,
    make_settings,
)


def _assert_isolation_headers(response) -> None:
    for name, value in ISOLATION_HEADERS.items():
        assert response.headers[name] == value


class TestStageOrder:
    """Tests for the fixed stage order."""

    def test_stages_run_in_required_order(self) -> None:
        settings = make_settings()
        store = LimitsRateLimitStore(max_requests=10, window_minutes=1)
        names = [stage.name for stage in build_stages(settings, store)]
        assert names == [
            "security-headers",
            "cors",
            "access-log",
            "rate-limit",
            "isolation-headers",
            "static",
            "json-body",
            "sanitize",
            "cookies",
        ]

    def test_every_stage_is_documented(self) -> None:
        store = LimitsRateLimitStore(max_requests=10, window_minutes=1)
        for stage in build_stages(make_settings(), store):
            assert type(stage).__doc__, stage.name


class TestHelloEndpoint:
    """Tests for the local hello router."""

    def test_hello_returns_200(self, client) -> None:
        response = client.get("/api/hello")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert "version" in body


class TestResponseHeaders:
    """Isolation and security headers must be present on every response."""

    def test_success_response(self, client) -> None:
        response = client.get("/api/hello")
        _assert_isolation_headers(response)
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"

    def test_not_found_response(self, client) -> None:
        _assert_isolation_headers(client.get("/api/nonexistent"))

    def test_server_error_response(self, client) -> None:
        _assert_isolation_headers(client.get("/api/users/boom"))

    def test_preflight_response(self, client) -> None:
        _assert_isolation_headers(
            client.options("/api/users", headers={"Origin": ALLOWED_ORIGIN})
        )

    def test_static_response(self, client) -> None:
        _assert_isolation_headers(client.get("/styles.css"))

    def test_rate_limited_response(self, build_client) -> None:
        client = build_client(max_requests=1)
        client.get("/api/hello")
        response = client.get("/api/hello")
        assert response.status_code == 429
        _assert_isolation_headers(response)

    def test_rejected_body_response(self, client) -> None:
        response = client.post(
            "/api/users",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        _assert_isolation_headers(response)


class TestCors:
    """Tests for the cross-origin policy."""

    def test_preflight_from_allowed_origin(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type, Authorization",
            },
        )
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"
        assert response.headers["access-control-allow-methods"] == (
            "GET, POST, PUT, DELETE, PATCH"
        )
        assert "X-Frontend-Host" in response.headers["access-control-allow-headers"]

    def test_preflight_short_circuits_unknown_paths(self, client) -> None:
        response = client.options("/anything/at/all", headers={"Origin": ALLOWED_ORIGIN})
        assert response.status_code == 204

    def test_preflight_from_foreign_origin(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={"Origin": FOREIGN_ORIGIN, "Access-Control-Request-Method": "GET"},
        )
        assert "access-control-allow-origin" not in response.headers
        assert "access-control-allow-credentials" not in response.headers

    def test_preflight_with_disallowed_method(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "TRACE"},
        )
        assert "access-control-allow-origin" not in response.headers

    def test_preflight_with_disallowed_header(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "X-Secret-Token",
            },
        )
        assert "access-control-allow-origin" not in response.headers

    def test_simple_request_from_allowed_origin(self, client) -> None:
        response = client.get("/api/hello", headers={"Origin": ALLOWED_ORIGIN})
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert "Origin" in response.headers["vary"]

    def test_simple_request_from_foreign_origin(self, client) -> None:
        response = client.get("/api/hello", headers={"Origin": FOREIGN_ORIGIN})
        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers

    def test_rejected_preflight_still_ends_with_204(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={"Origin": FOREIGN_ORIGIN, "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 204
        assert response.content == b""
        assert "access-control-allow-credentials" not in response.headers

    def test_preflight_advertises_max_age(self, client) -> None:
        response = client.options(
            "/api/users",
            headers={"Origin": ALLOWED_ORIGIN, "Access-Control-Request-Method": "GET"},
        )
        assert response.headers["access-control-max-age"] == "600"

    def test_simple_request_from_foreign_origin_gets_no_credentials(self, client) -> None:
        response = client.get("/api/hello", headers={"Origin": FOREIGN_ORIGIN})
        assert "access-control-allow-credentials" not in response.headers
        assert "Origin" in response.headers["vary"]

    def test_error_response_keeps_cors_headers(self, client) -> None:
        response = client.get("/api/nonexistent", headers={"Origin": ALLOWED_ORIGIN})
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN


class TestRateLimiting:
    """Tests for the per-client request limit under /api."""

    def test_1001st_request_is_limited(self, client) -> None:
        for _ in range(1000):
            assert client.get("/api/hello").status_code == 200
        response = client.get("/api/hello")
        assert response.status_code == 429
        assert response.json() == {
            "status": "fail",
            "message": "Too many requests from this IP, please try again in an hour!",
        }

    def test_limit_headers(self, build_client) -> None:
        client = build_client(max_requests=3)
        response = client.get("/api/hello")
        assert response.headers["x-ratelimit-limit"] == "3"
        assert response.headers["x-ratelimit-remaining"] == "2"
        assert int(response.headers["x-ratelimit-reset"]) > 0

    def test_limited_response_has_retry_after(self, build_client) -> None:
        client = build_client(max_requests=1)
        client.get("/api/hello")
        response = client.get("/api/hello")
        assert int(response.headers["retry-after"]) >= 0
        assert response.headers["x-ratelimit-remaining"] == "0"

    def test_limited_request_never_reaches_router(self, build_client, users_router) -> None:
        client = build_client(max_requests=1)
        client.get("/api/hello")
        response = client.post("/api/users", json={"name": "ada"})
        assert response.status_code == 429
        assert users_router.bodies == []

    def test_paths_outside_api_are_not_counted(self, build_client) -> None:
        client = build_client(max_requests=1)
        for _ in range(3):
            assert client.get("/styles.css").status_code == 200
        assert client.get("/api/hello").status_code == 200

    def test_preflight_is_not_counted(self, build_client) -> None:
        client = build_client(max_requests=1)
        for _ in range(3):
            client.options("/api/users", headers={"Origin": ALLOWED_ORIGIN})
        assert client.get("/api/hello").status_code == 200

    def test_custom_message(self, build_client) -> None:
        client = build_client(max_requests=1, rate_limit_message="Slow down")
        client.get("/api/hello")
        assert client.get("/api/hello").json()["message"] == "Slow down"


class TestStaticFiles:
    """Tests for serving assets from the public directory."""

    def test_serves_file(self, client) -> None:
        response = client.get("/styles.css")
        assert response.status_code == 200
        assert response.text == "body { margin: 0; }"
        assert response.headers["content-type"].startswith("text/css")

    def test_root_serves_index(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert "Skill Mingle" in response.text

    def test_directory_without_index_falls_through(self, client) -> None:
        assert client.get("/docs/").status_code == 404

    def test_post_is_not_served(self, client) -> None:
        assert client.post("/styles.css").status_code == 404

    def test_missing_public_dir_falls_through(self, build_client, tmp_path) -> None:
        client = build_client(public_dir=str(tmp_path / "nowhere"))
        response = client.get("/styles.css")
        assert response.status_code == 404
        assert response.json()["message"] == "Can't find /styles.css on this server"


class TestJsonBody:
    """Tests for the JSON body ceiling and parse errors."""

    def test_body_reaches_router(self, client, users_router) -> None:
        response = client.post("/api/users", json={"name": "ada"})
        assert response.status_code == 200
        assert response.json() == {
            "received": {"name": "ada"},
            "state_body": {"name": "ada"},
        }

    def test_body_over_10kb_is_rejected(self, client, users_router) -> None:
        response = client.post("/api/users", json={"bio": "x" * (10 * 1024)})
        assert response.status_code == 413
        assert response.json()["status"] == "fail"
        assert users_router.bodies == []

    def test_chunked_body_over_limit_is_rejected(self, client, users_router) -> None:
        def chunks():
            for _ in range(11):
                yield b" " * 1024

        response = client.post(
            "/api/users",
            content=chunks(),
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 413
        assert users_router.bodies == []

    def test_body_at_limit_is_accepted(self, build_client, users_router) -> None:
        client = build_client(body_limit_bytes=64)
        payload = b'{"name": "' + b"a" * 50 + b'"}'
        payload += b" " * (64 - len(payload))
        response = client.post(
            "/api/users", content=payload, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200

    def test_malformed_json_is_rejected(self, client, users_router) -> None:
        response = client.post(
            "/api/users",
            content=b'{"name": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {
            "status": "fail",
            "message": "Invalid JSON in request body",
        }
        assert users_router.bodies == []

    def test_untyped_body_over_10kb_is_rejected(self, client, users_router) -> None:
        payload = json.dumps({"name": "a" * (50 * 1024)}).encode()
        response = client.post("/api/users", content=payload)
        assert response.status_code == 413
        assert users_router.bodies == []

    def test_untyped_body_is_parsed(self, client) -> None:
        response = client.post("/api/users/state-body", content=b'{"name": "ada"}')
        assert response.json() == {"state_body": {"name": "ada"}}

    def test_untyped_malformed_body_is_rejected(self, client) -> None:
        response = client.post("/api/users/state-body", content=b"name=ada")
        assert response.status_code == 400

    def test_non_json_body_passes_through(self, client) -> None:
        response = client.post(
            "/api/users/state-body",
            content=b"hello",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 200
        assert response.json() == {"state_body": {}}

    def test_body_less_request_has_empty_state_body(self, client) -> None:
        response = client.post("/api/users/state-body")
        assert response.status_code == 200
        assert response.json() == {"state_body": {}}

    def test_scalar_json_is_rejected(self, client) -> None:
        response = client.post(
            "/api/users", content=b'"ada"', headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestSanitization:
    """Tests for removal of query-operator keys."""

    def test_operator_keys_removed_from_body(self, client, users_router) -> None:
        response = client.post(
            "/api/users",
            json={
                "name": "ada",
                "$where": "sleep(1000)",
                "password": {"$gt": ""},
                "tags": [{"$ne": 1, "label": "ok"}],
                "profile.admin": True,
            },
        )
        assert response.status_code == 200
        assert users_router.bodies == [
            {"name": "ada", "password": {}, "tags": [{"label": "ok"}]}
        ]

    def test_operator_keys_removed_from_query(self, client) -> None:
        response = client.get(
            "/api/users/query",
            params={"name": "ada", "$where": "1", "age[$gt]": "3"},
        )
        assert response.json() == {"name": "ada"}

    def test_operator_keys_removed_from_untyped_body(self, client, users_router) -> None:
        payload = json.dumps({"name": "ada", "$where": "sleep(1000)"}).encode()
        response = client.post("/api/users", content=payload)
        assert response.status_code == 200
        assert users_router.bodies == [{"name": "ada"}]

    def test_dots_allowed_when_configured(self, build_client, users_router) -> None:
        client = build_client(sanitize_allow_dots=True)
        client.post("/api/users", json={"profile.admin": True, "$set": 1})
        assert users_router.bodies == [{"profile.admin": True}]


class TestCookies:
    """Tests for the parsed cookie mapping."""

    def test_cookies_are_parsed(self, client) -> None:
        response = client.get(
            "/api/users/cookies",
            headers={"Cookie": 'token=abc123; prefs=j:{"theme":"dark"}'},
        )
        assert response.json() == {"token": "abc123", "prefs": {"theme": "dark"}}

    def test_no_cookie_header(self, client) -> None:
        assert client.get("/api/users/cookies").json() == {}
