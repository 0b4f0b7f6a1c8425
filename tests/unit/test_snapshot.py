"""
Unit tests for request snapshots, exception details and route overrides.
"""

from starlette.requests import Request

from reqlog.exceptions import exception_info
from reqlog.overrides import STATE_KEY, RouteOverrides, install_overrides, route_overrides
from reqlog.paths import MISSING
from reqlog.snapshot import parse_request_body, request_snapshot


class TestParseRequestBody:
    """Test body parsing by content type."""

    def test_json(self):
        assert parse_request_body(b'{"a": [1, 2]}', "application/json") == {"a": [1, 2]}

    def test_json_null(self):
        assert parse_request_body(b"null", "application/json") is None

    def test_invalid_json(self):
        assert parse_request_body(b"{", "application/json") is MISSING

    def test_form(self):
        body = parse_request_body(b"user=bob&tag=a&tag=b", "application/x-www-form-urlencoded")
        assert body == {"user": "bob", "tag": ["a", "b"]}

    def test_unparsed_types(self):
        assert parse_request_body(b"raw", "text/plain") is MISSING
        assert parse_request_body(b"", "application/json") is MISSING


class TestRequestSnapshot:
    """Test the loggable view of a request."""

    def test_fields(self, make_scope):
        scope = make_scope(
            "/items/3",
            method="PUT",
            query_string=b"q=1",
            root_path="/api",
            raw_path=b"/api/items/3",
            path_params={"item_id": 3},
        )
        snapshot = request_snapshot(scope)

        assert snapshot["method"] == "PUT"
        assert snapshot["url"] == "/items/3?q=1"
        assert snapshot["original_url"] == "/api/items/3?q=1"
        assert snapshot["path"] == "/items/3"
        assert snapshot["http_version"] == "1.1"
        assert snapshot["headers"]["header-1"] == "value 1"
        assert snapshot["query"] == {"q": "1"}
        assert snapshot["params"] == {"item_id": 3}
        assert snapshot["client"] == "127.0.0.1"
        assert "body" not in snapshot

    def test_original_url_without_raw_path(self, make_scope):
        scope = make_scope("/items", root_path="/api")
        del scope["raw_path"]
        assert request_snapshot(scope)["original_url"] == "/api/items"

    def test_state_excludes_overrides(self, make_scope):
        scope = make_scope()
        install_overrides(scope)
        scope["state"]["user"] = "bob"

        assert request_snapshot(scope)["state"] == {"user": "bob"}


class TestRouteOverrides:
    """Test per-request override storage."""

    def test_install_and_lookup(self, make_scope):
        scope = make_scope()
        installed = install_overrides(scope)
        request = Request(scope)

        route_overrides(request).body_allow.append("username")

        assert installed.body_allow == ["username"]
        assert scope["state"][STATE_KEY] is installed

    def test_detached_instance_outside_middleware(self, make_scope):
        overrides = route_overrides(Request(make_scope()))
        assert overrides == RouteOverrides()


class TestExceptionInfo:
    """Test exception detail collection."""

    def test_keys_and_message(self):
        try:
            raise ValueError("bad value")
        except ValueError as exc:
            info = exception_info(exc)

        assert set(info) == {"error", "level", "message", "stack", "exception", "date", "process", "os", "trace"}
        assert info["message"].splitlines()[0] == "uncaughtException: bad value"
        assert info["stack"][-1] == "ValueError: bad value"
        assert info["trace"][-1]["function"] == "test_keys_and_message"
        assert info["process"]["pid"] > 0

    def test_empty_message(self):
        info = exception_info(RuntimeError())
        assert info["message"].startswith("uncaughtException: (no error message)")
        assert info["trace"] == []
