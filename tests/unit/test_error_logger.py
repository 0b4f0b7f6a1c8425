"""
Integration tests for ErrorLoggerMiddleware.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from reqlog.backends import QueueBackend
from reqlog.error_middleware import ErrorLoggerMiddleware


def meta_of(backend):
    return backend.last["metadata"]["meta"]


class TestErrorEntry:
    """Test the entry produced for an unhandled exception."""

    def test_exception_is_logged_and_reraised(self, error_logged_client, backend):
        client = error_logged_client()

        with pytest.raises(RuntimeError, match="This is the Error"):
            client.get("/boom")

        assert len(backend.entries) == 1
        assert backend.last["level"] == "error"
        assert backend.last["message"] == "middlewareError"

        meta = meta_of(backend)
        assert meta["message"].startswith("uncaughtException: This is the Error")
        assert meta["exception"] is True
        assert meta["error"] == "RuntimeError('This is the Error')"
        assert meta["trace"][-1]["function"] == "boom"
        assert meta["req"]["method"] == "GET"
        assert meta["req"]["url"] == "/boom"

    def test_framework_still_answers_500(self, error_logged_client, backend):
        from fastapi.testclient import TestClient

        client = error_logged_client()
        safe = TestClient(client.app, raise_server_exceptions=False)

        assert safe.get("/boom").status_code == 500
        assert backend.invoked

    def test_successful_requests_not_logged(self, error_logged_client, backend):
        assert error_logged_client().get("/hello").status_code == 200
        assert not backend.invoked

    def test_request_filter_and_denylist(self, error_logged_client, backend):
        client = error_logged_client(request_allow=["method", "headers"], header_denylist=["cookie"])
        with pytest.raises(RuntimeError):
            client.get("/boom", headers={"cookie": "sid=1"})

        req = meta_of(backend)["req"]
        assert set(req) == {"method", "headers"}
        assert "cookie" not in req["headers"]


class TestErrorOptions:
    """Test error logger options."""

    def test_custom_level_message_and_meta(self, error_logged_client, backend):
        client = error_logged_client(
            level=lambda req, res, exc: "critical" if isinstance(exc, RuntimeError) else "error",
            msg="{{req.method}} {{req.url}} failed: {{err}}",
            exception_to_meta=lambda exc: {"kind": type(exc).__name__},
            meta_field=None,
        )
        with pytest.raises(RuntimeError):
            client.get("/boom")

        entry = backend.last
        assert entry["level"] == "critical"
        assert entry["message"] == "GET /boom failed: This is the Error"
        assert entry["metadata"]["kind"] == "RuntimeError"
        assert "trace" not in entry["metadata"]

    def test_blacklisted_meta_fields(self, error_logged_client, backend):
        client = error_logged_client(blacklisted_meta_fields=["process", "os", "trace"])
        with pytest.raises(RuntimeError):
            client.get("/boom")

        meta = meta_of(backend)
        assert "process" not in meta
        assert "os" not in meta
        assert "trace" not in meta
        assert "stack" in meta

    def test_dynamic_and_base_meta(self, error_logged_client, backend):
        client = error_logged_client(
            dynamic_meta=lambda req, res, exc: {"path": req.url.path, "has_response": res is not None},
            base_meta={"service": "api"},
        )
        with pytest.raises(RuntimeError):
            client.get("/boom")

        assert meta_of(backend)["path"] == "/boom"
        assert meta_of(backend)["has_response"] is False
        assert backend.last["metadata"]["service"] == "api"

    def test_skip(self, error_logged_client, backend):
        client = error_logged_client(skip=lambda req, res, exc: isinstance(exc, RuntimeError))
        with pytest.raises(RuntimeError):
            client.get("/boom")
        assert not backend.invoked

    def test_failing_backend_keeps_original_exception(self, error_logged_client):
        class Broken:
            def log(self, level, message, metadata):
                raise OSError("disk full")

        with pytest.raises(RuntimeError, match="This is the Error"):
            error_logged_client(backend=Broken()).get("/boom")

    def test_failing_collector_keeps_original_exception(self, error_logged_client, backend):
        def broken_collector(exc):
            raise KeyError("nope")

        with pytest.raises(RuntimeError, match="This is the Error"):
            error_logged_client(exception_to_meta=broken_collector).get("/boom")
        assert not backend.invoked


class TestBuildEntry:
    def test_build_entry_without_server(self, backend, make_scope):
        middleware = ErrorLoggerMiddleware(None, backend=backend, meta=False)
        try:
            raise ValueError("bad value")
        except ValueError as exc:
            entry = middleware.build_entry(exc, make_scope("/x"))

        assert entry.level == "error"
        assert "req" not in entry.metadata["meta"]
        assert entry.metadata["meta"]["message"].startswith("uncaughtException: bad value")


class TestShutdown:
    def test_owned_backend_closed_on_lifespan_shutdown(self, error_logged_client):
        with patch.object(QueueBackend, "close", autospec=True, side_effect=QueueBackend.close) as close:
            with error_logged_client(backend=None, handlers=[logging.NullHandler()]):
                pass
            close.assert_called_once()

    def test_close_ignores_supplied_backend(self, backend):
        backend.close = MagicMock()
        ErrorLoggerMiddleware(None, backend=backend).close()
        backend.close.assert_not_called()
