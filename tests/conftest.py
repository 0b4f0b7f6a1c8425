"""
Global test fixtures.

Provides a recording log backend and a small FastAPI app factory so
middleware tests can drive real requests through TestClient.
"""

import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.testclient import TestClient
from starlette.requests import Request

sys.path.insert(0, str(Path(__file__).parent.parent / "api"))

from reqlog.error_middleware import ErrorLoggerMiddleware  # noqa: E402
from reqlog.middleware import RequestLoggerMiddleware  # noqa: E402
from reqlog.overrides import route_overrides  # noqa: E402


class RecordingBackend:
    """Backend that keeps every entry it is handed."""

    def __init__(self):
        self.entries: list[dict[str, Any]] = []

    def log(self, level: str, message: str, metadata: dict[str, Any]) -> None:
        self.entries.append({"level": level, "message": message, "metadata": metadata})

    @property
    def invoked(self) -> bool:
        return bool(self.entries)

    @property
    def last(self) -> dict[str, Any]:
        assert self.entries, "backend was never invoked"
        return self.entries[-1]


def build_app() -> FastAPI:
    """Routes covering the response shapes the middleware has to handle."""
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return PlainTextResponse('{ "message": "Hi!  I\'m a chunk!" }')

    @app.get("/all-the-things")
    async def all_the_things():
        return PlainTextResponse("ok")

    @app.get("/json")
    async def json_route():
        return JSONResponse({"message": "hi"})

    @app.get("/invalid-json")
    async def invalid_json():
        return Response("}", media_type="application/json")

    @app.get("/empty")
    async def empty():
        return Response(status_code=204)

    @app.get("/status/{code}")
    async def status(code: int):
        return PlainTextResponse("status", status_code=code)

    @app.post("/echo")
    async def echo(request: Request):
        return await request.json()

    @app.post("/login")
    async def login(request: Request):
        overrides = route_overrides(request)
        overrides.body_allow.append("username")
        overrides.request_allow.append("params")
        overrides.response_allow.append("body")
        return {"ok": True}

    @app.get("/users/{user_id}")
    async def user(user_id: int, request: Request):
        request.state.user = {"username": "john@doe.com", "role": "operator"}
        return {"id": user_id}

    @app.get("/ignored")
    async def ignored():
        return {"ignored": True}

    @app.get("/boom")
    async def boom():
        raise RuntimeError("This is the Error")

    return app


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def logged_client(backend):
    """Factory: TestClient for an app wrapped in RequestLoggerMiddleware."""

    def _make(**options: Any) -> TestClient:
        app = build_app()
        options.setdefault("backend", backend)
        app.add_middleware(RequestLoggerMiddleware, **options)
        return TestClient(app)

    return _make


@pytest.fixture
def error_logged_client(backend):
    """Factory: TestClient for an app wrapped in ErrorLoggerMiddleware."""

    def _make(**options: Any) -> TestClient:
        app = build_app()
        options.setdefault("backend", backend)
        app.add_middleware(ErrorLoggerMiddleware, **options)
        return TestClient(app)

    return _make


@pytest.fixture
def fully_logged_client(backend):
    """Factory: TestClient for an app wrapped in both middlewares, as in main.py."""

    def _make(**options: Any) -> TestClient:
        app = build_app()
        app.add_middleware(ErrorLoggerMiddleware, backend=backend)
        app.add_middleware(RequestLoggerMiddleware, backend=backend, **options)
        return TestClient(app)

    return _make


@pytest.fixture
def make_scope():
    """Factory: minimal ASGI HTTP scope for driving middleware directly."""

    def _make(path: str = "/hello", method: str = "GET", **extra: Any) -> dict[str, Any]:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"header-1", b"value 1")],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }
        scope.update(extra)
        return scope

    return _make
