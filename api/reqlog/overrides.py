"""
Per-request field overrides.

Route handlers can widen what gets logged for their own requests
without touching the middleware configuration:

    @app.post("/login")
    async def login(request: Request):
        route_overrides(request).body_allow.append("username")
"""

from dataclasses import dataclass, field
from typing import Any

from starlette.requests import HTTPConnection

# Key under the ASGI scope "state" dict (i.e. request.state.reqlog_overrides)
STATE_KEY = "reqlog_overrides"


@dataclass
class RouteOverrides:
    """Extra allow/deny entries appended by route handlers for one request."""

    request_allow: list[str] = field(default_factory=list)
    response_allow: list[str] = field(default_factory=list)
    body_allow: list[str] = field(default_factory=list)
    body_deny: list[str] = field(default_factory=list)


def install_overrides(scope: dict[str, Any]) -> RouteOverrides:
    """Attach a fresh RouteOverrides to the request scope."""
    overrides = RouteOverrides()
    scope.setdefault("state", {})[STATE_KEY] = overrides
    return overrides


def route_overrides(request: HTTPConnection) -> RouteOverrides:
    """
    Return the overrides for the current request.

    Outside the logging middleware (or in tests) an empty, detached
    instance is returned so handlers never need to check.
    """
    overrides = request.scope.get("state", {}).get(STATE_KEY)
    if overrides is None:
        return RouteOverrides()
    return overrides
