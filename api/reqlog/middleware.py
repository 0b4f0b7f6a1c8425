"""
Request logging middleware.

Pure ASGI middleware that logs one structured entry per HTTP request,
after the response has been fully sent. Request and response fields
are projected through allow/deny lists, the level is derived from the
status code or a callable, and the entry goes to a pluggable backend
without holding up the response. A request whose application raised is
logged as a 500 before the exception continues to the server.

Backends the middleware creates itself are closed on lifespan shutdown.

Usage:
    app.add_middleware(
        RequestLoggerMiddleware,
        options=LoggerOptions(logger=logging.getLogger("reqlog.access"), status_levels=True),
    )
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from models.log_entry import LogEntry
from models.options import LoggerOptions
from reqlog.backends import LogBackend, build_backend, close_backend, closing_lifespan_send, dispatch
from reqlog.capture import CapturedResponse, RequestBodyRecorder, ResponseCapture
from reqlog.levels import resolve_level
from reqlog.messages import build_message_formatter, clf_date
from reqlog.meta import assemble_meta
from reqlog.overrides import RouteOverrides, install_overrides
from reqlog.paths import MISSING
from reqlog.projection import effective_allow, project, project_body, union
from reqlog.snapshot import request_snapshot

logger = logging.getLogger(__name__)


class RequestLoggerMiddleware:
    """Logs every HTTP request with projected request/response metadata."""

    def __init__(self, app: ASGIApp, options: LoggerOptions | None = None, **kwargs: Any):
        self.app = app
        self.options = options if options is not None else LoggerOptions(**kwargs)
        self.backend: LogBackend = build_backend(self.options)
        self._owns_backend = self.options.backend is None
        self.formatter = build_message_formatter(
            self.options.msg,
            express_format=self.options.express_format,
            colorize=self.options.colorize,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, closing_lifespan_send(send, self.close))
            return

        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if self._is_ignored(scope):
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        started_at = datetime.now(timezone.utc)
        overrides = install_overrides(scope)
        recorder = RequestBodyRecorder(receive)

        capture = ResponseCapture(
            send,
            start,
            capture_body=lambda: "body" in self.options.response_allow or "body" in overrides.response_allow,
        )

        async def on_finalize(response: CapturedResponse) -> None:
            self.log_request(scope, recorder.body, response, overrides, started_at)

        capture.on_finalize(on_finalize)
        try:
            await self.app(scope, recorder.receive, capture.send)
        except Exception:
            # The server error handler answers outside this middleware.
            await capture.abort()
            raise

    def close(self) -> None:
        """Flush and stop the backend if this middleware created it."""
        if self._owns_backend:
            close_backend(self.backend)

    def _is_ignored(self, scope: Scope) -> bool:
        options = self.options
        if options.ignored_routes:
            path = scope.get("path", "")
            query = scope.get("query_string", b"").decode("latin-1")
            url = f"{path}?{query}" if query else path
            if path in options.ignored_routes or url in options.ignored_routes:
                return True
        if options.ignore_route is not None:
            return bool(options.ignore_route(Request(scope)))
        return False

    def build_entry(
        self,
        scope: Scope,
        body: bytes,
        response: CapturedResponse,
        overrides: RouteOverrides,
        started_at: datetime | None = None,
    ) -> LogEntry:
        """
        Project, resolve and assemble the entry for a finished request.

        Args:
            scope: ASGI scope of the request
            body: Raw request body as read by the application
            response: Response captured at finalization
            overrides: Route-level additions made by the handler
            started_at: Wall-clock request start, for the date placeholder

        Returns:
            The LogEntry to dispatch
        """
        options = self.options
        snapshot = request_snapshot(scope, body)
        request = Request(scope)

        request_part = None
        if options.request_field is not None:
            request_allow = effective_allow(
                union(options.request_allow, overrides.request_allow), options.request_deny
            )
            request_part = project(snapshot, request_allow, options.request_filter, options.header_denylist)
            request_part = self._attach_body(request_part, snapshot, request_allow, overrides)

        response_allow = union(options.response_allow, overrides.response_allow)
        response_part = None
        if options.response_field is not None:
            response_part = project(response, response_allow, options.response_filter, options.header_denylist)

        dynamic = options.dynamic_meta(request, response) if options.dynamic_meta is not None else None

        metadata = assemble_meta(
            request_part,
            response_part,
            response.response_time,
            request_field=options.request_field,
            response_field=options.response_field,
            include_response_time="response_time" not in response_allow,
            dynamic=dynamic,
            base=options.base_meta,
            meta_field=options.meta_field,
            include_meta=options.meta,
        )

        context = {
            "req": snapshot,
            "res": response,
            "err": None,
            "date": clf_date(started_at or datetime.now(timezone.utc)),
        }
        message = self.formatter.format(context, request=request)
        level = resolve_level(options.level, options.status_levels, request, response)

        return LogEntry(level=level, message=message, metadata=metadata)

    def _attach_body(
        self,
        request_part: dict[str, Any] | None,
        snapshot: dict[str, Any],
        request_allow: list[str],
        overrides: RouteOverrides,
    ) -> dict[str, Any] | None:
        options = self.options
        body_allow = union(options.body_allow, overrides.body_allow)
        body_deny = union(options.body_deny, overrides.body_deny)
        filtered_body = project_body(
            snapshot.get("body", MISSING),
            body_allow,
            body_deny,
            request_allows_body="body" in request_allow,
            field_filter=options.request_filter,
        )

        # A request_filter may drop an allow-listed body; only honoured when opted in.
        filtered_out = (
            options.allow_filter_out_allowlisted_request_body
            and "body" in request_allow
            and (request_part is None or "body" not in request_part)
        )
        if filtered_body is not MISSING and not filtered_out:
            # A body allow list still applies when nothing else was projected.
            request_part = {} if request_part is None else request_part
            request_part["body"] = filtered_body
        elif request_part is not None:
            request_part.pop("body", None)
        return request_part

    def log_request(
        self,
        scope: Scope,
        body: bytes,
        response: CapturedResponse,
        overrides: RouteOverrides,
        started_at: datetime | None = None,
    ) -> None:
        """Build the entry and dispatch it unless skip() says otherwise."""
        entry = self.build_entry(scope, body, response, overrides, started_at)

        if self.options.skip is not None and self.options.skip(Request(scope), response):
            logger.debug("Skipped access log entry for %s", scope.get("path"))
            return

        dispatch(self.backend, entry)
