"""
Error logging middleware.

Logs unhandled exceptions raised by the wrapped application together
with the projected request, then re-raises the very same exception so
the framework's own error handling still runs.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from models.log_entry import LogEntry
from models.options import ErrorLoggerOptions
from reqlog.backends import LogBackend, build_backend, close_backend, closing_lifespan_send, dispatch
from reqlog.capture import RequestBodyRecorder
from reqlog.exceptions import exception_info
from reqlog.levels import DEFAULT_ERROR_LEVEL, resolve_level
from reqlog.messages import build_message_formatter, clf_date
from reqlog.meta import assemble_error_meta
from reqlog.projection import effective_allow, project
from reqlog.snapshot import request_snapshot

logger = logging.getLogger(__name__)


class ErrorLoggerMiddleware:
    """Logs exceptions escaping the application; never swallows them."""

    def __init__(self, app: ASGIApp, options: ErrorLoggerOptions | None = None, **kwargs: Any):
        self.app = app
        self.options = options if options is not None else ErrorLoggerOptions(**kwargs)
        self.backend: LogBackend = build_backend(self.options)
        self._owns_backend = self.options.backend is None
        self.formatter = build_message_formatter(self.options.msg)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, closing_lifespan_send(send, self.close))
            return

        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started_at = datetime.now(timezone.utc)
        recorder = RequestBodyRecorder(receive)
        try:
            await self.app(scope, recorder.receive, send)
        except Exception as exc:
            try:
                self.log_error(exc, scope, recorder.body, started_at)
            except Exception:
                logger.warning("Failed to log unhandled %s", type(exc).__name__, exc_info=True)
            raise

    def close(self) -> None:
        """Flush and stop the backend if this middleware created it."""
        if self._owns_backend:
            close_backend(self.backend)

    def build_entry(
        self,
        exc: Exception,
        scope: Scope,
        body: bytes = b"",
        started_at: datetime | None = None,
    ) -> LogEntry:
        """
        Assemble the entry for an unhandled exception.

        There is no response on this path, so callables receive None in
        the response position and no response section is projected.
        """
        options = self.options
        snapshot = request_snapshot(scope, body)
        request = Request(scope)

        collect = options.exception_to_meta or exception_info
        exception_meta = collect(exc) or {}

        request_part = None
        if options.request_field is not None:
            request_allow = effective_allow(options.request_allow, options.request_deny)
            request_part = project(snapshot, request_allow, options.request_filter, options.header_denylist)

        dynamic = options.dynamic_meta(request, None, exc) if options.dynamic_meta is not None else None

        metadata = assemble_error_meta(
            exception_meta,
            request_part,
            blacklisted_fields=options.blacklisted_meta_fields,
            request_field=options.request_field,
            dynamic=dynamic,
            base=options.base_meta,
            meta_field=options.meta_field,
            include_meta=options.meta,
        )

        context = {
            "req": snapshot,
            "res": None,
            "err": exc,
            "date": clf_date(started_at or datetime.now(timezone.utc)),
        }
        message = self.formatter.format(context, request=request, exc=exc)
        level = resolve_level(options.level, False, request, None, exc, default=DEFAULT_ERROR_LEVEL)

        return LogEntry(level=level, message=message, metadata=metadata)

    def log_error(
        self,
        exc: Exception,
        scope: Scope,
        body: bytes = b"",
        started_at: datetime | None = None,
    ) -> None:
        entry = self.build_entry(exc, scope, body, started_at)

        if self.options.skip is not None and self.options.skip(Request(scope), None, exc):
            return

        dispatch(self.backend, entry)
