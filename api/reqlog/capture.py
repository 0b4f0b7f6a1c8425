"""
Response interception for ASGI applications.

Wraps the ASGI send callable so the final body message reaches the
client untouched before any logging work runs. Also tees the request
body as the application reads it.
"""

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from starlette.types import Message, Receive, Send

from reqlog.paths import MISSING

logger = logging.getLogger(__name__)

FinalizeCallback = Callable[["CapturedResponse"], Awaitable[None] | None]


@dataclass
class CapturedResponse:
    """What the client was sent, as seen at finalization."""

    status_code: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    response_time: float | None = None
    body: Any = MISSING

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


def decode_headers(raw_headers: list[tuple[bytes, bytes]] | None) -> dict[str, str]:
    """Decode ASGI header pairs into a dict keyed by lower-case name."""
    headers: dict[str, str] = {}
    for raw_name, raw_value in raw_headers or []:
        name = raw_name.decode("latin-1").lower()
        value = raw_value.decode("latin-1")
        headers[name] = f"{headers[name]}, {value}" if name in headers else value
    return headers


def decode_body(raw: bytes, content_type: str = "") -> Any:
    """
    Turn a buffered body into something loggable.

    JSON content types are parsed; anything that fails to parse is
    returned as the raw string. An empty body is MISSING. Never raises.
    """
    if not raw:
        return MISSING
    text = raw.decode("utf-8", errors="replace")
    if "json" in content_type.lower():
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


class ResponseCapture:
    """
    Decorates an ASGI send callable with a finalization hook.

    The real send always runs first; callbacks registered with
    on_finalize run after the final body message has gone out.
    """

    def __init__(self, send: Send, start: float, capture_body: Callable[[], bool] | bool = False):
        self._send = send
        self._start = start
        self._capture_body = capture_body
        self._chunks: list[bytes] = []
        self._callbacks: list[FinalizeCallback] = []
        self.response = CapturedResponse()
        self.started = False
        self.finalized = False

    def on_finalize(self, callback: FinalizeCallback) -> None:
        self._callbacks.append(callback)

    def _wants_body(self) -> bool:
        if callable(self._capture_body):
            return bool(self._capture_body())
        return bool(self._capture_body)

    async def send(self, message: Message) -> None:
        message_type = message["type"]

        if message_type == "http.response.start":
            self.started = True
            self.response.status_code = message["status"]
            self.response.headers = decode_headers(message.get("headers"))
        elif message_type == "http.response.body":
            body = message.get("body", b"")
            if body and self._wants_body():
                self._chunks.append(body)
            if not message.get("more_body", False) and not self.finalized:
                await self._finalize(message)
                return

        await self._send(message)

    async def _finalize(self, message: Message) -> None:
        self.finalized = True
        self.response.response_time = round((time.perf_counter() - self._start) * 1000, 3)

        # The client gets its bytes before any logging work happens.
        await self._send(message)

        if self._wants_body():
            self.response.body = decode_body(b"".join(self._chunks), self.response.content_type)
        self._chunks = []

        await self._run_callbacks()

    async def abort(self) -> None:
        """
        Finalize a response the application never finished.

        Used when the application raised: the server answers 500 outside
        this wrapper, so that is the status recorded unless a different
        one was already sent.
        """
        if self.finalized:
            return
        self.finalized = True
        self.response.response_time = round((time.perf_counter() - self._start) * 1000, 3)
        if not self.started:
            self.response.status_code = 500
        self._chunks = []
        await self._run_callbacks()

    async def _run_callbacks(self) -> None:
        for callback in self._callbacks:
            try:
                result = callback(self.response)
                if result is not None:
                    await result
            except Exception:
                logger.warning("Response finalize callback failed", exc_info=True)


class RequestBodyRecorder:
    """Tees http.request chunks read through an ASGI receive callable."""

    def __init__(self, receive: Receive):
        self._receive = receive
        self._chunks: list[bytes] = []

    async def receive(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            body = message.get("body", b"")
            if body:
                self._chunks.append(body)
        return message

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)
