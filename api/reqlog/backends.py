"""
Logging backends and fire-and-forget dispatch.

A backend is anything with log(level, message, metadata). The request
path never waits on it: synchronous failures are reported and dropped,
and coroutine results are scheduled as background tasks.
"""

import asyncio
import inspect
import itertools
import logging
import queue
from collections.abc import Callable
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Protocol

from starlette.types import Message, Send

from models.log_entry import LogEntry
from reqlog.levels import to_logging_level

logger = logging.getLogger(__name__)

# Strong references to in-flight async dispatches until they finish
_pending_tasks: set[asyncio.Task] = set()

_queue_ids = itertools.count(1)


class LogBackend(Protocol):
    def log(self, level: str, message: str, metadata: dict[str, Any]) -> Any: ...


class LoggerBackend:
    """Sends entries through a stdlib logger; metadata rides on record.metadata."""

    def __init__(self, target: logging.Logger):
        self.logger = target

    def log(self, level: str, message: str, metadata: dict[str, Any]) -> None:
        self.logger.log(to_logging_level(level), message, extra={"metadata": metadata})

    def close(self) -> None:
        pass


class QueueBackend(LoggerBackend):
    """
    Logger backend whose handlers run on a background listener thread.

    Records are put on an in-memory queue by the request task; the
    handlers' I/O happens on the QueueListener thread.
    """

    def __init__(self, handlers: list[logging.Handler], name: str | None = None):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        target = logging.getLogger(name or f"reqlog.access.queue{next(_queue_ids)}")
        # Handler levels decide what is emitted.
        target.setLevel(1)
        target.propagate = False
        target.handlers = [QueueHandler(self._queue)]
        super().__init__(target)

        self.listener = QueueListener(self._queue, *handlers, respect_handler_level=True)
        self.listener.start()
        self._running = True

    def close(self) -> None:
        """Flush queued records and stop the listener thread."""
        if self._running:
            self.listener.stop()
            self._running = False


def build_backend(options: Any) -> LogBackend:
    """Pick the backend from validated options: backend, then logger, then handlers."""
    if options.backend is not None:
        return options.backend
    if options.logger is not None:
        return LoggerBackend(options.logger)
    return QueueBackend(list(options.handlers))


def _task_done(task: asyncio.Task) -> None:
    _pending_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Async log backend failed: %s", exc, exc_info=exc)


def dispatch(backend: LogBackend, entry: LogEntry) -> None:
    """
    Hand an entry to the backend without waiting on it.

    Never raises: a failing backend must not affect the HTTP response.
    """
    try:
        result = backend.log(entry.level, entry.message, entry.metadata)
    except Exception:
        logger.warning("Log backend %r rejected an entry", backend, exc_info=True)
        return

    if inspect.isawaitable(result):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.warning("No running event loop to dispatch async log entry")
            return
        task = asyncio.ensure_future(result, loop=loop)
        _pending_tasks.add(task)
        task.add_done_callback(_task_done)


def close_backend(backend: LogBackend) -> None:
    """Flush and stop a backend that holds resources (e.g. a queue listener)."""
    close = getattr(backend, "close", None)
    if callable(close):
        close()


def closing_lifespan_send(send: Send, on_shutdown: Callable[[], None]) -> Send:
    """Wrap a lifespan send so on_shutdown runs before shutdown is reported."""

    async def wrapped(message: Message) -> None:
        if message["type"] in ("lifespan.shutdown.complete", "lifespan.shutdown.failed"):
            try:
                on_shutdown()
            except Exception:
                logger.warning("Failed to close log backend at shutdown", exc_info=True)
        await send(message)

    return wrapped
