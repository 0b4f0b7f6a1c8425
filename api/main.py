"""
Request logging example API

A small FastAPI application wired with the request and error logging
middleware. Every request produces one structured access-log entry;
an unhandled exception also produces an error entry, is logged as a
500 access entry and still reaches the framework's 500 handler. Log
backends the middleware creates are flushed at shutdown.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import FastAPI
from starlette.requests import Request

from config import (
    build_error_logger_options,
    build_logger_options,
    configure_logging,
    is_development_mode,
    settings,
)
from reqlog.error_middleware import ErrorLoggerMiddleware
from reqlog.middleware import RequestLoggerMiddleware
from reqlog.overrides import route_overrides

# Configure logging
access_logger = configure_logging()
logger = logging.getLogger(__name__)

# Built eagerly so a bad configuration fails at import, not on first request
logger_options = build_logger_options(access_logger)
error_logger_options = build_error_logger_options(access_logger)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Request logging example API starting up...")
    yield
    logger.info("Request logging example API shutting down...")


app = FastAPI(
    title="Request Logging Example API",
    description="Demonstrates structured request/response logging middleware.",
    version="0.1.0",
    lifespan=lifespan,
)

# Added first so it runs inside the request logger, next to the routes
app.add_middleware(ErrorLoggerMiddleware, options=error_logger_options)
app.add_middleware(RequestLoggerMiddleware, options=logger_options)


@app.get("/", tags=["Health"])
async def root():
    """Basic status endpoint."""
    return {
        "message": "Request logging example API is running",
        "version": "0.1.0",
        "timestamp": datetime.now().isoformat(),
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe; ignored by the access log by default."""
    return {"status": "healthy"}


@app.get("/hello", tags=["Examples"])
async def hello(name: str = "world"):
    return {"message": f"hello {name}"}


@app.post("/echo", tags=["Examples"])
async def echo(request: Request):
    """
    Echo a JSON body back.

    Widens the access log for this route only: the "message" body field
    and the response body are logged.
    """
    overrides = route_overrides(request)
    overrides.body_allow.append("message")
    overrides.response_allow.append("body")
    return await request.json()


@app.get("/boom", tags=["Examples"])
async def boom():
    """Always fails, to exercise the error logger."""
    raise RuntimeError("boom")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=is_development_mode(),
        log_level="info",
    )
