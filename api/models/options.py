"""
Configuration models for the request and error logging middleware.

Options are validated once, when the model is built, so a bad setup
fails while the application is being wired rather than on first traffic.
Instances are frozen and shared read-only by every request.
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from reqlog.errors import LoggingConfigError
from reqlog.messages import DEFAULT_ERROR_MESSAGE, DEFAULT_MESSAGE
from reqlog.projection import (
    BODY_ALLOW,
    BODY_DENY,
    HEADER_DENYLIST,
    IGNORED_ROUTES,
    REQUEST_ALLOW,
    RESPONSE_ALLOW,
)


class StatusLevels(BaseModel):
    """Level names for each status-code tier."""

    model_config = ConfigDict(frozen=True)

    success: str = Field(default="info", description="Level for 100 <= status < 400")
    warn: str = Field(default="warn", description="Level for 400 <= status < 500")
    error: str = Field(default="error", description="Level for status >= 500")


class BaseLoggerOptions(BaseModel):
    """Options shared by the request logger and the error logger."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    # Backend target (exactly one is used: backend, then logger, then handlers)
    backend: Any = Field(default=None, description="Object exposing log(level, message, metadata)")
    logger: logging.Logger | None = Field(default=None, description="stdlib logger to log through")
    handlers: list[logging.Handler] | None = Field(
        default=None, description="Handlers fed through a background queue listener"
    )

    # Field selection
    request_allow: tuple[str, ...] = Field(default=REQUEST_ALLOW, description="Request paths to log")
    request_deny: tuple[str, ...] = Field(default=(), description="Request paths never logged")
    header_denylist: tuple[str, ...] = Field(default=HEADER_DENYLIST, description="Headers removed (any case)")
    request_filter: Callable[[Any, str], Any] | None = Field(
        default=None, description="Custom accessor(request, path); bypasses the header denylist"
    )

    # Metadata shape
    meta: bool = Field(default=True, description="Include request/response/dynamic metadata")
    meta_field: str | list[str] | None = Field(default="meta", description="Path to nest metadata under")
    request_field: str | None = Field(default="req", description="Key for the request section")
    dynamic_meta: Callable[..., Any] | None = Field(default=None, description="callable(request, response[, exc])")
    base_meta: dict[str, Any] = Field(default_factory=dict, description="Static fields merged last")

    skip: Callable[..., bool] | None = Field(default=None, description="Suppress dispatch when it returns true")

    @field_validator("meta_field", "request_field", mode="before")
    @classmethod
    def _null_string_means_none(cls, value: Any) -> Any:
        # Environment-driven configs spell "no field" as the string "null".
        return None if value == "null" else value

    @model_validator(mode="after")
    def _check_backend(self):
        if self.backend is not None:
            if not callable(getattr(self.backend, "log", None)):
                raise LoggingConfigError(
                    "backend must expose a callable log(level, message, metadata)",
                    suggestion="Pass a stdlib logger via logger= or handlers via handlers=",
                )
            return self
        if self.logger is not None:
            return self
        if self.handlers is None:
            raise LoggingConfigError(
                "A logging target is required by the request logging middleware",
                suggestion="Provide one of backend=, logger= or handlers=",
            )
        if len(self.handlers) == 0:
            raise LoggingConfigError(
                "handlers must not be empty",
                suggestion="Add at least one logging.Handler, e.g. logging.StreamHandler()",
            )
        return self


class LoggerOptions(BaseLoggerOptions):
    """Options for RequestLoggerMiddleware."""

    response_allow: tuple[str, ...] = Field(default=RESPONSE_ALLOW, description="Response paths to log")
    body_allow: tuple[str, ...] = Field(default=BODY_ALLOW, description="Request body paths to log")
    body_deny: tuple[str, ...] = Field(default=BODY_DENY, description="Request body keys never logged")
    response_filter: Callable[[Any, str], Any] | None = Field(
        default=None, description="Custom accessor(response, path)"
    )
    allow_filter_out_allowlisted_request_body: bool = Field(
        default=False, description="Respect a request_filter that drops an allow-listed body"
    )

    ignored_routes: tuple[str, ...] = Field(default=IGNORED_ROUTES, description="Paths never logged")
    ignore_route: Callable[..., bool] | None = Field(default=None, description="callable(request) -> bool")

    level: str | Callable[..., str] = Field(default="info", description="Level name or callable(request, response)")
    status_levels: bool | StatusLevels = Field(default=False, description="Derive the level from the status code")

    msg: str | Callable[..., str] = Field(default=DEFAULT_MESSAGE, description="Message template or callable")
    express_format: bool = Field(default=False, description="Use 'METHOD URL STATUS TIMEms'")
    colorize: bool = Field(default=False, description="ANSI-color the status code")

    response_field: str | None = Field(default="res", description="Key for the response section")

    @field_validator("response_field", mode="before")
    @classmethod
    def _response_null_string(cls, value: Any) -> Any:
        return None if value == "null" else value


class ErrorLoggerOptions(BaseLoggerOptions):
    """Options for ErrorLoggerMiddleware."""

    level: str | Callable[..., str] = Field(default="error", description="Level name or callable(request, None, exc)")
    msg: str | Callable[..., str] = Field(default=DEFAULT_ERROR_MESSAGE, description="Message template or callable")

    exception_to_meta: Callable[[BaseException], dict[str, Any]] | None = Field(
        default=None, description="Replaces the built-in exception detail collector"
    )
    blacklisted_meta_fields: tuple[str, ...] = Field(
        default=(), description="Exception detail keys dropped from the metadata"
    )
