"""
Configuration utilities and settings management.

Loads access-log settings from environment variables and turns them
into middleware options.
"""

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings

from models.options import ErrorLoggerOptions, LoggerOptions
from reqlog.formatters import StructuredFormatter

ACCESS_LOGGER_NAME = "reqlog.access"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_debug: bool = Field(default=True, alias="API_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(
        default=False, alias="LOG_JSON", description="Emit access-log records as JSON lines with their metadata"
    )

    # Access log shape
    access_log_express_format: bool = Field(
        default=False, alias="ACCESS_LOG_EXPRESS_FORMAT", description="Use 'METHOD URL STATUS TIMEms' messages"
    )
    access_log_colorize: bool = Field(
        default=False, alias="ACCESS_LOG_COLORIZE", description="ANSI-color status codes in messages"
    )
    access_log_status_levels: bool = Field(
        default=True, alias="ACCESS_LOG_STATUS_LEVELS", description="Derive the level from the status code"
    )
    access_log_ignored_routes: str = Field(
        default="/health",
        alias="ACCESS_LOG_IGNORED_ROUTES",
        description="Comma-separated paths that are never logged",
    )
    access_log_header_denylist: str = Field(
        default="authorization,cookie",
        alias="ACCESS_LOG_HEADER_DENYLIST",
        description="Comma-separated request headers removed from logs",
    )
    access_log_meta_field: str = Field(
        default="meta",
        alias="ACCESS_LOG_META_FIELD",
        description="Dotted path to nest metadata under ('null' for top level)",
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file


# Global settings instance
settings = Settings()


def split_csv(value: str) -> list[str]:
    """Split a comma-separated setting, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


def configure_logging(app_settings: Settings = settings) -> logging.Logger:
    """Configure root logging and return the access logger."""
    logging.basicConfig(
        level=app_settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    if app_settings.log_json:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        access_logger.handlers = [handler]
        access_logger.propagate = False
    return access_logger


def build_logger_options(access_logger: logging.Logger, app_settings: Settings = settings) -> LoggerOptions:
    """Translate settings into RequestLoggerMiddleware options."""
    return LoggerOptions(
        logger=access_logger,
        express_format=app_settings.access_log_express_format,
        colorize=app_settings.access_log_colorize,
        status_levels=app_settings.access_log_status_levels,
        ignored_routes=split_csv(app_settings.access_log_ignored_routes),
        header_denylist=split_csv(app_settings.access_log_header_denylist),
        meta_field=app_settings.access_log_meta_field,
    )


def build_error_logger_options(
    access_logger: logging.Logger, app_settings: Settings = settings
) -> ErrorLoggerOptions:
    """Translate settings into ErrorLoggerMiddleware options."""
    return ErrorLoggerOptions(
        logger=access_logger,
        header_denylist=split_csv(app_settings.access_log_header_denylist),
        meta_field=app_settings.access_log_meta_field,
    )


def is_development_mode() -> bool:
    """Check if we're running in development mode."""
    return settings.api_debug
