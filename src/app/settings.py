"""Configuration helpers for the Study SRS runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_CRAM_WINDOW_HOURS = 24
DEFAULT_DUE_PAGE_SIZE = 10
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    database_url: str
    sqlalchemy_echo: bool
    cram_window_hours: int
    due_page_size: int
    request_timeout_seconds: float
    api_host: str
    api_port: int

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Study SRS")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        database_url = os.getenv("DATABASE_URL")
        sqlalchemy_echo = os.getenv("SQLALCHEMY_ECHO", "false").lower() in {"1", "true", "yes"}

        if not database_url:
            raise RuntimeError("DATABASE_URL environment variable is required to connect to the database.")

        cram_window_hours = _int_env("SRS_CRAM_WINDOW_HOURS", DEFAULT_CRAM_WINDOW_HOURS)
        if cram_window_hours < 1:
            raise RuntimeError("SRS_CRAM_WINDOW_HOURS must be a positive integer.")

        due_page_size = _int_env("SRS_DUE_PAGE_SIZE", DEFAULT_DUE_PAGE_SIZE)
        if due_page_size < 1 or due_page_size > 100:
            raise RuntimeError("SRS_DUE_PAGE_SIZE must be between 1 and 100.")

        try:
            request_timeout_seconds = float(
                os.getenv("SRS_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
            )
        except ValueError as exc:
            raise RuntimeError("SRS_REQUEST_TIMEOUT_SECONDS must be a number.") from exc
        if request_timeout_seconds <= 0:
            raise RuntimeError("SRS_REQUEST_TIMEOUT_SECONDS must be positive.")

        api_host = os.getenv("API_HOST", "0.0.0.0")
        api_port = _int_env("API_PORT", 8000)

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            database_url=database_url,
            sqlalchemy_echo=sqlalchemy_echo,
            cram_window_hours=cram_window_hours,
            due_page_size=due_page_size,
            request_timeout_seconds=request_timeout_seconds,
            api_host=api_host,
            api_port=api_port,
        )
