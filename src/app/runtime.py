"""Bootstrap logic for serving the scheduler over HTTP."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from src.api import create_app
from src.app.settings import AppSettings
from src.db import build_engine, build_session_factory, run_migrations_if_needed
from src.db.store import SqlAlchemyRecordStore
from src.srs import ReviewScheduler, SystemClock


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_scheduler(settings: AppSettings) -> ReviewScheduler:
    """Wire the scheduler and its collaborators from settings."""
    engine = build_engine(settings.database_url, echo=settings.sqlalchemy_echo)
    store = SqlAlchemyRecordStore(build_session_factory(engine))
    return ReviewScheduler(
        store,
        clock=SystemClock(),
        cram_window_hours=settings.cram_window_hours,
        due_page_size=settings.due_page_size,
        timeout_seconds=settings.request_timeout_seconds,
    )


def build_application(settings: AppSettings) -> FastAPI:
    return create_app(build_scheduler(settings), title=settings.app_name)


def run_server(settings: AppSettings) -> None:
    """Start the HTTP server using the provided settings."""
    _configure_logging(settings.log_level)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    application = build_application(settings)

    LOGGER.info(
        "Starting %s in %s mode on %s:%s.",
        settings.app_name,
        settings.app_env,
        settings.api_host,
        settings.api_port,
    )
    uvicorn.run(
        application,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
