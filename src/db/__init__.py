import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


LOGGER = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


class StudyTopicRow(Base):
    """A study topic owned by the surrounding application."""

    __tablename__ = "study_topics"
    __table_args__ = (Index("ix_study_topics_owner_user_id", "owner_user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    reviews: Mapped[list["PerformanceRow"]] = relationship(
        "PerformanceRow",
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ReminderRow(Base):
    """A scheduled review prompt awaiting delivery or completion."""

    __tablename__ = "reminders"
    __table_args__ = (
        Index("ix_reminders_owner_pending", "owner_user_id", "completed", "scheduled_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    topic_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_topics.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    body: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default="medium", server_default=text("'medium'")
    )
    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class PerformanceRow(Base):
    """Append-only log of graded reviews."""

    __tablename__ = "srs_performance"
    __table_args__ = (
        CheckConstraint("quality_rating BETWEEN 0 AND 5", name="ck_srs_performance_quality_rating"),
        CheckConstraint("ease_factor >= 1.3", name="ck_srs_performance_ease_factor_floor"),
        Index("ix_srs_performance_owner_topic_reviewed_at", "owner_user_id", "topic_id", "reviewed_at"),
        Index("ix_srs_performance_owner_reviewed_at", "owner_user_id", "reviewed_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    topic_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_topics.id", ondelete="CASCADE"), nullable=False
    )
    triggering_reminder_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("reminders.id", ondelete="SET NULL"), nullable=True
    )
    reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    quality_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    next_interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    repetition_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    topic: Mapped["StudyTopicRow"] = relationship("StudyTopicRow", back_populates="reviews")


def _expand_database_url(raw_url: str) -> str:
    """Expand environment variables inside the configured database URL."""
    return os.path.expandvars(raw_url)


def get_database_url() -> str:
    """Return the configured database URL or raise if missing."""
    raw_url = os.getenv("DATABASE_URL")
    if not raw_url:
        raise RuntimeError("DATABASE_URL environment variable is required to connect to the database.")
    return _expand_database_url(raw_url)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the given database."""
    return create_async_engine(_expand_database_url(database_url), echo=echo)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return an async session factory bound to the engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


def should_run_migrations() -> bool:
    """Determine whether migrations should be executed during startup."""
    flag = os.getenv("RUN_MIGRATIONS_ON_STARTUP", "true").lower()
    return flag in {"1", "true", "yes", "on"}


def _build_alembic_config() -> Config:
    project_root = Path(__file__).resolve().parents[2]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", get_database_url())
    return alembic_cfg


def run_migrations(target: str = "head") -> None:
    """Run Alembic migrations up to the specified target revision."""
    command.upgrade(_build_alembic_config(), target)


def run_migrations_if_needed(target: str = "head") -> None:
    """Run migrations when the startup flag is enabled."""
    if not should_run_migrations():
        LOGGER.info("Skipping migrations because RUN_MIGRATIONS_ON_STARTUP is disabled.")
        return

    LOGGER.info("Applying database migrations up to %s.", target)
    run_migrations(target)
    LOGGER.info("Database schema is up to date.")
