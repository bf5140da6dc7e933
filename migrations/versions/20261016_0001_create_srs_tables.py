"""Create study topic, reminder and review performance tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261016_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "study_topics",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_study_topics_owner_user_id", "study_topics", ("owner_user_id",))

    op.create_table(
        "reminders",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.String(length=64), nullable=False),
        sa.Column("topic_id", sa.String(length=36), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("body", sa.String(length=512), nullable=True),
        sa.Column("priority", sa.String(length=16), server_default=sa.text("'medium'"), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ("topic_id",),
            ("study_topics.id",),
            name="fk_reminders_topic_id_study_topics",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_reminders_owner_pending",
        "reminders",
        ("owner_user_id", "completed", "scheduled_at"),
    )

    op.create_table(
        "srs_performance",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.String(length=64), nullable=False),
        sa.Column("topic_id", sa.String(length=36), nullable=False),
        sa.Column("triggering_reminder_id", sa.String(length=36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("quality_rating", sa.Integer(), nullable=False),
        sa.Column("response_time_seconds", sa.Integer(), nullable=True),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("interval_days", sa.Integer(), nullable=False),
        sa.Column("next_interval_days", sa.Integer(), nullable=False),
        sa.Column("repetition_number", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quality_rating BETWEEN 0 AND 5", name="ck_srs_performance_quality_rating"),
        sa.CheckConstraint("ease_factor >= 1.3", name="ck_srs_performance_ease_factor_floor"),
        sa.ForeignKeyConstraint(
            ("topic_id",),
            ("study_topics.id",),
            name="fk_srs_performance_topic_id_study_topics",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ("triggering_reminder_id",),
            ("reminders.id",),
            name="fk_srs_performance_triggering_reminder_id_reminders",
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        "ix_srs_performance_owner_topic_reviewed_at",
        "srs_performance",
        ("owner_user_id", "topic_id", "reviewed_at"),
    )
    op.create_index(
        "ix_srs_performance_owner_reviewed_at",
        "srs_performance",
        ("owner_user_id", "reviewed_at"),
    )


def downgrade() -> None:
    op.drop_index("ix_srs_performance_owner_reviewed_at", table_name="srs_performance")
    op.drop_index("ix_srs_performance_owner_topic_reviewed_at", table_name="srs_performance")
    op.drop_table("srs_performance")
    op.drop_index("ix_reminders_owner_pending", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_study_topics_owner_user_id", table_name="study_topics")
    op.drop_table("study_topics")
