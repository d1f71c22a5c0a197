"""create weekly lessons, allerlei groups and schedule settings

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    schedule_type = sa.Enum("fixed", "flexible", name="schedule_type")

    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=True),
        sa.Column("class_id", sa.String(length=36), nullable=True),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("period_slot", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("school_year", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("yearly_lesson_id", sa.String(length=36), nullable=True),
        sa.Column("second_yearly_lesson_id", sa.String(length=36), nullable=True),
        sa.Column("topic_id", sa.String(length=36), nullable=True),
        sa.Column("is_double_lesson", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("period_span", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_allerlei", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("allerlei_subjects", sa.JSON(), nullable=False),
        sa.Column("allerlei_yearly_lesson_ids", sa.JSON(), nullable=False),
        sa.Column("is_exam", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_half_class", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_lessons_week_number", "lessons", ["week_number"])
    op.create_index("ix_lessons_yearly_lesson_id", "lessons", ["yearly_lesson_id"])
    op.create_index("ix_lessons_week_day_period", "lessons", ["week_number", "day_of_week", "period_slot"])

    op.create_table(
        "allerlei_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("primary_yearly_lesson_id", sa.String(length=36), nullable=False),
        sa.Column("added_yearly_lesson_ids", sa.JSON(), nullable=False),
        sa.Column("snapshots", sa.JSON(), nullable=False),
        sa.Column("allerlei_subjects", sa.JSON(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("period_slot", sa.Integer(), nullable=False),
        sa.Column("lesson_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "schedule_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("schedule_type", schedule_type, nullable=False, server_default="flexible"),
        sa.Column("fixed_schedule_template", sa.JSON(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False, server_default="08:00"),
        sa.Column("lessons_per_day", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("lesson_duration", sa.Integer(), nullable=False, server_default="45"),
        sa.Column("short_break", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("morning_break_after", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("morning_break_duration", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("lunch_break_after", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("lunch_break_duration", sa.Integer(), nullable=False, server_default="40"),
        sa.Column("afternoon_break_after", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("afternoon_break_duration", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("schedule_settings")
    op.drop_table("allerlei_groups")
    op.drop_index("ix_lessons_week_day_period", table_name="lessons")
    op.drop_index("ix_lessons_yearly_lesson_id", table_name="lessons")
    op.drop_index("ix_lessons_week_number", table_name="lessons")
    op.drop_table("lessons")
    sa.Enum(name="schedule_type").drop(op.get_bind(), checkfirst=True)
