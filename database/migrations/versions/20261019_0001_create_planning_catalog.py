"""create subjects and yearly lesson catalog

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("name", "class_id", name="uq_subjects_name_class"),
    )
    op.create_index("ix_subjects_name", "subjects", ["name"])
    op.create_index("ix_subjects_class_id", "subjects", ["class_id"])

    op.create_table(
        "yearly_lessons",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("lesson_number", sa.Integer(), nullable=False),
        sa.Column("school_year", sa.Integer(), nullable=False),
        sa.Column("topic_id", sa.String(length=36), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column("is_double_lesson", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("second_yearly_lesson_id", sa.String(length=36), nullable=True),
        sa.Column("is_allerlei", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("allerlei_subjects", sa.JSON(), nullable=False),
        sa.Column("is_exam", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_half_class", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_yearly_lessons_subject_week_class",
        "yearly_lessons",
        ["subject_id", "week_number", "class_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_yearly_lessons_subject_week_class", table_name="yearly_lessons")
    op.drop_table("yearly_lessons")
    op.drop_index("ix_subjects_class_id", table_name="subjects")
    op.drop_index("ix_subjects_name", table_name="subjects")
    op.drop_table("subjects")
