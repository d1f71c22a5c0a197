from __future__ import annotations

import logging

from sqlalchemy import inspect, text

from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "subjects": {"id", "name", "class_id"},
    "yearly_lessons": {
        "id",
        "subject_id",
        "class_id",
        "week_number",
        "lesson_number",
        "topic_id",
        "second_yearly_lesson_id",
    },
    "lessons": {
        "id",
        "day_of_week",
        "period_slot",
        "week_number",
        "yearly_lesson_id",
        "is_hidden",
        "period_span",
    },
    "allerlei_groups": {"id", "primary_yearly_lesson_id", "snapshots"},
    "schedule_settings": {"id", "schedule_type", "fixed_schedule_template"},
}


def _ensure_lesson_visibility_columns() -> None:
    # Databases created before Allerlei blocks existed lack the visibility flag and span.
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "lessons" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("lessons")}
        if "is_hidden" not in column_names:
            connection.execute(text("ALTER TABLE lessons ADD COLUMN is_hidden BOOLEAN NOT NULL DEFAULT FALSE"))
        if "period_span" not in column_names:
            connection.execute(text("ALTER TABLE lessons ADD COLUMN period_span INTEGER NOT NULL DEFAULT 1"))


def _ensure_lesson_allerlei_ids_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "lessons" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("lessons")}
        if "allerlei_yearly_lesson_ids" in column_names:
            return

        if connection.dialect.name == "postgresql":
            connection.execute(
                text(
                    "ALTER TABLE lessons "
                    "ADD COLUMN allerlei_yearly_lesson_ids JSONB NOT NULL DEFAULT '[]'::jsonb"
                )
            )
            return

        connection.execute(
            text(
                "ALTER TABLE lessons "
                "ADD COLUMN allerlei_yearly_lesson_ids JSON NOT NULL DEFAULT '[]'"
            )
        )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_lesson_visibility_columns()
        _ensure_lesson_allerlei_ids_column()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
