import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from app.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_ensure_lesson_visibility_columns", lambda: None)
    monkeypatch.setattr(bootstrap, "_ensure_lesson_allerlei_ids_column", lambda: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility()


def test_bootstrap_adds_lesson_visibility_columns(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE lessons ("
                "id VARCHAR(36) PRIMARY KEY, day_of_week VARCHAR(10) NOT NULL, "
                "period_slot INTEGER NOT NULL, week_number INTEGER NOT NULL, yearly_lesson_id VARCHAR(36))"
            )
        )
    monkeypatch.setattr(bootstrap, "engine", engine)

    bootstrap.ensure_runtime_schema_compatibility()

    columns = {item["name"] for item in inspect(engine).get_columns("lessons")}
    assert {"is_hidden", "period_span", "allerlei_yearly_lesson_ids"} <= columns
    assert set(bootstrap.REQUIRED_COLUMNS) <= set(inspect(engine).get_table_names())
