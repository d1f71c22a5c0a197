from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.db.bootstrap import REQUIRED_COLUMNS
from app.services.planning_state import PlanningStore, get_planning_store
from app.services.schedule_settings import load_schedule_settings

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


def _schema_report(db: Session) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(db.connection())
    table_names = set(inspector.get_table_names())
    missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name in missing_tables:
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


@router.get("/health/ready")
def health_ready(
    db: Session = Depends(get_db),
    store: PlanningStore = Depends(get_planning_store),
) -> JSONResponse:
    """Database and schema state plus whether the weekly grid can be derived.

    A fixed schedule without template slots leaves the service up but unable
    to place lessons; that is reported under ``schedule`` and does not fail
    readiness.
    """
    db_ok = True
    db_error: str | None = None
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    schedule: dict | None = None

    try:
        db.execute(text("SELECT 1"))
        missing_tables, missing_columns = _schema_report(db)
        if "schedule_settings" not in missing_tables:
            settings = load_schedule_settings(db)
            template_slots = sum(len(slots) for slots in settings.fixed_schedule_template.days.values())
            schedule = {
                "schedule_type": settings.schedule_type.value,
                "lessons_per_day": settings.lessons_per_day,
                "template_days": sorted(settings.fixed_schedule_template.days),
                "template_slots": template_slots,
                "can_sync": settings.is_fixed and template_slots > 0,
            }
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = str(exc)

    schema_ok = not missing_tables and not missing_columns
    ready = db_ok and schema_ok

    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": db_ok,
            "schema_ok": schema_ok,
            "missing_tables": missing_tables,
            "missing_columns": missing_columns,
            "error": db_error,
        },
        "schedule": schedule,
        "planning_mirror": store.summary(),
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
