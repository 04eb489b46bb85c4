from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExportError
from ..schemas import (
    ActivityRecord,
    EmployerRecord,
    ExportStats,
    GoalRecord,
    JobRecord,
    KeywordRecord,
    SnapshotDocument,
    UserKeywordRecord,
    WireModel,
)
from ..settings import settings
from ..store import EntityStore

log = logging.getLogger("jobtracker")


def _columns(obj: Any) -> Dict[str, Any]:
    # Raden som den ligger i tabellen, id och tidsstämplar inräknade
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def _records(model: Type[WireModel], rows: List[Any]) -> List[Any]:
    # Ingen validering här; raden exporteras som den ligger
    return [model.model_construct(**_columns(r)) for r in rows]


async def export_snapshot(store: EntityStore, version: Optional[str] = None) -> SnapshotDocument:
    """
    Läser hela databasen och bygger ett exportdokument. Inget filtreras och
    inget skrivs om; id:n och tidsstämplar följer med som de är.

    Ingen låsning: skrivs det samtidigt kan exporten vara något inaktuell.
    """
    log.info("Starting data export...")
    started = time.perf_counter()
    try:
        employers = await store.employers()
        jobs = await store.jobs()
        keywords = await store.keywords()
        activities = await store.activities()
        goals = await store.goals()
        user_keywords = await store.user_keywords()
    except SQLAlchemyError as e:
        log.exception(f"Export failed: {e}")
        raise ExportError("Failed to export data") from e

    doc = SnapshotDocument.model_construct(
        version=version or settings.snapshot_version,
        export_date=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        employers=_records(EmployerRecord, employers),
        jobs=_records(JobRecord, jobs),
        keywords=_records(KeywordRecord, keywords),
        activities=_records(ActivityRecord, activities),
        goals=_records(GoalRecord, goals),
        user_keywords=_records(UserKeywordRecord, user_keywords),
    )
    log.info(
        f"Exported: {len(employers)} employers, {len(jobs)} jobs, {len(keywords)} keywords, "
        f"{len(activities)} activities, {len(goals)} goals, {len(user_keywords)} user keywords "
        f"in {(time.perf_counter() - started) * 1000:.2f}ms"
    )
    return doc


async def get_export_stats(store: EntityStore) -> ExportStats:
    """Antal rader per kategori och senaste ändringstid över alla tabeller."""
    try:
        tables = {
            "employers": await store.employers(),
            "jobs": await store.jobs(),
            "keywords": await store.keywords(),
            "activities": await store.activities(),
            "goals": await store.goals(),
            "user_keywords": await store.user_keywords(),
        }
    except SQLAlchemyError as e:
        log.exception(f"Reading export stats failed: {e}")
        raise ExportError("Failed to get statistics") from e

    updated = [row.updated_at for rows in tables.values() for row in rows if row.updated_at]
    return ExportStats(
        total_employers=len(tables["employers"]),
        total_jobs=len(tables["jobs"]),
        total_keywords=len(tables["keywords"]),
        total_activities=len(tables["activities"]),
        total_goals=len(tables["goals"]),
        total_user_keywords=len(tables["user_keywords"]),
        last_modified=max(updated) if updated else None,
    )
