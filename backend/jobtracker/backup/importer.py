from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import crud
from ..errors import ImportFailedError
from ..schemas import (
    ActivityRecord,
    EmployerRecord,
    GoalRecord,
    ImportResult,
    JobRecord,
    KeywordRecord,
    SkippedRecord,
    SnapshotDocument,
    UserKeywordRecord,
)
from ..store import EntityStore
from .validation import validate_snapshot

log = logging.getLogger("jobtracker")

# Visas för användaren innan en import startas
DESTRUCTIVE_IMPORT_WARNING = (
    "Warning: importing will permanently delete all existing data before the "
    "backup is loaded. This cannot be undone. Make sure you have a backup!"
)
NOTHING_CHANGED_MESSAGE = "Import failed: the file was rejected and nothing was changed."
DATA_MAY_BE_INCOMPLETE_MESSAGE = (
    "Import failed part way through: data may be incomplete. Restore from a backup."
)


class SnapshotImporter:
    """
    Läser in ett exportdokument i en tom databas.

    Ordningen är fast: arbetsgivare -> jobb -> nyckelord/aktiviteter -> mål ->
    användarens nyckelord. Varje steg översätter gamla id:n via tabellerna som
    byggdes i steget innan. Tabellerna lever bara under ett anrop till run().

    En trasig rad hoppas över och räknas i `skipped`; den stoppar inte resten.
    Det finns ingen rollback: när databasen väl är tömd går det bara att
    återställa genom att importera en äldre export.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    async def run(self, data: Union[Mapping[str, Any], SnapshotDocument]) -> ImportResult:
        if isinstance(data, SnapshotDocument):
            data = data.to_wire()
        doc = validate_snapshot(data)

        result = ImportResult()
        async with self.store.lock:
            try:
                log.info("Import: clearing existing data...")
                await self.store.clear_all()

                employer_ids = await self._import_employers(doc["employers"], result)
                job_ids = await self._import_jobs(doc["jobs"], employer_ids, result)
                await self._import_keywords(doc["keywords"], job_ids, result)
                await self._import_activities(doc["activities"], job_ids, result)
                await self._import_goals(doc["goals"], result)
                await self._import_user_keywords(doc["userKeywords"], result)
            except SQLAlchemyError as e:
                log.exception(f"Import aborted by storage error: {e}")
                raise ImportFailedError(DATA_MAY_BE_INCOMPLETE_MESSAGE) from e

        log.info(
            f"Imported {result.employers_imported} employers, {result.jobs_imported} jobs, "
            f"{result.keywords_imported} keywords, {result.activities_imported} activities, "
            f"{result.goals_imported} goals, {result.user_keywords_imported} user keywords "
            f"({result.skipped} skipped)"
        )
        return result

    # --- Hjälpare ---------------------------------------------------------------

    def _skip(self, result: ImportResult, category: str, reason: str, raw: Any, detail: str) -> None:
        original_id = raw.get("id") if isinstance(raw, Mapping) else None
        result.skips.append(SkippedRecord(category=category, reason=reason, original_id=original_id))
        result.skipped += 1
        log.warning(f"Skipping {category} record {original_id!r}: {detail}")

    def _parse(self, model: Type[BaseModel], raw: Any, result: ImportResult, category: str) -> Optional[Any]:
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            self._skip(result, category, "invalid_record", raw, f"{e.error_count()} validation error(s)")
            return None

    async def _insert(self, table: str, values: Dict[str, Any], raw: Any, result: ImportResult) -> Optional[int]:
        # Bara constraint-fel räknas som radfel; allt annat från lagringen är fatalt
        try:
            return await self.store.insert(table, values)
        except IntegrityError as e:
            self._skip(result, table, "insert_failed", raw, str(e.orig))
            return None

    # --- Steg ---------------------------------------------------------------------

    async def _import_employers(self, records: List[Any], result: ImportResult) -> Dict[int, int]:
        employer_ids: Dict[int, int] = {}
        for raw in records:
            rec = self._parse(EmployerRecord, raw, result, "employers")
            if rec is None:
                continue
            # Tidsstämplarna följer med oförändrade
            new_id = await self._insert("employers", rec.row(), raw, result)
            if new_id is None:
                continue
            if rec.id is not None:
                employer_ids[rec.id] = new_id
            result.employers_imported += 1
        return employer_ids

    async def _import_jobs(
        self, records: List[Any], employer_ids: Dict[int, int], result: ImportResult
    ) -> Dict[int, int]:
        job_ids: Dict[int, int] = {}
        for raw in records:
            rec = self._parse(JobRecord, raw, result, "jobs")
            if rec is None:
                continue
            new_employer_id = employer_ids.get(rec.employer_id)
            if new_employer_id is None:
                self._skip(result, "jobs", "unresolved_reference", raw, f"employer {rec.employer_id} not found")
                continue
            values = rec.row()
            values["employer_id"] = new_employer_id
            new_id = await self._insert("jobs", values, raw, result)
            if new_id is None:
                continue
            if rec.id is not None:
                job_ids[rec.id] = new_id
            result.jobs_imported += 1
        return job_ids

    async def _import_keywords(self, records: List[Any], job_ids: Dict[int, int], result: ImportResult) -> None:
        for raw in records:
            rec = self._parse(KeywordRecord, raw, result, "keywords")
            if rec is None:
                continue
            new_job_id = job_ids.get(rec.job_id)
            if new_job_id is None:
                self._skip(result, "keywords", "unresolved_reference", raw, f"job {rec.job_id} not found")
                continue
            values = rec.row()
            values["job_id"] = new_job_id
            # Dubbletter (job_id, keyword) löses av lagret, som ger tillbaka befintligt id
            if await self._insert("keywords", values, raw, result) is not None:
                result.keywords_imported += 1

    async def _import_activities(self, records: List[Any], job_ids: Dict[int, int], result: ImportResult) -> None:
        for raw in records:
            rec = self._parse(ActivityRecord, raw, result, "activities")
            if rec is None:
                continue
            new_job_id = job_ids.get(rec.job_id)
            if new_job_id is None:
                self._skip(result, "activities", "unresolved_reference", raw, f"job {rec.job_id} not found")
                continue
            values = rec.row()
            values["job_id"] = new_job_id
            if await self._insert("activities", values, raw, result) is not None:
                result.activities_imported += 1

    async def _import_goals(self, records: List[Any], result: ImportResult) -> None:
        # Mål har inga FK:er; senaste posten per typ vinner
        async with self.store.session() as session:
            for raw in records:
                rec = self._parse(GoalRecord, raw, result, "goals")
                if rec is None:
                    continue
                try:
                    await crud.upsert_goal(session, rec.type, rec.target_number, rec.frequency_days)
                except ValueError as e:
                    self._skip(result, "goals", "invalid_record", raw, str(e))
                    continue
                except IntegrityError as e:
                    self._skip(result, "goals", "insert_failed", raw, str(e.orig))
                    continue
                result.goals_imported += 1

    async def _import_user_keywords(self, records: List[Any], result: ImportResult) -> None:
        async with self.store.session() as session:
            for raw in records:
                rec = self._parse(UserKeywordRecord, raw, result, "userKeywords")
                if rec is None:
                    continue
                try:
                    await crud.create_user_keyword(session, rec.keyword)
                except ValueError as e:
                    self._skip(result, "userKeywords", "invalid_record", raw, str(e))
                    continue
                except IntegrityError as e:
                    self._skip(result, "userKeywords", "insert_failed", raw, str(e.orig))
                    continue
                result.user_keywords_imported += 1


async def import_snapshot(store: EntityStore, data: Union[Mapping[str, Any], SnapshotDocument]) -> ImportResult:
    """Tömmer databasen och läser in `data`. Se DESTRUCTIVE_IMPORT_WARNING."""
    return await SnapshotImporter(store).run(data)
