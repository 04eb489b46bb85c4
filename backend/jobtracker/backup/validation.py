from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from ..errors import InvalidSnapshotError

# Samlingarna i exportformatet och formatrevisionen där var och en tillkom.
# Versionsfältet har stått kvar på "1.0" medan samlingarna blev fler, så det
# är revisionen här som avgör vad en äldre fil kan sakna: allt som tillkom
# efter FIRST_REVISION läses som en tom lista om det saknas.
# Nya samlingar läggs till här, inte som egna specialfall nedan.
FIRST_REVISION = 1
COLLECTIONS: Tuple[Tuple[str, int], ...] = (
    ("employers", FIRST_REVISION),
    ("jobs", FIRST_REVISION),
    ("keywords", FIRST_REVISION),
    ("activities", 2),
    ("goals", 2),
    ("userKeywords", 2),
)


def is_optional(since: int) -> bool:
    return since > FIRST_REVISION


def _has_text(record: Mapping[str, Any], key: str) -> bool:
    value = record.get(key)
    return isinstance(value, str) and bool(value.strip())


def validate_snapshot(data: Any) -> Dict[str, Any]:
    """
    Strukturkontroll av en exportfil innan något rörs i databasen.

    Kastar InvalidSnapshotError för det första felet som hittas. Returnerar en
    normaliserad dict där alla sex samlingar finns som listor.
    """
    if not isinstance(data, Mapping):
        raise InvalidSnapshotError("Invalid data format")

    if not data.get("version") or not data.get("exportDate"):
        raise InvalidSnapshotError("Missing required metadata")

    doc: Dict[str, Any] = {"version": data["version"], "exportDate": data["exportDate"]}
    for name, since in COLLECTIONS:
        value = data.get(name)
        if value is None and is_optional(since):
            value = []
        if not isinstance(value, list):
            raise InvalidSnapshotError(f"Invalid data structure: '{name}' must be a list")
        doc[name] = value

    employers: List[Any] = doc["employers"]
    for employer in employers:
        if not isinstance(employer, Mapping) or not _has_text(employer, "name"):
            raise InvalidSnapshotError("Invalid employer data")

    for job in doc["jobs"]:
        if not isinstance(job, Mapping) or not job.get("title") or not job.get("employerId"):
            raise InvalidSnapshotError("Invalid job data")

    for keyword in doc["keywords"]:
        if not isinstance(keyword, Mapping) or not keyword.get("keyword") or not keyword.get("jobId"):
            raise InvalidSnapshotError("Invalid keyword data")

    return doc
