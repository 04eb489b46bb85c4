# backend/jobtracker/schemas.py
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import INDUSTRIES, JOB_STATUSES, GOAL_TYPES, utcnow, norm_keyword

# Äldre/handredigerade filer stavar "not applied" på olika sätt
_STATUS_ALIASES = {"not-applied": "not applied", "not_applied": "not applied"}

def _now_if_missing(v: Any) -> Any:
    # Saknad tidsstämpel blir "nu"
    if v is None or v == "":
        return utcnow()
    return v

class WireModel(BaseModel):
    """Bas för allt som går i exportfilen: camelCase på tråden, snake_case i Python."""

    class Config:
        populate_by_name = True
        alias_generator = to_camel

class TimestampedRecord(WireModel):
    id: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _default_now(cls, v: Any) -> Any:
        return _now_if_missing(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _strip_tz(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    def row(self) -> dict:
        """Kolumnvärden för en ny rad, utan det gamla id:t."""
        return self.model_dump(exclude={"id"})

class EmployerRecord(TimestampedRecord):
    name: str
    notes: Optional[str] = None
    industry: Optional[str] = None
    favorited: bool = False

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v

    @field_validator("industry", mode="before")
    @classmethod
    def _industry(cls, v: Any) -> Any:
        if v == "":
            return None
        if v is not None and v not in INDUSTRIES:
            raise ValueError(f"unknown industry {v!r}")
        return v

    @field_validator("favorited", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> Any:
        return False if v is None else v

class JobRecord(TimestampedRecord):
    employer_id: int
    title: str
    notes: Optional[str] = None
    link: Optional[str] = None
    reference_number: Optional[str] = None
    salary_estimate: Optional[str] = None
    interest_level: Optional[int] = Field(default=None, ge=1, le=10)
    archived: bool = False
    favorited: bool = False
    status: str = "not applied"

    @field_validator("archived", "favorited", mode="before")
    @classmethod
    def _flags(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> Any:
        if v is None or v == "":
            return "not applied"
        if isinstance(v, str):
            v = _STATUS_ALIASES.get(v.strip().lower(), v.strip().lower())
            if v not in JOB_STATUSES:
                raise ValueError(f"unknown status {v!r}")
        return v

class KeywordRecord(TimestampedRecord):
    job_id: int
    keyword: str

    @field_validator("keyword")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = norm_keyword(v)
        if not v:
            raise ValueError("keyword is required")
        return v

class ActivityRecord(TimestampedRecord):
    job_id: int
    type: Literal["status_change", "activity"] = "activity"
    category: str
    notes: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None

    @model_validator(mode="after")
    def _status_pair_only_on_status_change(self) -> "ActivityRecord":
        if self.type != "status_change":
            self.previous_status = None
            self.new_status = None
        return self

class GoalRecord(TimestampedRecord):
    type: str
    target_number: int
    frequency_days: int

    @field_validator("type")
    @classmethod
    def _known_type(cls, v: str) -> str:
        if v not in GOAL_TYPES:
            raise ValueError(f"unknown goal type {v!r}")
        return v

class UserKeywordRecord(TimestampedRecord):
    keyword: str

    @field_validator("keyword")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = norm_keyword(v)
        if not v:
            raise ValueError("keyword is required")
        return v

class SnapshotDocument(WireModel):
    version: str
    export_date: str
    employers: List[EmployerRecord] = Field(default_factory=list)
    jobs: List[JobRecord] = Field(default_factory=list)
    keywords: List[KeywordRecord] = Field(default_factory=list)
    activities: List[ActivityRecord] = Field(default_factory=list)
    goals: List[GoalRecord] = Field(default_factory=list)
    user_keywords: List[UserKeywordRecord] = Field(default_factory=list)

    def to_wire(self) -> dict:
        """JSON-färdig dict med samma nycklar som exportfilen."""
        return self.model_dump(mode="json", by_alias=True)

SkipReason = Literal["unresolved_reference", "invalid_record", "insert_failed"]

class SkippedRecord(WireModel):
    category: str
    reason: SkipReason
    original_id: Any = None

class ImportResult(WireModel):
    employers_imported: int = 0
    jobs_imported: int = 0
    keywords_imported: int = 0
    activities_imported: int = 0
    goals_imported: int = 0
    user_keywords_imported: int = 0
    skipped: int = 0
    skips: List[SkippedRecord] = Field(default_factory=list)

class ExportStats(WireModel):
    total_employers: int
    total_jobs: int
    total_keywords: int
    total_activities: int
    total_goals: int
    total_user_keywords: int
    last_modified: Optional[datetime] = None
