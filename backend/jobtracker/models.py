# backend/jobtracker/models.py
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint
from .database import Base

JOB_STATUSES = ("not applied", "applied", "interview", "offer", "rejected", "withdrawn")

INDUSTRIES = (
    "Agriculture", "Biotech", "Consulting", "Cybersecurity", "Defense",
    "E-Commerce", "Education", "Energy", "Finance", "Gaming", "Government",
    "Healthcare", "Manufacturing", "Nonprofit", "Other", "Real Estate", "SaaS",
    "Telecommunications", "Transportation", "Travel",
)

ACTIVITY_TYPES = ("status_change", "activity")

# Förslag i UI:t, kategorin är fri text i databasen
ACTIVITY_CATEGORIES = (
    "research", "networking", "phone_call", "email", "meeting",
    "interview_prep", "follow_up", "other",
)

GOAL_TYPES = (
    "applications_created", "applications_applied", "interviews",
    "offers", "productive_activities",
)

def utcnow() -> datetime:
    # Naiv UTC, samma form som SQLite lämnar tillbaka
    return datetime.now(timezone.utc).replace(tzinfo=None)

def norm_keyword(s: str) -> str:
    return s.strip().lower()

class Employer(Base):
    __tablename__ = "employers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    industry: Mapped[str | None] = mapped_column(String(50), nullable=True)
    favorited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    jobs: Mapped[list["Job"]] = relationship(back_populates="employer", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_employers_name", "name"),
        {"sqlite_autoincrement": True},
    )

class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employer_id: Mapped[int] = mapped_column(ForeignKey("employers.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(120), nullable=True)
    salary_estimate: Mapped[str | None] = mapped_column(String(120), nullable=True)
    interest_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    favorited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="not applied")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    employer: Mapped[Employer] = relationship(back_populates="jobs")
    keywords: Mapped[list["Keyword"]] = relationship(back_populates="job", cascade="all, delete-orphan", passive_deletes=True)
    activities: Mapped[list["Activity"]] = relationship(back_populates="job", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('not applied', 'applied', 'interview', 'offer', 'rejected', 'withdrawn')",
            name="ck_jobs_status",
        ),
        CheckConstraint(
            "interest_level IS NULL OR (interest_level >= 1 AND interest_level <= 10)",
            name="ck_jobs_interest_level",
        ),
        Index("ix_jobs_employer_id", "employer_id"),
        Index("ix_jobs_employer_title", "employer_id", "title"),
        Index("ix_jobs_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

class Keyword(Base):
    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    keyword: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    job: Mapped[Job] = relationship(back_populates="keywords")

    __table_args__ = (
        UniqueConstraint("job_id", "keyword", name="uq_keyword_job_keyword"),
        Index("ix_keywords_keyword", "keyword"),
        {"sqlite_autoincrement": True},
    )

class UserKeyword(Base):
    __tablename__ = "user_keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="activity")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    job: Mapped[Job] = relationship(back_populates="activities")

    __table_args__ = (
        CheckConstraint("type IN ('status_change', 'activity')", name="ck_activities_type"),
        Index("ix_activities_job_id", "job_id"),
        Index("ix_activities_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    target_number: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency_days: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        {"sqlite_autoincrement": True},
    )
