from __future__ import annotations
from typing import Optional, Any, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
import logging

from .errors import NotFoundError
from .models import (
    Employer, Job, Keyword, UserKeyword, Activity, Goal,
    JOB_STATUSES, INDUSTRIES, ACTIVITY_TYPES, GOAL_TYPES,
    utcnow, norm_keyword,
)
from .store import find_by_natural_key

log = logging.getLogger("jobtracker")

# --- Hjälpfunktioner --------------------------------------------------------

async def _commit(session: AsyncSession, what: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.error(f"DB commit failed for {what}: {e}")
        raise

def _check_text(value: Any, message: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)

def _check_industry(industry: Optional[str]) -> None:
    if industry is not None and industry not in INDUSTRIES:
        raise ValueError(f"Unknown industry: {industry!r}")

def _check_status(status: str) -> None:
    if status not in JOB_STATUSES:
        raise ValueError(f"Unknown job status: {status!r}")

def _check_interest(level: Optional[int]) -> None:
    if level is not None and not (1 <= level <= 10):
        raise ValueError("Interest level must be between 1 and 10")

def _check_goal(goal_type: str, target_number: int, frequency_days: int) -> None:
    if goal_type not in GOAL_TYPES:
        raise ValueError(f"Unknown goal type: {goal_type!r}")
    if target_number < 0:
        raise ValueError("Goal target cannot be negative")
    if frequency_days < 1:
        raise ValueError("Goal frequency must be at least one day")

def _apply(obj: Any, changes: dict, allowed: set[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    for key, value in changes.items():
        setattr(obj, key, value)
    # updated_at uppdateras alltid vid ändring
    obj.updated_at = utcnow()

# --- Employers ---------------------------------------------------------------

EMPLOYER_FIELDS = {"name", "notes", "industry", "favorited"}

async def create_employer(
    session: AsyncSession,
    name: str,
    notes: Optional[str] = None,
    industry: Optional[str] = None,
    favorited: bool = False,
) -> int:
    _check_text(name, "Employer name is required")
    _check_industry(industry)
    now = utcnow()
    obj = Employer(name=name, notes=notes, industry=industry, favorited=favorited, created_at=now, updated_at=now)
    session.add(obj)
    await _commit(session, f"employer '{name}'")
    return obj.id

async def list_employers(session: AsyncSession) -> List[Employer]:
    res = await session.execute(select(Employer).order_by(Employer.name))
    return list(res.scalars())

async def get_employer(session: AsyncSession, employer_id: int) -> Optional[Employer]:
    return await session.get(Employer, employer_id)

async def update_employer(session: AsyncSession, employer_id: int, **changes: Any) -> Optional[Employer]:
    employer = await session.get(Employer, employer_id)
    if employer is None:
        return None
    if "name" in changes:
        _check_text(changes["name"], "Employer name is required")
    if "industry" in changes:
        _check_industry(changes["industry"])
    _apply(employer, changes, EMPLOYER_FIELDS)
    await _commit(session, f"employer {employer_id}")
    return employer

async def delete_employer(session: AsyncSession, employer_id: int) -> bool:
    """Tar bort arbetsgivaren och alla dess jobb, nyckelord och aktiviteter."""
    job_ids = select(Job.id).where(Job.employer_id == employer_id)
    await session.execute(
        delete(Keyword).where(Keyword.job_id.in_(job_ids)).execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Activity).where(Activity.job_id.in_(job_ids)).execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Job).where(Job.employer_id == employer_id).execution_options(synchronize_session=False)
    )
    res = await session.execute(
        delete(Employer).where(Employer.id == employer_id).execution_options(synchronize_session=False)
    )
    await _commit(session, f"delete of employer {employer_id}")
    return res.rowcount > 0

async def find_employer_by_name(session: AsyncSession, name: str) -> Optional[Employer]:
    res = await session.execute(
        select(Employer).where(func.lower(Employer.name) == name.strip().lower()).order_by(Employer.id).limit(1)
    )
    return res.scalar_one_or_none()

async def toggle_employer_favorite(session: AsyncSession, employer_id: int) -> Employer:
    employer = await session.get(Employer, employer_id)
    if employer is None:
        raise NotFoundError("Employer not found")
    _apply(employer, {"favorited": not employer.favorited}, EMPLOYER_FIELDS)
    await _commit(session, f"employer {employer_id}")
    return employer

async def delete_all_employers(session: AsyncSession) -> None:
    await session.execute(delete(Employer))
    await _commit(session, "delete of all employers")

# --- Jobs --------------------------------------------------------------------

JOB_FIELDS = {
    "employer_id", "title", "notes", "link", "reference_number", "salary_estimate",
    "interest_level", "archived", "favorited", "status",
}

async def create_job(
    session: AsyncSession,
    employer_id: int,
    title: str,
    notes: Optional[str] = None,
    link: Optional[str] = None,
    reference_number: Optional[str] = None,
    salary_estimate: Optional[str] = None,
    interest_level: Optional[int] = None,
    favorited: bool = False,
) -> int:
    _check_text(title, "Job title is required")
    _check_interest(interest_level)
    if await session.get(Employer, employer_id) is None:
        raise NotFoundError("Employer not found")
    now = utcnow()
    obj = Job(
        employer_id=employer_id,
        title=title,
        notes=notes,
        link=link,
        reference_number=reference_number,
        salary_estimate=salary_estimate,
        interest_level=interest_level,
        archived=False,
        favorited=favorited,
        status="not applied",
        created_at=now,
        updated_at=now,
    )
    session.add(obj)
    await _commit(session, f"job '{title}'")
    return obj.id

async def list_jobs(session: AsyncSession) -> List[Job]:
    """Ej arkiverade jobb, nyaste först."""
    res = await session.execute(
        select(Job).where(Job.archived.is_(False)).order_by(Job.created_at.desc(), Job.id.desc())
    )
    return list(res.scalars())

async def list_all_jobs(session: AsyncSession) -> List[Job]:
    res = await session.execute(select(Job).order_by(Job.created_at.desc(), Job.id.desc()))
    return list(res.scalars())

async def list_archived_jobs(session: AsyncSession) -> List[Job]:
    res = await session.execute(
        select(Job).where(Job.archived.is_(True)).order_by(Job.created_at.desc(), Job.id.desc())
    )
    return list(res.scalars())

async def list_jobs_by_employer(session: AsyncSession, employer_id: int) -> List[Job]:
    res = await session.execute(select(Job).where(Job.employer_id == employer_id).order_by(Job.id))
    return list(res.scalars())

async def get_job(session: AsyncSession, job_id: int) -> Optional[Job]:
    return await session.get(Job, job_id)

async def update_job(session: AsyncSession, job_id: int, **changes: Any) -> Optional[Job]:
    job = await session.get(Job, job_id)
    if job is None:
        return None
    if "title" in changes:
        _check_text(changes["title"], "Job title is required")
    if "status" in changes:
        _check_status(changes["status"])
    if "interest_level" in changes:
        _check_interest(changes["interest_level"])
    if "employer_id" in changes and await session.get(Employer, changes["employer_id"]) is None:
        raise NotFoundError("Employer not found")
    _apply(job, changes, JOB_FIELDS)
    await _commit(session, f"job {job_id}")
    return job

async def toggle_job_archive(session: AsyncSession, job_id: int) -> Job:
    job = await session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    _apply(job, {"archived": not job.archived}, JOB_FIELDS)
    await _commit(session, f"job {job_id}")
    return job

async def toggle_job_favorite(session: AsyncSession, job_id: int) -> Job:
    job = await session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    _apply(job, {"favorited": not job.favorited}, JOB_FIELDS)
    await _commit(session, f"job {job_id}")
    return job

async def delete_job(session: AsyncSession, job_id: int) -> bool:
    await session.execute(
        delete(Keyword).where(Keyword.job_id == job_id).execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Activity).where(Activity.job_id == job_id).execution_options(synchronize_session=False)
    )
    res = await session.execute(
        delete(Job).where(Job.id == job_id).execution_options(synchronize_session=False)
    )
    await _commit(session, f"delete of job {job_id}")
    return res.rowcount > 0

async def list_jobs_with_employers(session: AsyncSession) -> List[Tuple[Job, Employer]]:
    res = await session.execute(
        select(Job, Employer)
        .join(Employer, Job.employer_id == Employer.id)
        .where(Job.archived.is_(False))
        .order_by(Job.created_at.desc(), Job.id.desc())
    )
    return [(job, employer) for job, employer in res.all()]

async def find_job_by_title_and_employer(session: AsyncSession, title: str, employer_id: int) -> Optional[Job]:
    res = await session.execute(
        select(Job).where(Job.employer_id == employer_id, Job.title == title).order_by(Job.id).limit(1)
    )
    return res.scalar_one_or_none()

async def update_job_status(session: AsyncSession, job_id: int, status: str) -> Optional[Job]:
    return await update_job(session, job_id, status=status)

async def change_job_status(session: AsyncSession, job_id: int, status: str, notes: Optional[str] = None) -> Job:
    """
    Byter status och loggar bytet som en status_change-aktivitet,
    båda i samma commit.
    """
    _check_status(status)
    job = await session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    if job.status == status:
        raise ValueError("Please select a different status")
    previous = job.status
    _apply(job, {"status": status}, JOB_FIELDS)
    now = utcnow()
    session.add(Activity(
        job_id=job_id,
        type="status_change",
        category=status,
        notes=(notes or "").strip() or None,
        previous_status=previous,
        new_status=status,
        created_at=now,
        updated_at=now,
    ))
    await _commit(session, f"status change of job {job_id}")
    return job

async def delete_all_jobs(session: AsyncSession) -> None:
    await session.execute(delete(Job))
    await _commit(session, "delete of all jobs")

# --- Keywords ----------------------------------------------------------------

async def create_keyword(session: AsyncSession, job_id: int, keyword: str) -> int:
    """Idempotent: samma (job_id, keyword) ger tillbaka befintligt id."""
    text = norm_keyword(keyword or "")
    if not text:
        raise ValueError("Keyword is required")
    existing = await find_by_natural_key(session, "keywords", {"job_id": job_id, "keyword": text})
    if existing is not None:
        return existing.id
    now = utcnow()
    obj = Keyword(job_id=job_id, keyword=text, created_at=now, updated_at=now)
    session.add(obj)
    await _commit(session, f"keyword '{text}'")
    return obj.id

async def list_keywords_by_job(session: AsyncSession, job_id: int) -> List[Keyword]:
    res = await session.execute(select(Keyword).where(Keyword.job_id == job_id).order_by(Keyword.id))
    return list(res.scalars())

async def list_keywords(session: AsyncSession) -> List[Keyword]:
    res = await session.execute(select(Keyword).order_by(Keyword.id))
    return list(res.scalars())

async def update_keyword(session: AsyncSession, keyword_id: int, **changes: Any) -> Optional[Keyword]:
    kw = await session.get(Keyword, keyword_id)
    if kw is None:
        return None
    if "keyword" in changes:
        changes["keyword"] = norm_keyword(changes["keyword"] or "")
        _check_text(changes["keyword"], "Keyword is required")
    _apply(kw, changes, {"keyword", "job_id"})
    await _commit(session, f"keyword {keyword_id}")
    return kw

async def delete_keyword(session: AsyncSession, keyword_id: int) -> bool:
    res = await session.execute(delete(Keyword).where(Keyword.id == keyword_id))
    await _commit(session, f"delete of keyword {keyword_id}")
    return res.rowcount > 0

async def delete_keywords_by_job(session: AsyncSession, job_id: int) -> int:
    res = await session.execute(delete(Keyword).where(Keyword.job_id == job_id))
    await _commit(session, f"delete of keywords for job {job_id}")
    return res.rowcount

async def find_keyword(session: AsyncSession, job_id: int, keyword: str) -> Optional[Keyword]:
    return await find_by_natural_key(session, "keywords", {"job_id": job_id, "keyword": norm_keyword(keyword)})

async def delete_all_keywords(session: AsyncSession) -> None:
    await session.execute(delete(Keyword))
    await _commit(session, "delete of all keywords")

# --- User keywords -----------------------------------------------------------

async def create_user_keyword(session: AsyncSession, keyword: str) -> int:
    text = norm_keyword(keyword or "")
    if not text:
        raise ValueError("Keyword is required")
    existing = await find_by_natural_key(session, "user_keywords", {"keyword": text})
    if existing is not None:
        return existing.id
    now = utcnow()
    obj = UserKeyword(keyword=text, created_at=now, updated_at=now)
    session.add(obj)
    await _commit(session, f"user keyword '{text}'")
    return obj.id

async def list_user_keywords(session: AsyncSession) -> List[UserKeyword]:
    res = await session.execute(select(UserKeyword).order_by(UserKeyword.keyword))
    return list(res.scalars())

async def update_user_keyword(session: AsyncSession, keyword_id: int, keyword: str) -> Optional[UserKeyword]:
    kw = await session.get(UserKeyword, keyword_id)
    if kw is None:
        return None
    text = norm_keyword(keyword or "")
    _check_text(text, "Keyword is required")
    _apply(kw, {"keyword": text}, {"keyword"})
    await _commit(session, f"user keyword {keyword_id}")
    return kw

async def delete_user_keyword(session: AsyncSession, keyword_id: int) -> bool:
    res = await session.execute(delete(UserKeyword).where(UserKeyword.id == keyword_id))
    await _commit(session, f"delete of user keyword {keyword_id}")
    return res.rowcount > 0

async def delete_all_user_keywords(session: AsyncSession) -> None:
    await session.execute(delete(UserKeyword))
    await _commit(session, "delete of all user keywords")

# --- Activities --------------------------------------------------------------

async def create_activity(
    session: AsyncSession,
    job_id: int,
    type: str,
    category: str,
    notes: Optional[str] = None,
    previous_status: Optional[str] = None,
    new_status: Optional[str] = None,
) -> int:
    if type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {type!r}")
    if not category:
        raise ValueError("Activity category is required")
    if type != "status_change":
        # Statusparet hör bara hemma på status_change
        previous_status = new_status = None
    if await session.get(Job, job_id) is None:
        raise NotFoundError("Job not found")
    now = utcnow()
    obj = Activity(
        job_id=job_id,
        type=type,
        category=category,
        notes=notes,
        previous_status=previous_status,
        new_status=new_status,
        created_at=now,
        updated_at=now,
    )
    session.add(obj)
    await _commit(session, f"activity '{category}' for job {job_id}")
    return obj.id

async def list_activities_by_job(session: AsyncSession, job_id: int) -> List[Activity]:
    res = await session.execute(
        select(Activity).where(Activity.job_id == job_id).order_by(Activity.created_at.desc(), Activity.id.desc())
    )
    return list(res.scalars())

async def list_activities(session: AsyncSession) -> List[Activity]:
    res = await session.execute(select(Activity).order_by(Activity.created_at.desc(), Activity.id.desc()))
    return list(res.scalars())

async def update_activity(session: AsyncSession, activity_id: int, **changes: Any) -> Optional[Activity]:
    activity = await session.get(Activity, activity_id)
    if activity is None:
        return None
    _apply(activity, changes, {"category", "notes"})
    await _commit(session, f"activity {activity_id}")
    return activity

async def delete_activity(session: AsyncSession, activity_id: int) -> bool:
    res = await session.execute(delete(Activity).where(Activity.id == activity_id))
    await _commit(session, f"delete of activity {activity_id}")
    return res.rowcount > 0

async def delete_activities_by_job(session: AsyncSession, job_id: int) -> int:
    res = await session.execute(delete(Activity).where(Activity.job_id == job_id))
    await _commit(session, f"delete of activities for job {job_id}")
    return res.rowcount

async def delete_all_activities(session: AsyncSession) -> None:
    await session.execute(delete(Activity))
    await _commit(session, "delete of all activities")

# --- Goals -------------------------------------------------------------------

async def create_goal(session: AsyncSession, type: str, target_number: int, frequency_days: int) -> int:
    _check_goal(type, target_number, frequency_days)
    now = utcnow()
    obj = Goal(type=type, target_number=target_number, frequency_days=frequency_days, created_at=now, updated_at=now)
    session.add(obj)
    await _commit(session, f"goal '{type}'")
    return obj.id

async def list_goals(session: AsyncSession) -> List[Goal]:
    res = await session.execute(select(Goal).order_by(Goal.type))
    return list(res.scalars())

async def get_goal_by_type(session: AsyncSession, type: str) -> Optional[Goal]:
    return await find_by_natural_key(session, "goals", {"type": type})

async def update_goal(session: AsyncSession, goal_id: int, **changes: Any) -> Optional[Goal]:
    goal = await session.get(Goal, goal_id)
    if goal is None:
        return None
    _check_goal(
        goal.type,
        changes.get("target_number", goal.target_number),
        changes.get("frequency_days", goal.frequency_days),
    )
    _apply(goal, changes, {"target_number", "frequency_days"})
    await _commit(session, f"goal {goal_id}")
    return goal

async def upsert_goal(session: AsyncSession, type: str, target_number: int, frequency_days: int) -> int:
    """Ett mål per typ: finns typen redan uppdateras den, annars skapas den."""
    existing = await get_goal_by_type(session, type)
    if existing is not None:
        await update_goal(session, existing.id, target_number=target_number, frequency_days=frequency_days)
        return existing.id
    return await create_goal(session, type, target_number, frequency_days)

async def delete_goal(session: AsyncSession, goal_id: int) -> bool:
    res = await session.execute(delete(Goal).where(Goal.id == goal_id))
    await _commit(session, f"delete of goal {goal_id}")
    return res.rowcount > 0

async def delete_all_goals(session: AsyncSession) -> None:
    await session.execute(delete(Goal))
    await _commit(session, "delete of all goals")
