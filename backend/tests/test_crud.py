from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from jobtracker import crud
from jobtracker.backup import export_snapshot
from jobtracker.errors import NotFoundError


async def test_create_keyword_is_idempotent(session, store):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Backend Developer")

    first = await crud.create_keyword(session, job_id, "Python")
    second = await crud.create_keyword(session, job_id, "python")

    assert first == second
    rows = await crud.list_keywords_by_job(session, job_id)
    assert [kw.keyword for kw in rows] == ["python"]
    assert await store.count("keywords") == 1


async def test_same_keyword_on_two_jobs_is_two_rows(session):
    employer_id = await crud.create_employer(session, "Acme")
    job_a = await crud.create_job(session, employer_id, "Backend")
    job_b = await crud.create_job(session, employer_id, "Frontend")

    assert await crud.create_keyword(session, job_a, "sql") != await crud.create_keyword(session, job_b, "sql")


async def test_user_keyword_unique_by_text(session):
    a = await crud.create_user_keyword(session, "  Docker ")
    b = await crud.create_user_keyword(session, "docker")
    assert a == b
    assert [k.keyword for k in await crud.list_user_keywords(session)] == ["docker"]


async def test_delete_employer_cascades(session, store):
    acme = await crud.create_employer(session, "Acme")
    other = await crud.create_employer(session, "Other")
    job_id = await crud.create_job(session, acme, "Developer")
    kept_job = await crud.create_job(session, other, "Tester")
    await crud.create_keyword(session, job_id, "go")
    await crud.create_activity(session, job_id, "activity", "email")
    await crud.create_keyword(session, kept_job, "qa")

    assert await crud.delete_employer(session, acme) is True

    assert await store.count("employers") == 1
    assert [j.id for j in await store.jobs()] == [kept_job]
    assert [k.job_id for k in await store.keywords()] == [kept_job]
    assert await store.count("activities") == 0


async def test_delete_job_cascades(session, store):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Developer")
    await crud.create_keyword(session, job_id, "rust")
    await crud.create_activity(session, job_id, "activity", "research")

    assert await crud.delete_job(session, job_id) is True
    assert await crud.delete_job(session, job_id) is False
    assert await store.count("keywords") == 0
    assert await store.count("activities") == 0
    assert await store.count("employers") == 1


async def test_job_requires_existing_employer(session):
    with pytest.raises(NotFoundError):
        await crud.create_job(session, 42, "Ghost job")


async def test_store_rejects_dangling_job(store):
    # FK:er är påslagna i SQLite
    with pytest.raises(IntegrityError):
        await store.insert("jobs", {"employer_id": 999, "title": "Dangling"})


async def test_toggles_and_update_refresh_updated_at(session):
    employer_id = await crud.create_employer(session, "Acme", industry="SaaS")
    employer = await crud.get_employer(session, employer_id)
    created = employer.updated_at
    employer.updated_at = created - timedelta(days=1)
    await session.commit()

    toggled = await crud.toggle_employer_favorite(session, employer_id)
    assert toggled.favorited is True
    assert toggled.updated_at > created - timedelta(days=1)

    job_id = await crud.create_job(session, employer_id, "Developer")
    assert (await crud.toggle_job_archive(session, job_id)).archived is True
    assert (await crud.toggle_job_favorite(session, job_id)).favorited is True
    assert await crud.list_jobs(session) == []
    assert [j.id for j in await crud.list_archived_jobs(session)] == [job_id]
    assert [j.id for j in await crud.list_all_jobs(session)] == [job_id]


async def test_toggle_missing_employer(session):
    with pytest.raises(NotFoundError, match="Employer not found"):
        await crud.toggle_employer_favorite(session, 123)


async def test_rejects_unknown_values(session):
    with pytest.raises(ValueError):
        await crud.create_employer(session, "Acme", industry="Space Mining")
    employer_id = await crud.create_employer(session, "Acme")
    with pytest.raises(ValueError):
        await crud.create_job(session, employer_id, "Dev", interest_level=11)
    job_id = await crud.create_job(session, employer_id, "Dev")
    with pytest.raises(ValueError):
        await crud.update_job_status(session, job_id, "hired")
    with pytest.raises(ValueError):
        await crud.update_job(session, job_id, color="blue")


async def test_change_job_status_logs_activity(session):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Developer")

    job = await crud.change_job_status(session, job_id, "applied", notes="  sent CV ")

    assert job.status == "applied"
    [activity] = await crud.list_activities_by_job(session, job_id)
    assert activity.type == "status_change"
    assert activity.previous_status == "not applied"
    assert activity.new_status == "applied"
    assert activity.notes == "sent CV"

    with pytest.raises(ValueError):
        await crud.change_job_status(session, job_id, "applied")


async def test_plain_activity_drops_status_pair(session):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Developer")
    activity_id = await crud.create_activity(session, job_id, "activity", "phone_call", None, "applied", "offer")

    [activity] = await crud.list_activities(session)
    assert activity.id == activity_id
    assert activity.previous_status is None
    assert activity.new_status is None


async def test_goal_upsert_keeps_one_row_per_type(session):
    first = await crud.upsert_goal(session, "interviews", 2, 7)
    second = await crud.upsert_goal(session, "interviews", 5, 14)

    assert first == second
    [goal] = await crud.list_goals(session)
    assert (goal.target_number, goal.frequency_days) == (5, 14)

    with pytest.raises(ValueError):
        await crud.upsert_goal(session, "naps", 1, 1)


async def test_lookups(session):
    employer_id = await crud.create_employer(session, "Acme Corp")
    job_id = await crud.create_job(session, employer_id, "Developer")
    await crud.create_keyword(session, job_id, "kotlin")

    assert (await crud.find_employer_by_name(session, "acme corp")).id == employer_id
    assert (await crud.find_job_by_title_and_employer(session, "Developer", employer_id)).id == job_id
    assert (await crud.find_keyword(session, job_id, "Kotlin")) is not None
    [(job, employer)] = await crud.list_jobs_with_employers(session)
    assert (job.id, employer.id) == (job_id, employer_id)
    assert [j.id for j in await crud.list_jobs_by_employer(session, employer_id)] == [job_id]


async def test_updates_apply_the_same_rules_as_create(session, store):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Dev")
    keyword_id = await crud.create_keyword(session, job_id, "sql")
    user_keyword_id = await crud.create_user_keyword(session, "docker")

    with pytest.raises(ValueError, match="Employer name is required"):
        await crud.update_employer(session, employer_id, name="   ")
    with pytest.raises(ValueError, match="Job title is required"):
        await crud.update_job(session, job_id, title="")
    with pytest.raises(ValueError, match="Keyword is required"):
        await crud.update_keyword(session, keyword_id, keyword="  ")
    with pytest.raises(ValueError, match="Keyword is required"):
        await crud.update_user_keyword(session, user_keyword_id, " ")

    wire = (await export_snapshot(store)).to_wire()
    assert [e["name"] for e in wire["employers"]] == ["Acme"]
    assert [j["title"] for j in wire["jobs"]] == ["Dev"]
    assert [k["keyword"] for k in wire["keywords"]] == ["sql"]
    assert [k["keyword"] for k in wire["userKeywords"]] == ["docker"]


async def test_goal_target_may_be_zero(session):
    goal_id = await crud.upsert_goal(session, "offers", 0, 30)
    assert (await crud.get_goal_by_type(session, "offers")).id == goal_id

    with pytest.raises(ValueError):
        await crud.upsert_goal(session, "offers", -1, 30)
    with pytest.raises(ValueError):
        await crud.upsert_goal(session, "offers", 1, 0)


async def test_keyword_spacing_is_kept(session):
    employer_id = await crud.create_employer(session, "Acme")
    job_id = await crud.create_job(session, employer_id, "Dev")

    spaced = await crud.create_keyword(session, job_id, "  Machine  Learning ")
    single = await crud.create_keyword(session, job_id, "machine learning")

    assert spaced != single
    assert [k.keyword for k in await crud.list_keywords_by_job(session, job_id)] == [
        "machine  learning", "machine learning",
    ]
