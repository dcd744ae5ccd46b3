from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import text

from jotrack.core.attachments import AttachmentService
from jotrack.db.models import Attachment, StatusHistory
from jotrack.db.repositories import Repository
from jotrack.errors import InvalidRequestError, NotFoundError


def _search_rows(repo: Repository, job_id: int) -> int:
    return repo.session.execute(text("SELECT COUNT(*) FROM job_search WHERE job_id = :id"), {"id": job_id}).scalar_one()


def test_create_job_records_initial_history(repo: Repository) -> None:
    job = repo.create_job(title="  Platform Engineer ", company="Initech", status="applied")

    assert job.title == "Platform Engineer"
    assert job.status == "APPLIED"
    assert job.applied_at is not None
    assert [row.status for row in repo.get_status_history(job.id)] == ["APPLIED"]


def test_create_job_requires_title_and_company(repo: Repository) -> None:
    with pytest.raises(InvalidRequestError):
        repo.create_job(title=" ", company="Initech")
    with pytest.raises(InvalidRequestError):
        repo.create_job(title="Engineer", company="Initech", status="ghosted")


def test_status_changes_append_history_once_per_change(repo: Repository) -> None:
    job = repo.create_job(title="SRE", company="Umbrella")

    repo.update_job_status(job.id, "Phone Screen")
    repo.update_job_status(job.id, "PHONE_SCREEN")
    repo.update_job_status(job.id, "APPLIED")
    job = repo.update_job_status(job.id, "ONSITE")

    assert [row.status for row in repo.get_status_history(job.id)] == [
        "ON_RADAR",
        "PHONE_SCREEN",
        "APPLIED",
        "ONSITE",
    ]
    assert job.applied_at is not None


def test_bulk_status_is_all_or_nothing(repo: Repository) -> None:
    first = repo.create_job(title="A", company="X")
    second = repo.create_job(title="B", company="X")

    with pytest.raises(NotFoundError):
        repo.bulk_update_status([first.id, 9999], "REJECTED")
    assert repo.require_job(first.id).status == "ON_RADAR"

    updated = repo.bulk_update_status([first.id, second.id, first.id], "REJECTED")
    assert [job.id for job in updated] == [first.id, second.id]
    assert {job.status for job in updated} == {"REJECTED"}


def test_update_job_rejects_unknown_and_blank_fields(repo: Repository) -> None:
    job = repo.create_job(title="Analyst", company="Hooli")

    with pytest.raises(InvalidRequestError):
        repo.update_job(job.id, {"status": "OFFER"})
    with pytest.raises(InvalidRequestError):
        repo.update_job(job.id, {"company": "  "})

    job = repo.update_job(job.id, {"notes": "Referral from Sam", "location": "Remote"})
    assert job.notes == "Referral from Sam"
    assert job.location == "Remote"


def test_search_tracks_inserts_updates_and_filters(repo: Repository) -> None:
    rust = repo.create_job(title="Rust Developer", company="Ferrous Systems", notes="embedded tooling")
    python = repo.create_job(title="Python Developer", company="Snake Oil", status="APPLIED")

    assert [job.id for job in repo.search_jobs("rust")] == [rust.id]
    assert [job.id for job in repo.search_jobs("devel")] == [python.id, rust.id]
    assert [job.id for job in repo.search_jobs("embed")] == [rust.id]
    assert [job.id for job in repo.search_jobs("developer", statuses=["APPLIED"])] == [python.id]
    assert repo.search_jobs('"*') == []
    assert repo.search_jobs("nonexistent") == []

    repo.update_job(rust.id, {"title": "Go Developer"})
    assert repo.search_jobs("rust") == []
    assert [job.id for job in repo.search_jobs("go")] == [rust.id]

    all_jobs = repo.search_jobs("", sort="created")
    assert [job.id for job in all_jobs] == [python.id, rust.id]

    with pytest.raises(InvalidRequestError):
        repo.search_jobs("", sort="salary")
    with pytest.raises(InvalidRequestError):
        repo.search_jobs("", has=["photos"])


def test_search_has_filters(repo: Repository) -> None:
    with_notes = repo.create_job(title="A", company="X", notes="called twice")
    with_resume = repo.create_job(title="B", company="X")
    repo.create_job(title="C", company="X", notes="   ")
    service = AttachmentService(repo)
    item = service.add_attachment(with_resume.id, "cv.txt", b"Python", "resume")

    assert [job.id for job in repo.search_jobs(has=["notes"])] == [with_notes.id]
    assert [job.id for job in repo.search_jobs(has=["resume"])] == [with_resume.id]
    assert repo.search_jobs(has=["resume", "notes"]) == []

    service.delete_attachment(with_resume.id, item.id)
    assert repo.search_jobs(has=["resume"]) == []


def test_soft_delete_hides_job_until_restored(repo: Repository) -> None:
    job = repo.create_job(title="Designer", company="Pied Piper")

    deleted = repo.soft_delete_job(job.id, retention_days=30)
    assert deleted.permanent_delete_at is not None
    assert repo.get_job(job.id) is None
    assert repo.search_jobs("designer") == []
    assert repo.list_jobs() == []
    assert [row.id for row in repo.list_jobs(include_deleted=True)] == [job.id]

    repo.restore_job(job.id)
    assert [row.id for row in repo.search_jobs("designer")] == [job.id]
    assert repo.require_job(job.id).permanent_delete_at is None


def test_archive_filter(repo: Repository) -> None:
    kept = repo.create_job(title="Kept", company="X")
    archived = repo.create_job(title="Old", company="X")
    repo.archive_job(archived.id)

    assert repo.count_jobs() == 2
    assert [job.id for job in repo.list_jobs(include_archived=False)] == [kept.id]

    repo.unarchive_job(archived.id)
    assert repo.count_jobs(include_archived=False) == 2


def test_purge_cascades_to_children_and_search_index(repo: Repository) -> None:
    job = repo.create_job(title="ML Engineer", company="Dunder")
    AttachmentService(repo).add_attachment(job.id, "cv.txt", b"PyTorch", "resume")
    person = repo.create_person_and_link(job.id, {"name": "Pam"}, "recruiter")
    repo.upsert_coach_state(job.id, data={"note": 1})
    repo.create_ai_run(job_id=job.id, capability="match_score", fingerprint="f", result_json={})
    assert _search_rows(repo, job.id) == 1

    AttachmentService(repo).purge_job(job.id)
    repo.session.expire_all()

    assert repo.get_job(job.id, include_deleted=True) is None
    assert _search_rows(repo, job.id) == 0
    assert repo.session.query(StatusHistory).filter_by(job_id=job.id).count() == 0
    assert repo.session.query(Attachment).filter_by(job_id=job.id).count() == 0
    assert repo.get_coach_state(job.id) is None
    assert repo.list_ai_runs(job.id) == []
    assert repo.get_person_link(job.id, person.id) is None
    assert repo.get_person(person.id) is not None


def test_purge_expired_jobs_only_removes_elapsed_trash(repo: Repository) -> None:
    expired = repo.create_job(title="Expired", company="X")
    recent = repo.create_job(title="Recent", company="X")
    live = repo.create_job(title="Live", company="X")
    repo.soft_delete_job(expired.id, retention_days=0)
    repo.soft_delete_job(recent.id, retention_days=30)

    purged = AttachmentService(repo).purge_expired_jobs(datetime.now(UTC) + timedelta(seconds=1))

    assert purged == [expired.id]
    assert repo.get_job(recent.id, include_deleted=True) is not None
    assert repo.get_job(live.id) is not None


def test_find_duplicates_normalises_case_and_whitespace(repo: Repository) -> None:
    original = repo.create_job(title="Senior  Backend Engineer", company="Acme Corp")
    repo.create_job(title="Frontend Engineer", company="Acme Corp")

    matches = repo.find_duplicates("senior backend engineer", " ACME corp ")

    assert [job.id for job in matches] == [original.id]
    assert repo.find_duplicates("senior backend engineer", "acme corp", exclude_id=original.id) == []

    spaced = repo.create_job(title="Platform Engineer", company="Globex  Corp")
    assert [job.id for job in repo.find_duplicates("platform engineer", "globex corp")] == [spaced.id]
