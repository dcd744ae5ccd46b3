from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import and_, delete, exists, func, select, text, update
from sqlalchemy.orm import Session

from jotrack.core.status import DEFAULT_STATUS, normalize_status
from jotrack.db.models import (
    AIRun,
    Attachment,
    CoachState,
    Job,
    JobPeopleRef,
    PeopleProfile,
    StatusHistory,
)
from jotrack.db.search import SEARCH_TABLE, build_match_query, job_search
from jotrack.errors import InvalidRequestError, NotFoundError
from jotrack.types import ATTACHMENT_KINDS, REL_TYPES

EDITABLE_JOB_FIELDS = {"title", "company", "notes", "posting_url", "location"}
EDITABLE_PERSON_FIELDS = {"name", "title", "linkedin_url", "raw_text", "recruiter_type", "search_firm_name"}
HAS_FILTERS = {"notes", *ATTACHMENT_KINDS}


def normalize_key(value: str) -> str:
    return " ".join((value or "").strip().lower().split())


def validate_kind(kind: str) -> str:
    if kind not in ATTACHMENT_KINDS:
        raise InvalidRequestError(f"unknown attachment kind '{kind}'; expected one of {list(ATTACHMENT_KINDS)}")
    return kind


def validate_rel_type(rel_type: str) -> str:
    if rel_type not in REL_TYPES:
        raise InvalidRequestError(f"unknown relationship '{rel_type}'; expected one of {list(REL_TYPES)}")
    return rel_type


class Repository:
    def __init__(self, session: Session):
        self.session = session

    # Jobs

    def create_job(
        self,
        *,
        title: str,
        company: str,
        status: str = DEFAULT_STATUS,
        notes: str = "",
        posting_url: str = "",
        location: str = "",
    ) -> Job:
        title = title.strip()
        company = company.strip()
        if not title or not company:
            raise InvalidRequestError("title and company are required")

        status = normalize_status(status)
        now = datetime.now(UTC)
        job = Job(
            title=title,
            company=company,
            status=status,
            notes=notes or "",
            posting_url=posting_url or "",
            location=location or "",
            created_at=now,
            updated_at=now,
            applied_at=now if status == "APPLIED" else None,
        )
        self.session.add(job)
        self.session.flush()
        self.session.add(StatusHistory(job_id=job.id, status=status, changed_at=now))
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: int, *, include_deleted: bool = False) -> Job | None:
        job = self.session.get(Job, job_id)
        if job is None or (job.deleted_at is not None and not include_deleted):
            return None
        return job

    def require_job(self, job_id: int, *, include_deleted: bool = False) -> Job:
        job = self.get_job(job_id, include_deleted=include_deleted)
        if job is None:
            raise NotFoundError(f"job {job_id} not found")
        return job

    def _job_filters(
        self,
        *,
        statuses: list[str] | None,
        include_deleted: bool,
        include_archived: bool,
    ) -> list[Any]:
        conditions: list[Any] = []
        if not include_deleted:
            conditions.append(Job.deleted_at.is_(None))
        if not include_archived:
            conditions.append(Job.archived_at.is_(None))
        if statuses:
            conditions.append(Job.status.in_([normalize_status(s) for s in statuses]))
        return conditions

    def list_jobs(
        self,
        *,
        statuses: list[str] | None = None,
        include_deleted: bool = False,
        include_archived: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        conditions = self._job_filters(
            statuses=statuses, include_deleted=include_deleted, include_archived=include_archived
        )
        statement = (
            select(Job)
            .where(*conditions)
            .order_by(Job.updated_at.desc(), Job.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(statement).all())

    def count_jobs(
        self,
        *,
        statuses: list[str] | None = None,
        include_deleted: bool = False,
        include_archived: bool = True,
    ) -> int:
        conditions = self._job_filters(
            statuses=statuses, include_deleted=include_deleted, include_archived=include_archived
        )
        return int(self.session.scalar(select(func.count(Job.id)).where(*conditions)) or 0)

    def update_job(self, job_id: int, values: dict[str, Any]) -> Job:
        job = self.require_job(job_id)
        unknown = set(values) - EDITABLE_JOB_FIELDS
        if unknown:
            raise InvalidRequestError(f"fields not editable: {sorted(unknown)}")

        for key, value in values.items():
            value = "" if value is None else str(value)
            if key in {"title", "company"}:
                value = value.strip()
                if not value:
                    raise InvalidRequestError(f"{key} cannot be empty")
            setattr(job, key, value)

        self.session.commit()
        self.session.refresh(job)
        return job

    def update_job_status(self, job_id: int, status: str) -> Job:
        job = self.require_job(job_id)
        status = normalize_status(status)
        if job.status == status:
            return job

        now = datetime.now(UTC)
        job.status = status
        job.updated_at = now
        if status == "APPLIED" and job.applied_at is None:
            job.applied_at = now
        self.session.add(StatusHistory(job_id=job.id, status=status, changed_at=now))
        self.session.commit()
        self.session.refresh(job)
        return job

    def bulk_update_status(self, job_ids: list[int], status: str) -> list[Job]:
        status = normalize_status(status)
        job_ids = list(dict.fromkeys(job_ids))
        for job_id in job_ids:
            self.require_job(job_id)
        return [self.update_job_status(job_id, status) for job_id in job_ids]

    def get_status_history(self, job_id: int) -> list[StatusHistory]:
        statement = (
            select(StatusHistory)
            .where(StatusHistory.job_id == job_id)
            .order_by(StatusHistory.changed_at.asc(), StatusHistory.id.asc())
        )
        return list(self.session.scalars(statement).all())

    def soft_delete_job(self, job_id: int, *, retention_days: int) -> Job:
        job = self.require_job(job_id)
        now = datetime.now(UTC)
        job.deleted_at = now
        job.permanent_delete_at = now + timedelta(days=retention_days)
        self.session.commit()
        self.session.refresh(job)
        return job

    def restore_job(self, job_id: int) -> Job:
        job = self.require_job(job_id, include_deleted=True)
        job.deleted_at = None
        job.permanent_delete_at = None
        self.session.commit()
        self.session.refresh(job)
        return job

    def archive_job(self, job_id: int) -> Job:
        return self._set_archived(job_id, datetime.now(UTC))

    def unarchive_job(self, job_id: int) -> Job:
        return self._set_archived(job_id, None)

    def _set_archived(self, job_id: int, archived_at: datetime | None) -> Job:
        job = self.require_job(job_id)
        job.archived_at = archived_at
        self.session.commit()
        self.session.refresh(job)
        return job

    def purge_job(self, job_id: int) -> None:
        job = self.require_job(job_id, include_deleted=True)
        self.session.delete(job)
        self.session.commit()

    def expired_job_ids(self, now: datetime | None = None) -> list[int]:
        now = now or datetime.now(UTC)
        statement = select(Job.id).where(
            and_(Job.permanent_delete_at.is_not(None), Job.permanent_delete_at <= now)
        )
        return list(self.session.scalars(statement).all())

    def find_duplicates(self, title: str, company: str, *, exclude_id: int | None = None) -> list[Job]:
        title_key = normalize_key(title)
        company_key = normalize_key(company)
        candidates = self.session.scalars(select(Job).where(Job.deleted_at.is_(None))).all()
        # inner whitespace in stored values defeats SQL equality, so both keys are compared here
        return [
            job
            for job in candidates
            if normalize_key(job.title) == title_key and normalize_key(job.company) == company_key
            and job.id != exclude_id
        ]

    def mark_job_analysis(self, job_id: int, *, fingerprint: str, state: str = "fresh") -> Job:
        job = self.require_job(job_id)
        job.analysis_fingerprint = fingerprint
        job.analysis_state = state
        job.last_full_analysis_at = datetime.now(UTC)
        self.session.commit()
        self.session.refresh(job)
        return job

    def set_coach_progress(
        self,
        job_id: int,
        *,
        coach_status: str,
        applied_resume_version: int | None = None,
    ) -> Job:
        job = self.require_job(job_id)
        job.coach_status = coach_status
        if applied_resume_version is not None:
            job.applied_resume_version = applied_resume_version
        self.session.commit()
        self.session.refresh(job)
        return job

    # Search

    def search_jobs(
        self,
        query: str = "",
        *,
        statuses: list[str] | None = None,
        has: list[str] | None = None,
        sort: str = "recent",
        limit: int = 200,
    ) -> list[Job]:
        statement = select(Job).where(Job.deleted_at.is_(None))

        if query.strip():
            match = build_match_query(query)
            if not match:
                return []
            statement = statement.join(job_search, job_search.c.job_id == Job.id).where(
                text(f"{SEARCH_TABLE} MATCH :match").bindparams(match=match)
            )

        if statuses:
            statement = statement.where(Job.status.in_([normalize_status(s) for s in statuses]))

        for flag in has or []:
            if flag not in HAS_FILTERS:
                raise InvalidRequestError(f"unknown filter '{flag}'; expected one of {sorted(HAS_FILTERS)}")
            if flag == "notes":
                statement = statement.where(func.length(func.trim(Job.notes)) > 0)
            else:
                statement = statement.where(
                    exists().where(
                        Attachment.job_id == Job.id,
                        Attachment.kind == flag,
                        Attachment.deleted_at.is_(None),
                    )
                )

        if sort == "recent":
            statement = statement.order_by(Job.updated_at.desc(), Job.id.desc())
        elif sort == "created":
            statement = statement.order_by(Job.created_at.desc(), Job.id.desc())
        else:
            raise InvalidRequestError(f"unknown sort '{sort}'; expected 'recent' or 'created'")

        return list(self.session.scalars(statement.limit(limit)).all())

    # Attachments

    def max_attachment_version(self, job_id: int, kind: str) -> int:
        statement = select(func.max(Attachment.version)).where(
            Attachment.job_id == job_id, Attachment.kind == kind
        )
        return int(self.session.scalar(statement) or 0)

    def create_attachment(
        self,
        *,
        job_id: int,
        kind: str,
        filename: str,
        path: str,
        size: int,
        content_hash: str,
    ) -> Attachment:
        validate_kind(kind)
        version = self.max_attachment_version(job_id, kind) + 1
        self._deactivate_kind(job_id, kind)
        item = Attachment(
            job_id=job_id,
            kind=kind,
            version=version,
            filename=filename,
            path=path,
            size=size,
            content_hash=content_hash,
            is_active=True,
        )
        self.session.add(item)
        self._touch_job(job_id)
        self.session.commit()
        self.session.refresh(item)
        return item

    def get_attachment(self, job_id: int, attachment_id: int) -> Attachment | None:
        item = self.session.get(Attachment, attachment_id)
        if item is None or item.job_id != job_id:
            return None
        return item

    def require_attachment(self, job_id: int, attachment_id: int) -> Attachment:
        item = self.get_attachment(job_id, attachment_id)
        if item is None:
            raise NotFoundError(f"attachment {attachment_id} not found")
        return item

    def get_attachment_version(self, job_id: int, kind: str, version: int) -> Attachment | None:
        statement = select(Attachment).where(
            Attachment.job_id == job_id, Attachment.kind == kind, Attachment.version == version
        )
        return self.session.scalar(statement)

    def list_attachments(
        self,
        job_id: int,
        *,
        kind: str | None = None,
        include_deleted: bool = False,
    ) -> list[Attachment]:
        statement = select(Attachment).where(Attachment.job_id == job_id)
        if kind is not None:
            statement = statement.where(Attachment.kind == validate_kind(kind))
        if not include_deleted:
            statement = statement.where(Attachment.deleted_at.is_(None))
        statement = statement.order_by(Attachment.kind.asc(), Attachment.version.desc())
        return list(self.session.scalars(statement).all())

    def active_attachments(self, job_id: int) -> list[Attachment]:
        statement = (
            select(Attachment)
            .where(
                Attachment.job_id == job_id,
                Attachment.is_active.is_(True),
                Attachment.deleted_at.is_(None),
            )
            .order_by(Attachment.kind.asc())
        )
        return list(self.session.scalars(statement).all())

    def active_attachment(self, job_id: int, kind: str) -> Attachment | None:
        statement = select(Attachment).where(
            Attachment.job_id == job_id,
            Attachment.kind == kind,
            Attachment.is_active.is_(True),
            Attachment.deleted_at.is_(None),
        )
        return self.session.scalar(statement)

    def set_active_attachment(self, item: Attachment) -> Attachment:
        if item.deleted_at is not None:
            raise InvalidRequestError("cannot activate a deleted version")
        self._deactivate_kind(item.job_id, item.kind)
        item.is_active = True
        self._touch_job(item.job_id)
        self.session.commit()
        self.session.refresh(item)
        return item

    def soft_delete_attachment(self, item: Attachment) -> Attachment:
        was_active = item.is_active
        item.deleted_at = datetime.now(UTC)
        item.is_active = False
        self.session.flush()
        if was_active:
            self._activate_latest(item.job_id, item.kind)
        self._touch_job(item.job_id)
        self.session.commit()
        self.session.refresh(item)
        return item

    def restore_attachment(self, item: Attachment) -> Attachment:
        item.deleted_at = None
        self.session.flush()
        if self.active_attachment(item.job_id, item.kind) is None:
            item.is_active = True
        self._touch_job(item.job_id)
        self.session.commit()
        self.session.refresh(item)
        return item

    def delete_attachment_row(self, item: Attachment) -> None:
        job_id, kind, was_active = item.job_id, item.kind, item.is_active
        self.session.delete(item)
        self.session.flush()
        if was_active:
            self._activate_latest(job_id, kind)
        self.session.commit()

    def _deactivate_kind(self, job_id: int, kind: str) -> None:
        self.session.execute(
            update(Attachment)
            .where(Attachment.job_id == job_id, Attachment.kind == kind)
            .values(is_active=False)
        )

    def _activate_latest(self, job_id: int, kind: str) -> None:
        latest = self.session.scalar(
            select(Attachment)
            .where(
                Attachment.job_id == job_id,
                Attachment.kind == kind,
                Attachment.deleted_at.is_(None),
            )
            .order_by(Attachment.version.desc())
            .limit(1)
        )
        if latest is not None:
            latest.is_active = True

    def _touch_job(self, job_id: int) -> None:
        job = self.session.get(Job, job_id)
        if job is not None:
            job.updated_at = datetime.now(UTC)

    # People

    def create_person(self, values: dict[str, Any]) -> PeopleProfile:
        unknown = set(values) - EDITABLE_PERSON_FIELDS
        if unknown:
            raise InvalidRequestError(f"unknown person fields: {sorted(unknown)}")
        name = str(values.get("name") or "").strip()
        if not name:
            raise InvalidRequestError("person name is required")
        person = PeopleProfile(**{k: (v or "") for k, v in values.items()} | {"name": name})
        self.session.add(person)
        self.session.commit()
        self.session.refresh(person)
        return person

    def create_person_and_link(self, job_id: int, values: dict[str, Any], rel_type: str) -> PeopleProfile:
        self.require_job(job_id)
        validate_rel_type(rel_type)
        person = self.create_person(values)
        self.link_person(job_id, person.id, rel_type)
        return person

    def get_person(self, person_id: int) -> PeopleProfile | None:
        return self.session.get(PeopleProfile, person_id)

    def require_person(self, person_id: int) -> PeopleProfile:
        person = self.get_person(person_id)
        if person is None:
            raise NotFoundError(f"person {person_id} not found")
        return person

    def list_people(self) -> list[PeopleProfile]:
        return list(self.session.scalars(select(PeopleProfile).order_by(PeopleProfile.name.asc())).all())

    def find_person_by_linkedin(self, linkedin_url: str) -> PeopleProfile | None:
        if not linkedin_url.strip():
            return None
        return self.session.scalar(
            select(PeopleProfile).where(PeopleProfile.linkedin_url == linkedin_url.strip()).limit(1)
        )

    def update_person(self, person_id: int, values: dict[str, Any]) -> PeopleProfile:
        person = self.require_person(person_id)
        unknown = set(values) - EDITABLE_PERSON_FIELDS
        if unknown:
            raise InvalidRequestError(f"unknown person fields: {sorted(unknown)}")
        for key, value in values.items():
            value = "" if value is None else str(value)
            if key == "name" and not value.strip():
                raise InvalidRequestError("person name cannot be empty")
            setattr(person, key, value)
        self.session.commit()
        self.session.refresh(person)
        return person

    def mark_person_optimized(self, person_id: int, summary: dict[str, Any]) -> PeopleProfile:
        person = self.require_person(person_id)
        person.summary_json = summary
        person.is_optimized = True
        person.optimized_at = datetime.now(UTC)
        self.session.commit()
        self.session.refresh(person)
        return person

    def get_person_link(self, job_id: int, person_id: int) -> JobPeopleRef | None:
        return self.session.get(JobPeopleRef, (job_id, person_id))

    def link_person(self, job_id: int, person_id: int, rel_type: str) -> JobPeopleRef:
        self.require_job(job_id)
        self.require_person(person_id)
        validate_rel_type(rel_type)

        link = self.get_person_link(job_id, person_id)
        if link is None:
            link = JobPeopleRef(job_id=job_id, person_id=person_id, rel_type=rel_type)
            self.session.add(link)
        else:
            link.rel_type = rel_type
        self.session.commit()
        self.session.refresh(link)
        return link

    def unlink_person(self, job_id: int, person_id: int) -> bool:
        result = self.session.execute(
            delete(JobPeopleRef).where(
                JobPeopleRef.job_id == job_id,
                JobPeopleRef.person_id == person_id,
            )
        )
        self.session.commit()
        return bool(result.rowcount)

    def list_people_for_job(
        self,
        job_id: int,
        rel_type: str | None = None,
    ) -> list[tuple[PeopleProfile, str]]:
        statement = (
            select(PeopleProfile, JobPeopleRef.rel_type)
            .join(JobPeopleRef, JobPeopleRef.person_id == PeopleProfile.id)
            .where(JobPeopleRef.job_id == job_id)
            .order_by(PeopleProfile.name.asc())
        )
        if rel_type is not None:
            statement = statement.where(JobPeopleRef.rel_type == validate_rel_type(rel_type))
        return [(person, rel) for person, rel in self.session.execute(statement).all()]

    # Coach state

    def get_coach_state(self, job_id: int) -> CoachState | None:
        return self.session.get(CoachState, job_id)

    def upsert_coach_state(
        self,
        job_id: int,
        *,
        data: dict[str, Any] | None = None,
        interview_coach: dict[str, Any] | None = None,
        completed_stages: list[str] | None = None,
    ) -> CoachState:
        state = self.get_coach_state(job_id)
        if state is None:
            state = CoachState(job_id=job_id, data_json={}, interview_coach_json={}, completed_stages_json=[])
            self.session.add(state)

        # JSON columns are replaced, never mutated in place, so change tracking sees them
        if data is not None:
            state.data_json = dict(data)
        if interview_coach is not None:
            state.interview_coach_json = dict(interview_coach)
        if completed_stages is not None:
            state.completed_stages_json = list(completed_stages)

        self.session.commit()
        self.session.refresh(state)
        return state

    def delete_coach_state(self, job_id: int) -> None:
        self.session.execute(delete(CoachState).where(CoachState.job_id == job_id))
        self.session.commit()

    # AI runs

    def find_ai_run(self, job_id: int, capability: str, fingerprint: str) -> AIRun | None:
        statement = (
            select(AIRun)
            .where(
                AIRun.job_id == job_id,
                AIRun.capability == capability,
                AIRun.fingerprint == fingerprint,
            )
            .order_by(AIRun.created_at.desc(), AIRun.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def create_ai_run(
        self,
        *,
        job_id: int,
        capability: str,
        fingerprint: str,
        result_json: dict[str, Any],
        provider: str = "",
        model: str = "",
        prompt_version: str = "v1",
    ) -> AIRun:
        self.session.execute(
            update(AIRun)
            .where(AIRun.job_id == job_id, AIRun.capability == capability)
            .values(is_active=False)
        )
        run = AIRun(
            job_id=job_id,
            capability=capability,
            fingerprint=fingerprint,
            result_json=result_json,
            provider=provider,
            model=model,
            prompt_version=prompt_version,
            is_active=True,
        )
        self.session.add(run)
        self.session.commit()
        self.session.refresh(run)
        return run

    def get_ai_run(self, run_id: int) -> AIRun | None:
        return self.session.get(AIRun, run_id)

    def require_ai_run(self, run_id: int) -> AIRun:
        run = self.get_ai_run(run_id)
        if run is None:
            raise NotFoundError(f"AI run {run_id} not found")
        return run

    def list_ai_runs(self, job_id: int, capability: str | None = None, limit: int = 20) -> list[AIRun]:
        statement = select(AIRun).where(AIRun.job_id == job_id)
        if capability is not None:
            statement = statement.where(AIRun.capability == capability)
        statement = statement.order_by(AIRun.created_at.desc(), AIRun.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def active_ai_run(self, job_id: int, capability: str) -> AIRun | None:
        statement = (
            select(AIRun)
            .where(AIRun.job_id == job_id, AIRun.capability == capability, AIRun.is_active.is_(True))
            .limit(1)
        )
        return self.session.scalar(statement)

    def set_ai_run_pinned(self, run_id: int, pinned: bool) -> AIRun:
        run = self.require_ai_run(run_id)
        run.is_pinned = pinned
        self.session.commit()
        self.session.refresh(run)
        return run

    def set_active_ai_run(self, run_id: int) -> AIRun:
        run = self.require_ai_run(run_id)
        self.session.execute(
            update(AIRun)
            .where(AIRun.job_id == run.job_id, AIRun.capability == run.capability)
            .values(is_active=False)
        )
        run.is_active = True
        self.session.commit()
        self.session.refresh(run)
        return run

    def label_ai_run(self, run_id: int, label: str) -> AIRun:
        run = self.require_ai_run(run_id)
        run.label = label.strip()[:120]
        self.session.commit()
        self.session.refresh(run)
        return run

    def prune_ai_runs(self, job_id: int, capability: str, keep: int) -> int:
        runs = self.list_ai_runs(job_id, capability, limit=10_000)
        keep_ids = {run.id for run in runs[:keep]} | {run.id for run in runs if run.is_pinned or run.is_active}
        stale = [run.id for run in runs if run.id not in keep_ids]
        if stale:
            self.session.execute(delete(AIRun).where(AIRun.id.in_(stale)))
            self.session.commit()
        return len(stale)
