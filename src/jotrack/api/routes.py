from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.responses import FileResponse

from jotrack.api.deps import get_attachment_service, get_repository
from jotrack.api.schemas import (
    AttachmentResponse,
    BulkStatusRequest,
    FetchPostingRequest,
    JobCreateRequest,
    JobListResponse,
    JobResponse,
    JobUpdateRequest,
    LinkedPersonResponse,
    LinkPersonRequest,
    MakeActiveRequest,
    PersonCreateRequest,
    PersonResponse,
    PersonUpdateRequest,
    StatusHistoryResponse,
    StatusUpdateRequest,
)
from jotrack.config import get_settings
from jotrack.core.attachments import AttachmentService
from jotrack.core.job_fetcher import fetch_job_text
from jotrack.core.status import JOURNEY
from jotrack.db.models import PeopleProfile
from jotrack.db.repositories import Repository
from jotrack.errors import NotFoundError

router = APIRouter(prefix="/api", tags=["api"])


def split_values(values: list[str] | None) -> list[str]:
    """Accept both ``?status=A&status=B`` and ``?status=A,B``."""
    return [part.strip() for value in values or [] for part in value.split(",") if part.strip()]


def linked_person(person: PeopleProfile, rel_type: str) -> LinkedPersonResponse:
    return LinkedPersonResponse(**PersonResponse.model_validate(person).model_dump(), rel_type=rel_type)


# Jobs


@router.get("/statuses")
def list_statuses() -> list[dict]:
    return [
        {
            "status": step.status,
            "label": step.label,
            "description": step.description,
            "allows_multiple_interviewers": step.allows_multiple_interviewers,
            "journey_phases": list(step.journey_phases),
        }
        for step in JOURNEY.values()
    ]


@router.post("/jobs", response_model=JobResponse, status_code=201)
def create_job(payload: JobCreateRequest, repo: Repository = Depends(get_repository)) -> JobResponse:
    job = repo.create_job(**payload.model_dump())
    return JobResponse.model_validate(job)


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(
    status: list[str] | None = Query(default=None),
    include_archived: bool = True,
    include_deleted: bool = False,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    repo: Repository = Depends(get_repository),
) -> JobListResponse:
    statuses = split_values(status)
    filters = {"statuses": statuses, "include_deleted": include_deleted, "include_archived": include_archived}
    rows = repo.list_jobs(**filters, limit=limit, offset=offset)
    return JobListResponse(
        items=[JobResponse.model_validate(row) for row in rows],
        total=repo.count_jobs(**filters),
        limit=limit,
        offset=offset,
    )


@router.get("/jobs/search", response_model=list[JobResponse])
def search_jobs(
    q: str = "",
    status: list[str] | None = Query(default=None),
    has: list[str] | None = Query(default=None),
    sort: str = "recent",
    limit: int = Query(default=200, ge=1, le=200),
    repo: Repository = Depends(get_repository),
) -> list[JobResponse]:
    rows = repo.search_jobs(q, statuses=split_values(status), has=split_values(has), sort=sort, limit=limit)
    return [JobResponse.model_validate(row) for row in rows]


@router.get("/jobs/duplicates", response_model=list[JobResponse])
def find_duplicates(
    title: str,
    company: str,
    exclude_id: int | None = None,
    repo: Repository = Depends(get_repository),
) -> list[JobResponse]:
    rows = repo.find_duplicates(title, company, exclude_id=exclude_id)
    return [JobResponse.model_validate(row) for row in rows]


@router.post("/jobs/bulk-status", response_model=list[JobResponse])
def bulk_update_status(payload: BulkStatusRequest, repo: Repository = Depends(get_repository)) -> list[JobResponse]:
    rows = repo.bulk_update_status(payload.job_ids, payload.status)
    return [JobResponse.model_validate(row) for row in rows]


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(job_id: int, repo: Repository = Depends(get_repository)) -> JobResponse:
    return JobResponse.model_validate(repo.require_job(job_id))


@router.patch("/jobs/{job_id}", response_model=JobResponse)
def update_job(
    job_id: int,
    payload: JobUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> JobResponse:
    values = payload.model_dump(exclude_unset=True)
    if not values:
        raise HTTPException(status_code=400, detail="No fields to update")
    return JobResponse.model_validate(repo.update_job(job_id, values))


@router.delete("/jobs/{job_id}", response_model=JobResponse)
def delete_job(job_id: int, repo: Repository = Depends(get_repository)) -> JobResponse:
    job = repo.soft_delete_job(job_id, retention_days=get_settings().trash_retention_days)
    return JobResponse.model_validate(job)


@router.post("/jobs/{job_id}/restore", response_model=JobResponse)
def restore_job(job_id: int, repo: Repository = Depends(get_repository)) -> JobResponse:
    return JobResponse.model_validate(repo.restore_job(job_id))


@router.post("/jobs/{job_id}/archive", response_model=JobResponse)
def archive_job(job_id: int, repo: Repository = Depends(get_repository)) -> JobResponse:
    return JobResponse.model_validate(repo.archive_job(job_id))


@router.post("/jobs/{job_id}/unarchive", response_model=JobResponse)
def unarchive_job(job_id: int, repo: Repository = Depends(get_repository)) -> JobResponse:
    return JobResponse.model_validate(repo.unarchive_job(job_id))


@router.delete("/jobs/{job_id}/purge")
def purge_job(job_id: int, service: AttachmentService = Depends(get_attachment_service)) -> dict:
    service.purge_job(job_id)
    return {"purged": job_id}


@router.post("/jobs/{job_id}/status", response_model=JobResponse)
def update_status(
    job_id: int,
    payload: StatusUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> JobResponse:
    return JobResponse.model_validate(repo.update_job_status(job_id, payload.status))


@router.get("/jobs/{job_id}/history", response_model=list[StatusHistoryResponse])
def get_history(job_id: int, repo: Repository = Depends(get_repository)) -> list[StatusHistoryResponse]:
    repo.require_job(job_id, include_deleted=True)
    return [StatusHistoryResponse.model_validate(row) for row in repo.get_status_history(job_id)]


@router.post("/jobs/{job_id}/fetch-posting", response_model=AttachmentResponse, status_code=201)
def fetch_posting(
    job_id: int,
    payload: FetchPostingRequest,
    service: AttachmentService = Depends(get_attachment_service),
) -> AttachmentResponse:
    job = service.repo.require_job(job_id)
    url = (payload.url or job.posting_url).strip()
    if not url:
        raise HTTPException(status_code=400, detail="No posting URL given or stored on the job")

    text = fetch_job_text(url, timeout_sec=service.settings.job_fetch_timeout_sec)
    if not text:
        raise HTTPException(status_code=502, detail=f"Could not fetch job posting from {url}")

    if not job.posting_url:
        service.repo.update_job(job_id, {"posting_url": url})
    item = service.add_text_attachment(job_id, f"posting-{job_id}.txt", f"Source: {url}\n\n{text}", "jd")
    return AttachmentResponse.model_validate(item)


@router.get("/export/job-zip/{job_id}")
def export_job_zip(job_id: int, service: AttachmentService = Depends(get_attachment_service)) -> Response:
    content = service.export_job_zip(job_id)
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="job-{job_id}.zip"'},
    )


# Attachments


@router.get("/jobs/{job_id}/attachments", response_model=list[AttachmentResponse])
def list_attachments(
    job_id: int,
    kind: str | None = None,
    include_deleted: bool = False,
    service: AttachmentService = Depends(get_attachment_service),
) -> list[AttachmentResponse]:
    rows = service.list_attachments(job_id, kind=kind, include_deleted=include_deleted)
    return [AttachmentResponse.model_validate(row) for row in rows]


@router.post("/jobs/{job_id}/attachments", response_model=AttachmentResponse, status_code=201)
def upload_attachment(
    job_id: int,
    file: UploadFile = File(...),
    kind: str = Form(default="other"),
    service: AttachmentService = Depends(get_attachment_service),
) -> AttachmentResponse:
    # one byte past the limit is enough to reject oversized uploads
    content = file.file.read(service.settings.max_attachment_bytes + 1)
    item = service.add_attachment(
        job_id,
        file.filename or "upload",
        content,
        kind=kind,
        content_type=file.content_type,
    )
    return AttachmentResponse.model_validate(item)


@router.post("/jobs/{job_id}/attachments/versions/make-active", response_model=AttachmentResponse)
def make_version_active(
    job_id: int,
    payload: MakeActiveRequest,
    service: AttachmentService = Depends(get_attachment_service),
) -> AttachmentResponse:
    item = service.set_active_version(job_id, payload.kind, payload.version)
    return AttachmentResponse.model_validate(item)


@router.get("/jobs/{job_id}/attachments/{attachment_id}/download")
def download_attachment(
    job_id: int,
    attachment_id: int,
    service: AttachmentService = Depends(get_attachment_service),
) -> FileResponse:
    item = service.get_attachment(job_id, attachment_id)
    if item.deleted_at is not None:
        raise NotFoundError(f"attachment {attachment_id} is in the trash")
    return FileResponse(service.file_path(item), filename=item.filename)


@router.delete("/jobs/{job_id}/attachments/{attachment_id}", response_model=AttachmentResponse)
def delete_attachment(
    job_id: int,
    attachment_id: int,
    service: AttachmentService = Depends(get_attachment_service),
) -> AttachmentResponse:
    return AttachmentResponse.model_validate(service.delete_attachment(job_id, attachment_id))


@router.post("/jobs/{job_id}/attachments/{attachment_id}/restore", response_model=AttachmentResponse)
def restore_attachment(
    job_id: int,
    attachment_id: int,
    service: AttachmentService = Depends(get_attachment_service),
) -> AttachmentResponse:
    return AttachmentResponse.model_validate(service.restore_attachment(job_id, attachment_id))


@router.delete("/jobs/{job_id}/attachments/{attachment_id}/purge")
def purge_attachment(
    job_id: int,
    attachment_id: int,
    service: AttachmentService = Depends(get_attachment_service),
) -> dict:
    service.purge_attachment(job_id, attachment_id)
    return {"purged": attachment_id}


# People


@router.get("/jobs/{job_id}/people", response_model=list[LinkedPersonResponse])
def list_job_people(
    job_id: int,
    rel_type: str | None = None,
    repo: Repository = Depends(get_repository),
) -> list[LinkedPersonResponse]:
    repo.require_job(job_id)
    return [linked_person(person, rel) for person, rel in repo.list_people_for_job(job_id, rel_type)]


@router.post("/jobs/{job_id}/people", response_model=LinkedPersonResponse, status_code=201)
def add_job_person(
    job_id: int,
    payload: PersonCreateRequest,
    repo: Repository = Depends(get_repository),
) -> LinkedPersonResponse:
    values = payload.model_dump(exclude={"rel_type"}, exclude_none=True)
    existing = repo.find_person_by_linkedin(payload.linkedin_url or "")
    if existing is not None:
        link = repo.link_person(job_id, existing.id, payload.rel_type)
        return linked_person(existing, link.rel_type)

    person = repo.create_person_and_link(job_id, values, payload.rel_type)
    return linked_person(person, payload.rel_type)


@router.post("/jobs/{job_id}/people/{person_id}", response_model=LinkedPersonResponse)
def link_job_person(
    job_id: int,
    person_id: int,
    payload: LinkPersonRequest,
    repo: Repository = Depends(get_repository),
) -> LinkedPersonResponse:
    link = repo.link_person(job_id, person_id, payload.rel_type)
    return linked_person(repo.require_person(person_id), link.rel_type)


@router.delete("/jobs/{job_id}/people/{person_id}")
def unlink_job_person(job_id: int, person_id: int, repo: Repository = Depends(get_repository)) -> dict:
    if not repo.unlink_person(job_id, person_id):
        raise HTTPException(status_code=404, detail="Person is not linked to this job")
    return {"unlinked": person_id}


@router.get("/people", response_model=list[PersonResponse])
def list_people(repo: Repository = Depends(get_repository)) -> list[PersonResponse]:
    return [PersonResponse.model_validate(row) for row in repo.list_people()]


@router.patch("/people/{person_id}", response_model=PersonResponse)
def update_person(
    person_id: int,
    payload: PersonUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> PersonResponse:
    values = payload.model_dump(exclude_unset=True)
    if not values:
        raise HTTPException(status_code=400, detail="No fields to update")
    return PersonResponse.model_validate(repo.update_person(person_id, values))
