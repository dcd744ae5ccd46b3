from __future__ import annotations

import io
import json
import logging
import zipfile
from datetime import UTC, datetime
from pathlib import Path

from jotrack.config import Settings, get_settings
from jotrack.core.status import STATUS_LABELS
from jotrack.core.storage import AttachmentStore, content_hash
from jotrack.core.text_extract import extract_text
from jotrack.db.models import Attachment, Job
from jotrack.db.repositories import Repository, validate_kind
from jotrack.errors import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)


class AttachmentService:
    """Versioned job files: rows via the repository, bytes via the store."""

    def __init__(self, repo: Repository, settings: Settings | None = None):
        self.repo = repo
        self.settings = settings or get_settings()
        self.store = AttachmentStore(self.settings)

    def add_attachment(
        self,
        job_id: int,
        filename: str,
        content: bytes,
        kind: str = "other",
        content_type: str | None = None,
    ) -> Attachment:
        self.repo.require_job(job_id)
        validate_kind(kind)
        ext = self.store.validate(filename, content, content_type)
        stored_name, relative_path = self.store.write(job_id, filename, content, ext)
        try:
            item = self.repo.create_attachment(
                job_id=job_id,
                kind=kind,
                filename=stored_name,
                path=relative_path,
                size=len(content),
                content_hash=content_hash(content),
            )
        except Exception:
            logger.exception("Failed to record attachment job=%s kind=%s", job_id, kind)
            self.repo.session.rollback()
            self.store.remove(relative_path)
            raise
        logger.info("Stored attachment job=%s kind=%s version=%s", job_id, kind, item.version)
        return item

    def add_text_attachment(self, job_id: int, filename: str, text: str, kind: str) -> Attachment:
        return self.add_attachment(job_id, filename, text.encode("utf-8"), kind, "text/plain")

    def list_attachments(
        self,
        job_id: int,
        kind: str | None = None,
        include_deleted: bool = False,
    ) -> list[Attachment]:
        self.repo.require_job(job_id)
        return self.repo.list_attachments(job_id, kind=kind, include_deleted=include_deleted)

    def get_attachment(self, job_id: int, attachment_id: int) -> Attachment:
        return self.repo.require_attachment(job_id, attachment_id)

    def set_active_version(self, job_id: int, kind: str, version: int) -> Attachment:
        self.repo.require_job(job_id)
        validate_kind(kind)
        item = self.repo.get_attachment_version(job_id, kind, version)
        if item is None:
            raise NotFoundError(f"{kind} version {version} not found")
        if item.deleted_at is not None:
            raise InvalidRequestError(f"{kind} version {version} is deleted; restore it first")
        return self.repo.set_active_attachment(item)

    def delete_attachment(self, job_id: int, attachment_id: int) -> Attachment:
        item = self.repo.require_attachment(job_id, attachment_id)
        if item.deleted_at is not None:
            return item
        return self.repo.soft_delete_attachment(item)

    def restore_attachment(self, job_id: int, attachment_id: int) -> Attachment:
        item = self.repo.require_attachment(job_id, attachment_id)
        if item.deleted_at is None:
            return item
        return self.repo.restore_attachment(item)

    def purge_attachment(self, job_id: int, attachment_id: int) -> None:
        item = self.repo.require_attachment(job_id, attachment_id)
        path = item.path
        self.repo.delete_attachment_row(item)
        self.store.remove(path)

    def file_path(self, item: Attachment) -> Path:
        path = self.store.resolve(item.path)
        if not path.exists():
            raise NotFoundError(f"file for attachment {item.id} is missing")
        return path

    def read_attachment_text(self, item: Attachment | None) -> str:
        if item is None:
            return ""
        try:
            content = self.store.read(item.path)
        except FileNotFoundError:
            logger.warning("Attachment file missing id=%s path=%s", item.id, item.path)
            return ""
        return extract_text(content, Path(item.filename).suffix)

    def active_text(self, job_id: int, kind: str) -> str:
        return self.read_attachment_text(self.repo.active_attachment(job_id, kind))

    def export_job_zip(self, job_id: int) -> bytes:
        job = self.repo.require_job(job_id)
        payload = {
            "job": job_to_dict(job),
            "status_history": [
                {"status": row.status, "changed_at": row.changed_at.isoformat()}
                for row in self.repo.get_status_history(job_id)
            ],
            "people": [
                {"id": person.id, "name": person.name, "title": person.title, "rel_type": rel_type}
                for person, rel_type in self.repo.list_people_for_job(job_id)
            ],
            "exported_at": datetime.now(UTC).isoformat(),
        }

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("job.json", json.dumps(payload, indent=2))
            for item in self.repo.active_attachments(job_id):
                try:
                    archive.writestr(f"{item.kind}/v{item.version}_{item.filename}", self.store.read(item.path))
                except FileNotFoundError:
                    logger.warning("Skipping missing attachment file id=%s in export", item.id)
        return buffer.getvalue()

    def purge_job(self, job_id: int) -> None:
        self.repo.purge_job(job_id)
        self.store.remove_job_dir(job_id)
        logger.info("Purged job %s", job_id)

    def purge_expired_jobs(self, now: datetime | None = None) -> list[int]:
        purged = self.repo.expired_job_ids(now)
        for job_id in purged:
            self.purge_job(job_id)
        return purged


def job_to_dict(job: Job) -> dict[str, object]:
    def stamp(value: datetime | None) -> str | None:
        return value.isoformat() if value else None

    return {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "status": job.status,
        "status_label": STATUS_LABELS.get(job.status, job.status),
        "posting_url": job.posting_url,
        "location": job.location,
        "notes": job.notes,
        "created_at": stamp(job.created_at),
        "updated_at": stamp(job.updated_at),
        "applied_at": stamp(job.applied_at),
        "archived_at": stamp(job.archived_at),
        "deleted_at": stamp(job.deleted_at),
    }
