from __future__ import annotations

import hashlib
import logging
import re
import shutil
from pathlib import Path

from jotrack.config import Settings
from jotrack.errors import AttachmentRejectedError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._() -]+")

MIME_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
    "text/markdown": "md",
    "text/html": "html",
    "application/rtf": "rtf",
    "image/png": "png",
    "image/jpeg": "jpg",
}


def sanitize_filename(name: str) -> str:
    base = Path(name or "").name.strip()
    base = _UNSAFE_CHARS.sub("_", base)
    base = re.sub(r"_{2,}", "_", base).strip(" ._")
    return base[:180] or "upload"


def file_extension(filename: str, content_type: str | None = None) -> str:
    suffix = Path(filename).suffix.lower().lstrip(".")
    if suffix:
        return suffix
    return MIME_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower(), "")


def content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class AttachmentStore:
    """Files live under ``<attachments_dir>/<job_id>/``; rows store paths relative to that root."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.root = Path(settings.attachments_dir)

    def validate(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        ext = file_extension(filename, content_type)
        if not ext or ext not in self.settings.allowed_extension_set:
            raise AttachmentRejectedError(f"unsupported file type '{ext or 'unknown'}'", status_code=415)
        if not content:
            raise AttachmentRejectedError("file is empty", status_code=400)
        if len(content) > self.settings.max_attachment_bytes:
            limit_mb = self.settings.max_attachment_bytes // (1024 * 1024)
            raise AttachmentRejectedError(f"file too large (max {limit_mb}MB)", status_code=413)
        return ext

    def job_dir(self, job_id: int) -> Path:
        path = self.root / str(job_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write(self, job_id: int, filename: str, content: bytes, ext: str) -> tuple[str, str]:
        """Write content under a free name and return (stored filename, relative path)."""
        safe = sanitize_filename(filename)
        if not safe.lower().endswith(f".{ext}"):
            safe = f"{safe}.{ext}"
        stem = safe[: -(len(ext) + 1)]

        directory = self.job_dir(job_id)
        candidate = directory / safe
        counter = 1
        while candidate.exists():
            candidate = directory / f"{stem}({counter}).{ext}"
            counter += 1

        candidate.write_bytes(content)
        return candidate.name, f"{job_id}/{candidate.name}"

    def resolve(self, relative_path: str) -> Path:
        return self.root / relative_path

    def read(self, relative_path: str) -> bytes:
        return self.resolve(relative_path).read_bytes()

    def remove(self, relative_path: str) -> None:
        path = self.resolve(relative_path)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("Attachment file already gone: %s", path)

    def remove_job_dir(self, job_id: int) -> None:
        shutil.rmtree(self.root / str(job_id), ignore_errors=True)
